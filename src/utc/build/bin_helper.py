"""Post-processing of binary entry chunks.

Bin passes emit plain ESM modules. To be runnable from ``node_modules/.bin``
every entry chunk gets a ``#!/usr/bin/env node`` line and the executable
bit.
"""

from __future__ import annotations

import os
from pathlib import Path

from utc.build.accumulator import BuildResult
from utc.build.classifier import FileRole, classify_file
from utc.output import debug

HASHBANG = "#!/usr/bin/env node\n"
EXECUTABLE_MODE = 0o755


def ensure_hashbang(path: Path) -> bool:
    """Prepend :data:`HASHBANG` to *path* unless it already starts with ``#!``.

    Returns:
        True if the file was modified.
    """
    text = path.read_text(encoding="utf-8")
    if text.startswith("#!"):
        return False
    path.write_text(HASHBANG + text, encoding="utf-8")
    return True


def make_executable(result: BuildResult, project_root: str | Path) -> list[Path]:
    """Add a hashbang to and ``chmod 0o755`` every script entry chunk of *result*.

    Entry chunks the bundler reported but did not write are skipped.

    Returns:
        The absolute paths that were processed.
    """
    processed: list[Path] = []
    for chunk in result.entry_chunks():
        if classify_file(chunk.file_name) not in (FileRole.ESM, FileRole.SCRIPT):
            continue
        path = Path(project_root) / result.path_of(chunk)
        if not path.is_file():
            debug(f"Bin chunk {path} was not written; skipping")
            continue
        ensure_hashbang(path)
        os.chmod(path, EXECUTABLE_MODE)
        processed.append(path)
    return processed
