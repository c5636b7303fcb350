"""Source scanning -- find the modules a package publishes.

This sub-package turns the configured ``web.source`` patterns into
:class:`~utc.scanner.modules.SourceModule` records:

1. **Discovery** (:mod:`~utc.scanner.walker`) -- expands files,
   directories, globs and negations into script files with :mod:`pathspec`,
   honouring ``.gitignore``.
2. **Lexing** (:mod:`~utc.scanner.doc_comment`) -- extracts the module doc
   comment leading the first statement of each file.
3. **Classification** (:mod:`~utc.scanner.modules`) -- reads ``@public``,
   ``@module``, ``@internal``, ``@modulePath`` and ``@bin`` tags.

The convenience function :func:`scan_sources` combines all three.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from utc.scanner.modules import (
    ModuleScanner,
    SourceModule as SourceModule,
    Visibility as Visibility,
    bin_modules as bin_modules,
    root_modules as root_modules,
)
from utc.scanner.walker import resolve_source_files


def scan_sources(
    patterns: list[str],
    project_root: str | Path,
    package_name: Optional[str] = None,
) -> list[SourceModule]:
    """Discover and classify every source file matched by *patterns*.

    Example::

        modules = scan_sources(["src"], "/path/to/project", "my-package")
        entries = root_modules(modules)
    """
    files = resolve_source_files(patterns, project_root)
    return ModuleScanner(package_name).scan(files)
