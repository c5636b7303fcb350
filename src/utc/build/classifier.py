"""Output classification: which emitted file belongs to which entry.

After each pass the classifier walks the pass's chunk list and records
every chunk that belongs to a known entry into the accumulator, keyed by
``(subpath, combination key)``. A chunk belongs to an entry when its name
without output extension equals the entry's output stem (``io/fs`` for
``src/io/fs.ts`` under a ``src`` common root); unbundled layouts that
flatten the tree fall back to matching the bare base name, but only for
entries whose exact stem was not emitted in the same pass.

File roles are decided by suffix alone:

==============================  =================
Suffix                          Role
==============================  =================
``.d.ts`` ``.d.mts`` ``.d.cts``  declaration
``.mjs``                        ESM
``.cjs``                        CJS
``.js``                         script (either)
anything else                   other (ignored)
==============================  =================
"""

from __future__ import annotations

import enum
from pathlib import Path
from typing import Collection

from utc.build.accumulator import BuildAccumulator, BuildResult
from utc.entries import EntryMap, entry_name, entry_output_stems, strip_script_extension
from utc.output import debug

DECLARATION_SUFFIXES: tuple[str, ...] = (".d.ts", ".d.mts", ".d.cts")


class FileRole(str, enum.Enum):
    DECLARATION = "declaration"
    ESM = "esm"
    CJS = "cjs"
    SCRIPT = "script"
    OTHER = "other"


def classify_file(path: str) -> FileRole:
    """Return the :class:`FileRole` of an output file from its suffix."""
    lowered = path.lower()
    if lowered.endswith(DECLARATION_SUFFIXES):
        return FileRole.DECLARATION
    if lowered.endswith(".mjs"):
        return FileRole.ESM
    if lowered.endswith(".cjs"):
        return FileRole.CJS
    if lowered.endswith(".js"):
        return FileRole.SCRIPT
    return FileRole.OTHER


def strip_output_extension(name: str) -> str:
    """Strip the script extension and a trailing ``.d`` (``index.d.mts`` -> ``index``)."""
    stem = strip_script_extension(name)
    if stem.lower().endswith(".d"):
        stem = stem[:-2]
    return stem


class OutputClassifier:
    """Match emitted chunks to entry subpaths.

    Args:
        entry_map: The subpath -> entry file map the passes were built from.
        project_root: The project directory.
    """

    def __init__(self, entry_map: EntryMap, project_root: str | Path) -> None:
        self._stems = entry_output_stems(entry_map, project_root)
        self._names = {subpath: entry_name(file) for subpath, file in entry_map.items()}

    def _exact(self, stem: str) -> str | None:
        for subpath, expected in self._stems.items():
            if stem == expected:
                return subpath
        return None

    def match(self, file_name: str, exact_matched: Collection[str] = ()) -> str | None:
        """Return the subpath *file_name* belongs to, or ``None``.

        The base-name fallback never applies to a subpath listed in
        *exact_matched*, i.e. one whose output stem was already emitted in
        the same pass.
        """
        if classify_file(file_name) is FileRole.OTHER:
            return None
        stem = strip_output_extension(file_name.replace("\\", "/"))
        subpath = self._exact(stem)
        if subpath is not None:
            return subpath
        base = stem.rsplit("/", 1)[-1]
        for subpath, name in self._names.items():
            if base == name and subpath not in exact_matched:
                return subpath
        return None

    def collect(self, result: BuildResult, accumulator: BuildAccumulator) -> int:
        """Record the chunks of *result* that belong to an entry.

        Returns:
            The number of files recorded.
        """
        key = result.combination.key
        exact_matched: set[str] = set()
        for chunk in result.chunks:
            if classify_file(chunk.file_name) is not FileRole.OTHER:
                subpath = self._exact(strip_output_extension(chunk.file_name.replace("\\", "/")))
                if subpath is not None:
                    exact_matched.add(subpath)

        count = 0
        for chunk in result.chunks:
            subpath = self.match(chunk.file_name, exact_matched)
            if subpath is None:
                continue
            accumulator.add_file(subpath, key, result.path_of(chunk))
            count += 1
        debug(f"Classified {count} of {len(result.chunks)} chunks for {key}")
        return count
