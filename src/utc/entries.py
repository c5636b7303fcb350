"""Entry subpath resolution for root modules and bin targets.

Every root module is published under a *subpath* of the package
(``"."``, ``"./utils"``, ...). The subpath is derived automatically from the
module's location relative to the common ancestor directory of all root
modules, or taken verbatim from its ``@modulePath`` annotation:

==========================  ==================
File (common root ``src``)  Subpath
==========================  ==================
``src/index.ts``            ``.``
``src/utils.ts``            ``./utils``
``src/io/index.mts``        ``./io``
``src/io/fs.d.ts``          ``./io/fs``
==========================  ==================

Two distinct files on the same subpath is a fatal configuration error,
raised here before any build pass runs. Bin targets follow the same rule
keyed by bin id instead of subpath.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Iterable

from utc.exceptions import EntryConflictError
from utc.scanner.modules import SourceModule
from utc.scanner.walker import script_extension

EntryMap = dict[str, str]
"""Subpath -> project-relative entry file (``"./src/index.ts"``), in discovery order."""

_INDEX_RE = re.compile(r"(^|/)index$", re.IGNORECASE)


def normalize_match_path(file_path: str | Path, base_path: str | Path) -> str:
    """Return *file_path* relative to *base_path* in POSIX form.

    The base itself maps to ``"."``; paths outside the base are returned
    as absolute POSIX paths.
    """
    rel = os.path.relpath(str(file_path), str(base_path))
    if rel == ".":
        return "."
    if rel.startswith(".."):
        return Path(file_path).as_posix()
    return rel.replace(os.sep, "/")


def to_entry_path(file_path: str | Path, project_root: str | Path) -> str:
    """Return the ``./``-prefixed project-relative form handed to the bundler."""
    rel = normalize_match_path(file_path, project_root)
    return rel if rel.startswith(("./", "/")) else f"./{rel}"


def strip_script_extension(path: str) -> str:
    ext = script_extension(path)
    if ext is None:
        return path
    return path[: -(len(ext) + 1)]


def common_ancestor(files: Iterable[str | Path], project_root: str | Path) -> Path:
    """Return the deepest directory containing every file in *files*.

    For a single file this is the file's own directory, so a lone
    ``src/index.ts`` is exported as ``"."``. Falls back to *project_root*
    when *files* is empty or the files share no ancestor.
    """
    parents = [os.path.abspath(os.path.dirname(os.path.join(str(project_root), str(f))))
               for f in files]
    if not parents:
        return Path(project_root)
    try:
        return Path(os.path.commonpath(parents))
    except ValueError:
        return Path(project_root)


def to_entry_subpath(root: str | Path, path: str | Path) -> str:
    """Derive the automatic export subpath of *path* relative to *root*.

    The longest matching script extension is stripped (so ``.d.ts`` goes
    before ``.ts``), a trailing ``index`` segment folds into its parent,
    and the empty result maps to ``"."``.
    """
    rel = normalize_match_path(path, root)
    if rel == ".":
        rel = ""
    rel = strip_script_extension(rel)
    rel = _INDEX_RE.sub(r"\1", rel).rstrip("/")
    if not rel:
        return "."
    return rel if rel.startswith("./") else "./" + rel.lstrip("/")


def _dedupe_modules(modules: Iterable[SourceModule]) -> list[SourceModule]:
    seen: set[str] = set()
    unique: list[SourceModule] = []
    for module in modules:
        key = os.path.abspath(str(module.path))
        if key not in seen:
            seen.add(key)
            unique.append(module)
    return unique


def to_entry_subpath_map(modules: Iterable[SourceModule], project_root: str | Path) -> EntryMap:
    """Build the subpath -> entry file map for *modules*.

    Args:
        modules: Root modules (or explicitly configured entries).
        project_root: The project directory.

    Returns:
        An :data:`EntryMap` in input order.

    Raises:
        EntryConflictError: If two distinct files resolve to one subpath,
            whether through the automatic rule or an override.
    """
    unique = _dedupe_modules(modules)
    if not unique:
        return {}

    root = common_ancestor([m.path for m in unique], project_root)
    owners: dict[str, str] = {}
    for module in unique:
        file = to_entry_path(module.path, project_root)
        final = module.module_path or to_entry_subpath(root, module.path)
        existing = owners.get(final)
        if existing is not None and existing != file:
            raise EntryConflictError(final, existing, file)
        owners[final] = file
    return owners


def entry_name(entry: str) -> str:
    """Return the base name of an entry without its script extension."""
    base = entry.replace("\\", "/").rstrip("/").rsplit("/", 1)[-1]
    return strip_script_extension(base) or "index"


def entry_output_stems(entry_map: EntryMap, project_root: str | Path) -> dict[str, str]:
    """Map each subpath to the output-relative stem the bundler emits for it.

    Unbundled builds mirror the sources below their common ancestor, so
    ``src/index.ts`` and ``src/io/fs.ts`` are emitted as ``index.*`` and
    ``io/fs.*``.
    """
    files = list(entry_map.values())
    root = common_ancestor(files, project_root)
    stems: dict[str, str] = {}
    for subpath, file in entry_map.items():
        absolute = os.path.abspath(os.path.join(str(project_root), file))
        stems[subpath] = strip_script_extension(normalize_match_path(absolute, root))
    return stems


def resolve_bin_map(modules: Iterable[SourceModule], project_root: str | Path) -> dict[str, str]:
    """Build the bin id -> entry file map from ``@bin`` annotations.

    Raises:
        EntryConflictError: If two distinct files declare the same bin id.
    """
    owners: dict[str, str] = {}
    for module in _dedupe_modules(modules):
        file = to_entry_path(module.path, project_root)
        for bin_id in module.bin_ids:
            existing = owners.get(bin_id)
            if existing is not None and existing != file:
                raise EntryConflictError(bin_id, existing, file, kind="Bin")
            owners[bin_id] = file
    return owners
