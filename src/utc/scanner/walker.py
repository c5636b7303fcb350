"""Source discovery: expand configured source patterns into script files.

The ``web.source`` setting accepts plain files, directories, glob patterns,
and ``!``-prefixed negations, relative to the project root (absolute paths
inside the project are accepted too). Matching uses gitignore-compatible
pattern syntax via :mod:`pathspec`, and the project's own ``.gitignore`` is
honoured during the walk.
"""

from __future__ import annotations

import os
import re
from pathlib import Path

import pathspec

SCRIPT_EXTENSIONS: tuple[str, ...] = (
    "d.ts", "d.mts", "d.cts",
    "ts", "tsx", "mts", "cts",
    "js", "jsx", "mjs", "cjs",
)
"""Known script extensions, compound declaration extensions included."""

DECLARATION_EXTENSIONS: tuple[str, ...] = ("d.ts", "d.mts", "d.cts")

# Longest first, so ``.d.ts`` is stripped before ``.ts``.
SCRIPT_EXTENSIONS_BY_LENGTH: tuple[str, ...] = tuple(
    sorted(SCRIPT_EXTENSIONS, key=len, reverse=True)
)

# Directories that are always pruned during traversal.
_ALWAYS_SKIP = frozenset({".git", "node_modules", "dist", ".turbo", ".cache", ".pnpm-store"})

_GLOB_RE = re.compile(r"(^|[^\\])(?:[*?]|\[[^\]]+\]|\{[^}]+\}|[!@+?*]\([^)]*\))")


def is_glob_pattern(pattern: str) -> bool:
    """Return True if *pattern* contains unescaped glob syntax or is a negation."""
    if pattern.startswith("!"):
        return True
    return bool(_GLOB_RE.search(pattern))


def script_extension(name: str) -> str | None:
    """Return the longest known script extension of *name* (without dot), or ``None``."""
    lowered = name.lower()
    for ext in SCRIPT_EXTENSIONS_BY_LENGTH:
        if lowered.endswith("." + ext):
            return ext
    return None


def is_declaration_file(name: str) -> bool:
    return script_extension(name) in DECLARATION_EXTENSIONS


def _load_gitignore(root: Path) -> pathspec.PathSpec | None:
    """Load ``.gitignore`` from *root* if it exists, returning a PathSpec matcher."""
    gitignore = root / ".gitignore"
    if not gitignore.is_file():
        return None
    lines = gitignore.read_text(encoding="utf-8", errors="replace").splitlines()
    return pathspec.PathSpec.from_lines("gitwildmatch", lines)


def _normalize_pattern(pattern: str, root: Path) -> str:
    """Turn one configured source pattern into a root-relative gitwildmatch line."""
    if os.path.isabs(pattern):
        try:
            pattern = Path(pattern).relative_to(root).as_posix()
        except ValueError:
            pattern = Path(pattern).as_posix()
    pattern = pattern.replace("\\", "/")
    while pattern.startswith("./"):
        pattern = pattern[2:]
    if pattern in ("", "."):
        return "**"
    if not is_glob_pattern(pattern) and (root / pattern).is_dir():
        return pattern.rstrip("/") + "/**"
    return pattern


def resolve_source_files(patterns: list[str], project_root: str | Path) -> list[Path]:
    """Expand *patterns* into the absolute paths of matching script files.

    Declaration files (``.d.ts`` and friends) are never returned: they
    cannot be entry points.

    Args:
        patterns: Configured ``web.source`` values. Entries starting with
            ``!`` exclude matches.
        project_root: Directory the patterns are relative to.

    Returns:
        Sorted absolute paths. Empty when nothing matches or the project
        root does not exist.
    """
    root = Path(project_root).resolve()
    if not root.is_dir():
        return []

    include_lines: list[str] = []
    exclude_lines: list[str] = []
    for pattern in patterns:
        if pattern.startswith("!"):
            exclude_lines.append(_normalize_pattern(pattern[1:], root))
        else:
            include_lines.append(_normalize_pattern(pattern, root))
    if not include_lines:
        return []

    include_spec = pathspec.PathSpec.from_lines("gitwildmatch", include_lines)
    exclude_spec = (
        pathspec.PathSpec.from_lines("gitwildmatch", exclude_lines) if exclude_lines else None
    )
    gitignore_spec = _load_gitignore(root)

    found: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(str(root)):
        rel_dir = os.path.relpath(dirpath, str(root))
        rel_dir = "" if rel_dir == "." else rel_dir.replace(os.sep, "/")

        dirnames[:] = [
            d for d in dirnames
            if d not in _ALWAYS_SKIP
            and not (gitignore_spec and gitignore_spec.match_file(
                (f"{rel_dir}/{d}" if rel_dir else d) + "/",
            ))
        ]

        for fname in filenames:
            if script_extension(fname) is None or is_declaration_file(fname):
                continue
            rel_path = f"{rel_dir}/{fname}" if rel_dir else fname
            if gitignore_spec and gitignore_spec.match_file(rel_path):
                continue
            if not include_spec.match_file(rel_path):
                continue
            if exclude_spec and exclude_spec.match_file(rel_path):
                continue
            found.append(Path(dirpath) / fname)

    return sorted(found)
