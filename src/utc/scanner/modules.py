"""Module annotation scanner.

Reads the module doc comment of every candidate source file (see
:mod:`utc.scanner.doc_comment`) and classifies it:

* ``@public`` together with ``@module`` marks a *root module*, published as
  a package entry point.
* ``@internal`` marks an internal module; anything else inherits.
* ``@modulePath <subpath>`` overrides the auto-derived export subpath.
* ``@bin [id]`` declares a binary entry point. A bare ``@bin`` uses the
  package's default bin id (its name without npm scope); one file may
  declare several ids. Only the first word after the tag is read,
  so prose on the same line (``@bin Runs the CLI``) becomes the id
  ``Runs``; describe the binary on its own line.

A file whose doc comment cannot be lexed or which cannot be read is skipped
with a warning; scanning never aborts because of one bad file. A malformed
``@modulePath`` is a configuration error, however, and aborts the run.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from utc.exceptions import DocCommentError, ModulePathError
from utc.output import debug, warning
from utc.scanner.doc_comment import DocComment, read_module_doc


class Visibility(str, enum.Enum):
    PUBLIC = "public"
    INTERNAL = "internal"
    INHERIT = "inherit"


@dataclass(frozen=True)
class SourceModule:
    """Annotations of one source file.

    Attributes:
        path: Absolute path of the file.
        visibility: ``public`` for root modules.
        module_path: Normalized ``@modulePath`` override, or ``None``.
        bin_ids: Binary entry ids declared by ``@bin`` tags.
    """

    path: Path
    visibility: Visibility = Visibility.INHERIT
    module_path: Optional[str] = None
    bin_ids: tuple[str, ...] = ()

    @property
    def is_root(self) -> bool:
        return self.visibility is Visibility.PUBLIC


def default_bin_id(package_name: Optional[str]) -> Optional[str]:
    """Return the bin id a bare ``@bin`` tag stands for (``@scope/tool`` -> ``tool``)."""
    if not package_name:
        return None
    return package_name.rsplit("/", 1)[-1]


def normalize_module_path(value: str, file: str | Path) -> str:
    """Normalize a ``@modulePath`` value to an export subpath.

    ``''``, ``'.'``, ``'/'``, ``'./'`` and ``'./.'`` collapse to ``'.'``;
    anything else is prefixed with ``./`` when needed and loses its
    trailing slash.

    Raises:
        ModulePathError: If the value escapes the package (``..``) or
            contains empty segments.
    """
    sub = value.strip().strip("'\"`")
    if sub in ("", ".", "./", "./.", "/"):
        return "."
    if not sub.startswith("./"):
        sub = "./" + sub.lstrip("/")
    sub = sub.rstrip("/")
    if sub == "./.":
        return "."
    segments = sub[2:].split("/")
    if any(not seg.strip() or seg == ".." for seg in segments):
        raise ModulePathError(
            f"@modulePath must be '.' or a './'-relative subpath inside the package "
            f"({file} => {value!r})"
        )
    return sub


class ModuleScanner:
    """Classify source files by their module doc comment.

    Args:
        package_name: The ``name`` field of ``package.json``, used as the
            default id of bare ``@bin`` tags.
    """

    def __init__(self, package_name: Optional[str] = None) -> None:
        self._default_bin_id = default_bin_id(package_name)

    def scan(self, files: Iterable[str | Path]) -> list[SourceModule]:
        """Scan every file, skipping those that cannot be read or lexed.

        Returns:
            One :class:`SourceModule` per readable file, in input order.

        Raises:
            ModulePathError: If a ``@modulePath`` annotation is malformed.
        """
        modules: list[SourceModule] = []
        for file in files:
            try:
                modules.append(self.scan_file(file))
            except (DocCommentError, UnicodeDecodeError, OSError) as exc:
                warning(f"Skipping {file}: {exc}")
                continue
        return modules

    def scan_file(self, file: str | Path) -> SourceModule:
        """Read *file* and classify it.

        Raises:
            DocCommentError: If the leading trivia cannot be lexed.
            UnicodeDecodeError: If the file is not valid UTF-8.
            OSError: If the file cannot be read.
            ModulePathError: If a ``@modulePath`` annotation is malformed.
        """
        path = Path(file)
        text = path.read_text(encoding="utf-8")
        doc = read_module_doc(text)
        if doc is None:
            return SourceModule(path=path)
        module = self._classify(path, doc)
        if module.is_root or module.bin_ids:
            debug(f"{path}: {module.visibility.value}, bins={list(module.bin_ids)}")
        return module

    def _classify(self, path: Path, doc: DocComment) -> SourceModule:
        if doc.has("public") and doc.has("module"):
            visibility = Visibility.PUBLIC
        elif doc.has("internal"):
            visibility = Visibility.INTERNAL
        else:
            visibility = Visibility.INHERIT

        module_path: Optional[str] = None
        if doc.has("modulePath"):
            module_path = normalize_module_path(doc.first("modulePath") or "", path)

        bin_ids: list[str] = []
        for value in doc.values("bin"):
            bin_id = value.strip("'\"`") if value else self._default_bin_id
            if bin_id is None:
                warning(f"{path}: bare @bin tag but package.json has no name; ignored")
                continue
            if bin_id not in bin_ids:
                bin_ids.append(bin_id)

        return SourceModule(
            path=path,
            visibility=visibility,
            module_path=module_path,
            bin_ids=tuple(bin_ids),
        )


def root_modules(modules: Iterable[SourceModule]) -> list[SourceModule]:
    return [m for m in modules if m.is_root]


def bin_modules(modules: Iterable[SourceModule]) -> list[SourceModule]:
    return [m for m in modules if m.bin_ids]
