"""Reading and rewriting ``package.json``.

Only ``exports``, ``main``, ``module``, ``types`` and ``bin`` are touched;
every other key keeps its value and position. The file is re-serialized
with two-space indentation and a trailing newline.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional, Union

from utc.build.exports import LegacyFields
from utc.config import _atomic_write
from utc.exceptions import PackageJsonError

PACKAGE_JSON = "package.json"


def package_json_path(project_root: str | Path) -> Path:
    return Path(project_root) / PACKAGE_JSON


def read_package_json(project_root: str | Path) -> dict[str, Any]:
    """Load ``package.json`` from *project_root*.

    Raises:
        PackageJsonError: If the file is missing, is not valid JSON, or its
            top level is not an object.
    """
    path = package_json_path(project_root)
    if not path.is_file():
        raise PackageJsonError(f"package.json not found at {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise PackageJsonError(f"Cannot read {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise PackageJsonError(f"{path} must contain a JSON object")
    return data


def apply_export_fields(
    pkg: dict[str, Any],
    exports: dict[str, Any],
    legacy: LegacyFields,
    bin_field: Union[str, dict[str, str], None] = None,
) -> dict[str, Any]:
    """Write the synthesized fields into *pkg* in place and return it.

    ``exports`` is always replaced. Each legacy field is set when derived
    and deleted otherwise. ``bin`` is only set when bins were built.
    """
    for key, value in legacy.as_dict().items():
        if value:
            pkg[key] = value
        else:
            pkg.pop(key, None)
    pkg["exports"] = exports
    if bin_field is not None:
        pkg["bin"] = bin_field
    return pkg


def render_package_json(pkg: dict[str, Any]) -> str:
    return json.dumps(pkg, indent=2, ensure_ascii=False) + "\n"


def write_package_json(project_root: str | Path, pkg: dict[str, Any]) -> Path:
    """Atomically write *pkg* to ``package.json``.

    Raises:
        PackageJsonError: If the file cannot be written.
    """
    path = package_json_path(project_root)
    try:
        _atomic_write(path, render_package_json(pkg))
    except OSError as exc:
        raise PackageJsonError(f"Cannot write {path}: {exc}") from exc
    return path


def package_type(pkg: dict[str, Any]) -> Optional[str]:
    value = pkg.get("type")
    return value if isinstance(value, str) else None


def package_name(pkg: dict[str, Any]) -> Optional[str]:
    value = pkg.get("name")
    return value if isinstance(value, str) and value else None
