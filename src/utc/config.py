"""Configuration loading with atomic writes and precedence resolution.

This module handles all configuration for utc:

* **Project config** -- read from the first file found in the project
  root among ``utc.config.json``, ``utc.config.yaml``, ``utc.config.yml``,
  falling back to the ``"utc"`` key of ``package.json``. See
  :func:`find_config_file` and :func:`load_project_config`.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, the project config and model defaults into a
  validated :class:`~utc.models.ProjectConfig`.
* **Data directory** -- XDG compliant on Linux/BSD, ``~/.utc/`` elsewhere;
  crash logs live there. See :func:`get_data_dir`.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) so an interrupted ``utc build`` never leaves a
truncated ``package.json`` behind.
"""

from __future__ import annotations

import copy
import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from pydantic import ValidationError

from utc.exceptions import ConfigError
from utc.models import ProjectConfig

_APP_NAME = "utc"
CONFIG_FILENAMES: tuple[str, ...] = ("utc.config.json", "utc.config.yaml", "utc.config.yml")
PACKAGE_JSON_KEY = "utc"

ENV_PROJECT = "UTC_PROJECT"
ENV_CONDITIONS = "UTC_CONDITIONS"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/utc/`` (default ``~/.local/share/utc/``).
    On macOS/Windows: ``~/.utc/logs/``.
    """
    if _is_xdg_platform():
        env_value = os.environ.get("XDG_DATA_HOME", "")
        base = Path(env_value) if env_value else Path.home() / ".local" / "share"
        path = base / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}" / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. On any failure the
    temp file is cleaned up.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Project config ---


def find_config_file(project_root: str | Path) -> Optional[Path]:
    """Return the first ``utc.config.*`` file in *project_root*, or ``None``."""
    root = Path(project_root)
    for name in CONFIG_FILENAMES:
        candidate = root / name
        if candidate.is_file():
            return candidate
    return None


def _read_config_file(path: Path) -> dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
        if path.suffix == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"Invalid config file at {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at the top level")
    return data


def load_project_config(project_root: str | Path) -> tuple[dict[str, Any], Optional[Path]]:
    """Load the raw project configuration.

    Returns:
        ``(data, source)`` where *source* is the file the data came from,
        or ``None`` when the project has no configuration.

    Raises:
        ConfigError: If the config file is unreadable or not a mapping.
        PackageJsonError: If ``package.json`` exists but is not valid JSON.
    """
    path = find_config_file(project_root)
    if path is not None:
        return _read_config_file(path), path

    pkg_path = Path(project_root) / "package.json"
    if pkg_path.is_file():
        from utc.build.package_json import read_package_json

        section = read_package_json(project_root).get(PACKAGE_JSON_KEY)
        if section is None:
            return {}, None
        if not isinstance(section, dict):
            raise ConfigError(f'The "{PACKAGE_JSON_KEY}" key of {pkg_path} must be an object')
        return copy.deepcopy(section), pkg_path

    return {}, None


# --- Precedence resolution ---


def _same_key(a: str, b: str) -> bool:
    """Compare keys ignoring snake/camel case (``out_dir`` == ``outDir``)."""
    return a.replace("_", "").lower() == b.replace("_", "").lower()


def _apply_override(data: dict[str, Any], dotted_key: str, value: Any) -> None:
    """Set ``data["a"]["b"]["c"] = value`` for ``dotted_key == "a.b.c"``.

    Any spelling of the same key in the other case style is replaced.
    """
    parts = dotted_key.split(".")
    node = data
    for part in parts[:-1]:
        child = next((node[k] for k in node if _same_key(k, part)), None)
        if not isinstance(child, dict):
            for stale in [k for k in node if _same_key(k, part)]:
                del node[stale]
            child = node[part] = {}
        node = child
    leaf = parts[-1]
    for stale in [k for k in node if _same_key(k, leaf)]:
        del node[stale]
    node[leaf] = value


def resolve_config(
    cli_project: Optional[str] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> ProjectConfig:
    """Resolve config with full precedence chain.

    Precedence (high to low):
        1. CLI flags (``cli_project`` and dotted ``overrides`` such as
           ``{"web.build.conditions": [...]}``; ``None`` values are skipped)
        2. Environment variables (``UTC_PROJECT``, ``UTC_CONDITIONS``)
        3. Project config file or the ``"utc"`` key of ``package.json``
        4. Model defaults

    Raises:
        ConfigError: If the config file or the merged values are invalid.
    """
    project = cli_project or os.environ.get(ENV_PROJECT) or os.getcwd()
    root = Path(project).expanduser().resolve()
    if not root.is_dir():
        raise ConfigError(f"Project directory not found: {root}")

    data, _ = load_project_config(root)

    env_conditions = os.environ.get(ENV_CONDITIONS)
    if env_conditions:
        _apply_override(data, "web.build.conditions", env_conditions)

    for key, value in (overrides or {}).items():
        if value is not None:
            _apply_override(data, key, value)

    data["project"] = str(root)
    try:
        config = ProjectConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration for {root}:\n{exc}") from exc

    # Fail before anything runs if the condition spec is malformed.
    config.web.build.condition_spec()
    return config


def dump_config(config: ProjectConfig) -> dict[str, Any]:
    """Return *config* as camelCase JSON-compatible data (for ``utc config show``)."""
    return config.model_dump(mode="json", by_alias=True)
