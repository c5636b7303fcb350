"""Build command -- run every build pass and rewrite ``package.json``.

``utc build`` resolves the configuration, discovers the package's entry
points, runs one bundler pass per condition combination (and per bin
target), then synthesizes the ``exports``, ``main``, ``module``, ``types``
and ``bin`` fields.

Usage::

    utc build
    utc build --conditions '["node", "browser", "default"]'
    utc build -p packages/core --no-export-types
"""

from __future__ import annotations

import json
import shlex
from typing import Any, List, Optional

import typer

from utc.build import Builder, CommandBuilder, run_build
from utc.exceptions import InvalidUsageError, UtcError
from utc.models import ProjectConfig
from utc.output import error, success, suggest


def create_builder(config: ProjectConfig) -> Builder:
    """Return the bundler that runs the passes of *config*."""
    return CommandBuilder(config.web.build.builder)


def _parse_conditions(raw: Optional[str]) -> Any:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise InvalidUsageError(f"--conditions must be JSON: {exc}") from exc


def build_overrides(
    source: Optional[List[str]] = None,
    entry: Optional[List[str]] = None,
    conditions: Optional[str] = None,
    exports: Optional[bool] = None,
    export_types: Optional[bool] = None,
    compile_constant_dts: Optional[str] = None,
    strict: bool = False,
    builder: Optional[str] = None,
) -> dict[str, Any]:
    """Map CLI flags to dotted config overrides; unset flags map to ``None``.

    Raises:
        InvalidUsageError: If ``--conditions`` is not valid JSON.
    """
    return {
        "web.source": source or None,
        "web.build.entry": entry or None,
        "web.build.conditions": _parse_conditions(conditions),
        "web.build.exports": exports,
        "web.build.exportTypes": export_types,
        "web.build.compileConstantDts": compile_constant_dts,
        "web.build.strict": True if strict else None,
        "web.build.builder": shlex.split(builder) if builder else None,
    }


def build_command(
    project: Optional[str] = typer.Option(
        None, "--project", "-p", help="Project directory (default: current directory)."
    ),
    source: Optional[List[str]] = typer.Option(
        None, "--source", help="Source file, directory or glob (repeatable)."
    ),
    entry: Optional[List[str]] = typer.Option(
        None, "--entry", help="Explicit entry file, bypassing auto-discovery (repeatable)."
    ),
    conditions: Optional[str] = typer.Option(
        None, "--conditions", help='Condition spec as JSON: \'["a","b"]\' or \'{"group":["a","default"]}\'.'
    ),
    exports: Optional[bool] = typer.Option(
        None, "--exports/--no-exports", help="Rewrite the package.json export fields."
    ),
    export_types: Optional[bool] = typer.Option(
        None,
        "--export-types/--no-export-types",
        help="Per-branch types inside exports, or no types at all.",
    ),
    compile_constant_dts: Optional[str] = typer.Option(
        None, "--compile-constant-dts", help="Where to write compile-constant declarations."
    ),
    strict: bool = typer.Option(
        False, "--strict", help="Ask the bundler for strict package checks."
    ),
    builder: Optional[str] = typer.Option(
        None, "--builder", help="Bundler command line (default: 'npx tsdown')."
    ),
) -> None:
    """Build every condition combination and update package.json.

    Example::

        utc build --conditions '{"env": ["node", "default"]}'
    """
    from utc.config import resolve_config

    try:
        overrides = build_overrides(
            source, entry, conditions, exports, export_types,
            compile_constant_dts, strict, builder,
        )
        config = resolve_config(cli_project=project, overrides=overrides)
        summary = run_build(config, create_builder(config))
    except UtcError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    if not summary.entry_map and not summary.bin_map:
        suggest("Add a /** @public @module */ doc comment to your entry file")
        return

    success(
        f"Built {len(summary.entry_map)} entr{'y' if len(summary.entry_map) == 1 else 'ies'}"
        f" and {len(summary.bin_map)} bin(s) in {summary.passes} pass(es)"
    )
