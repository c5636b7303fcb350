"""Inspect commands -- preview what ``utc build`` would do.

Provides the ``utc inspect`` sub-command group with read-only commands:
the build passes a condition spec expands to, the entry map, and the bin
map. Nothing is built and no file is written.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer

from utc.conditions import (
    ConditionCombination,
    build_resolve_config,
    condition_spec_to_raw,
    get_condition_combinations,
)
from utc.exceptions import InvalidUsageError, UtcError
from utc.models import ProjectConfig
from utc.output import error, info, print_json, print_table


inspect_app = typer.Typer(no_args_is_help=True)


def _resolve(project: Optional[str], conditions: Optional[str] = None) -> ProjectConfig:
    from utc.commands.build import build_overrides
    from utc.config import resolve_config

    return resolve_config(cli_project=project, overrides=build_overrides(conditions=conditions))


def _package_name(root: Path) -> Optional[str]:
    from utc.build.package_json import package_json_path, package_name, read_package_json

    if not package_json_path(root).is_file():
        return None
    return package_name(read_package_json(root))


def _scan(config: ProjectConfig):  # noqa: ANN202
    from utc.scanner import scan_sources

    root = Path(config.project)
    name = _package_name(root)
    return root, name, scan_sources(config.web.source, root, name)


@inspect_app.command("conditions")
def inspect_conditions(
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Project directory."),
    conditions: Optional[str] = typer.Option(
        None, "--conditions", help="Condition spec as JSON (overrides config)."
    ),
    active: Optional[str] = typer.Option(
        None, "--active", help='Show resolution details for one pass, e.g. \'{"env": "node"}\'.'
    ),
) -> None:
    """List the build passes of the condition spec.

    With ``--active``, print the module-resolution aliasing and compile
    constants of that single pass instead.

    Example::

        utc inspect conditions --conditions '{"env": ["node", "default"]}'
    """
    from utc.build.constants import compile_constant_modules
    from utc.build.orchestrator import pass_out_dir

    try:
        config = _resolve(project, conditions)
        spec = config.web.build.condition_spec()

        if active is not None:
            try:
                combination = ConditionCombination.from_active(json.loads(active))
            except (json.JSONDecodeError, TypeError) as exc:
                raise InvalidUsageError(f"--active must be a JSON list or object: {exc}") from exc
            print_json({
                "combination": combination.as_dict(),
                "outDir": pass_out_dir(config.web.build.out_dir, combination),
                "resolution": build_resolve_config(combination).model_dump(by_alias=True),
                "constants": compile_constant_modules(spec, combination),
            })
            return

        combinations = get_condition_combinations(spec)
    except UtcError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    if spec is None:
        info("No conditions configured: a single unconditional pass.")
    else:
        info(f"Conditions: {json.dumps(condition_spec_to_raw(spec))}")
    rows = [
        [
            str(c),
            c.key,
            pass_out_dir(config.web.build.out_dir, c),
            " ".join(build_resolve_config(c).suffixes[:3]) or "-",
        ]
        for c in combinations
    ]
    print_table(["Combination", "Key", "Out dir", "Suffixes"], rows, title="Build passes")


@inspect_app.command("entries")
def inspect_entries(
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Project directory."),
) -> None:
    """List the subpath -> entry file map.

    Exits with code 4 when two files claim the same subpath.
    """
    from utc.build.pipeline import resolve_entry_modules
    from utc.entries import to_entry_subpath_map

    try:
        config = _resolve(project)
        root, name, modules = _scan(config)
        entry_map = to_entry_subpath_map(resolve_entry_modules(config, modules, name), root)
    except UtcError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    if not entry_map:
        info("No root modules found.")
        return
    print_table(["Subpath", "File"], [[s, f] for s, f in entry_map.items()], title="Entries")


@inspect_app.command("bins")
def inspect_bins(
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Project directory."),
) -> None:
    """List the bin id -> entry file map."""
    from utc.entries import resolve_bin_map
    from utc.scanner import bin_modules

    try:
        config = _resolve(project)
        root, _, modules = _scan(config)
        bin_map = resolve_bin_map(bin_modules(modules), root)
    except UtcError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    if not bin_map:
        info("No @bin modules found.")
        return
    print_table(["Bin", "File"], [[b, f] for b, f in bin_map.items()], title="Bins")
