"""Config commands -- view the effective configuration.

Provides the ``utc config`` sub-command group. ``show`` prints the fully
resolved configuration (config file, environment and defaults merged) as
JSON on stdout, and names the file it was read from on stderr.
"""

from __future__ import annotations

from typing import Optional

import typer

from utc.exceptions import UtcError
from utc.output import error, info, print_json


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show(
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Project directory."),
) -> None:
    """Show the effective configuration.

    Example::

        utc config show
        utc config show -p packages/core
    """
    from utc.config import dump_config, load_project_config, resolve_config

    try:
        config = resolve_config(cli_project=project)
        _, source = load_project_config(config.project)
    except UtcError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    info(f"Config source: {source or '(defaults)'}")
    print_json(dump_config(config))
