"""The ``utc`` command-line application.

:data:`app` is the Typer root; ``build`` is a plain command while
``inspect`` and ``config`` are sub-groups. Global flags on
:func:`main_callback` only shape output, every project option lives on the
sub-commands.

:func:`main` is the console-script entry point. A :class:`~utc.exceptions.UtcError`
that escapes a command ends the process with that error's exit code;
anything else is treated as a bug and its traceback goes to a crash log in
the data directory (see :func:`utc.config.get_data_dir`).
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any

import typer

from utc import __version__
from utc.commands.build import build_command
from utc.commands.config import config_app
from utc.commands.inspect import inspect_app
from utc.exit_codes import EXIT_GENERIC_FAILURE, EXIT_INTERRUPTED


app = typer.Typer(
    name="utc",
    help="Build a JS/TS package once per condition combination and synthesize its package.json exports.",
    no_args_is_help=True,
    add_completion=True,
    rich_markup_mode="rich",
)

app.command("build")(build_command)
app.add_typer(inspect_app, name="inspect", help="Preview build passes, entries and bins.")
app.add_typer(config_app, name="config", help="Show the effective configuration.")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"utc {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True,
        help="Print the utc version and exit.",
    ),
    json_output: bool = typer.Option(False, "--json", help="Print tables and data as JSON."),
    plain_output: bool = typer.Option(False, "--plain", help="Print tables as tab-separated text."),
    no_color: bool = typer.Option(False, "--no-color", help="Never colour diagnostics."),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Only print warnings, errors and requested data."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Print bundler command lines and per-file scan results."
    ),
) -> None:
    """Install the process-wide :class:`~utc.output.OutputManager`."""
    from utc.output import OutputFormat, OutputManager, set_output

    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN
    else:
        fmt = OutputFormat.AUTO
    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))

    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


def _setup_signal_handlers() -> None:
    """Ctrl-C leaves partial ``dist`` output behind and exits with 130."""

    def _on_sigint(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nBuild interrupted.\n")
        sys.exit(EXIT_INTERRUPTED)

    signal.signal(signal.SIGINT, _on_sigint)


def _write_crash_log(exc: Exception) -> str:
    """Save the command line and traceback of *exc*; return the log path."""
    from utc.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_path = logs_dir / f"crash-{datetime.now():%Y%m%d-%H%M%S}.log"
    lines = [f"utc {__version__}: {' '.join(sys.argv)}\n\n"]
    lines.extend(traceback.format_exception(type(exc), exc, exc.__traceback__))
    log_path.write_text("".join(lines))
    return str(log_path)


def main() -> None:
    """Entry point of the ``utc`` console script. Always ends in ``SystemExit``."""
    from utc.exceptions import UtcError
    from utc.output import error

    _setup_signal_handlers()
    try:
        app()
    except KeyboardInterrupt:
        sys.stderr.write("\nBuild interrupted.\n")
        sys.exit(EXIT_INTERRUPTED)
    except UtcError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception as exc:
        error(f"Unexpected error. Debug log: {_write_crash_log(exc)}")
        sys.exit(EXIT_GENERIC_FAILURE)
