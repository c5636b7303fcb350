"""Console output for utc, split between a data stream and a diagnostic stream.

``utc inspect`` and ``utc config show`` produce data that other tools may
parse, so that goes to **stdout** and nothing else does. Everything a build
says about itself (pass progress, skipped files, conflicts, the final
summary) goes to **stderr**.

Rendering depends on the resolved :class:`OutputFormat`: Rich tables and
highlighted JSON on an interactive terminal, tab-separated text when piped,
JSON records with ``--json``. ``NO_COLOR``, ``TERM=dumb`` and ``--no-color``
turn Rich markup off entirely.

Library code never holds an :class:`OutputManager`; it calls the
module-level helpers (:func:`warning`, :func:`debug`, :func:`progress`, ...),
which route through the instance installed by :func:`~utc.app.main_callback`.
"""

from __future__ import annotations

import json
import os
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table


class OutputFormat(str, Enum):
    """How data written to stdout is rendered.

    ``AUTO`` becomes ``RICH`` on a colour-capable TTY and ``PLAIN`` otherwise.
    """

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


@dataclass(frozen=True)
class _Diagnostic:
    """Rendering rules for one kind of stderr message."""

    prefix: str = ""
    style: Optional[str] = None
    styled_prefix_only: bool = False
    quiet_hides: bool = True
    verbose_only: bool = False
    tty_only: bool = False


_DIAGNOSTICS: dict[str, _Diagnostic] = {
    "info": _Diagnostic(),
    "success": _Diagnostic(style="green"),
    "warning": _Diagnostic(
        prefix="Warning: ", style="yellow", styled_prefix_only=True, quiet_hides=False
    ),
    "error": _Diagnostic(
        prefix="Error: ", style="bold red", styled_prefix_only=True, quiet_hides=False
    ),
    "suggest": _Diagnostic(prefix="→ ", style="dim"),
    "debug": _Diagnostic(prefix="[debug] ", style="dim", verbose_only=True, quiet_hides=False),
    "progress": _Diagnostic(style="dim", tty_only=True),
}


class OutputManager:
    """Holds the output preferences of one ``utc`` invocation.

    Args:
        format: Rendering of stdout data. ``AUTO`` is resolved at
            construction time.
        no_color: Never emit Rich markup or ANSI colour.
        quiet: Hide informational stderr messages (warnings and errors
            still show).
        verbose: Show ``debug`` messages.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose

        if format == OutputFormat.AUTO:
            rich = _is_tty() and not self._no_color
            format = OutputFormat.RICH if rich else OutputFormat.PLAIN
        self._format = format

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=(format == OutputFormat.RICH),
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    # ------------------------------------------------------------------ #
    # stdout
    # ------------------------------------------------------------------ #

    def print_data(self, text: str) -> None:
        print(text, file=sys.stdout, flush=True)

    def print_json(self, data: Any) -> None:
        """Write *data* as indented JSON, syntax-highlighted in Rich mode."""
        text = json.dumps(data, indent=2, ensure_ascii=False, default=str)
        if self._format == OutputFormat.RICH:
            self._stdout.print(Syntax(text, "json", theme="monokai", word_wrap=True))
        else:
            self.print_data(text)

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Write rows under *headers*.

        JSON mode emits one object per row keyed by header; plain mode emits
        a tab-separated header line followed by one line per row; Rich mode
        draws a table titled *title*.
        """
        if self._format == OutputFormat.JSON:
            records = [dict(zip(headers, row)) for row in rows]
            self.print_data(json.dumps(records, indent=2, ensure_ascii=False))
            return

        if self._format == OutputFormat.PLAIN:
            for line in [headers, *rows]:
                self.print_data("\t".join(line))
            return

        table = Table(title=title, show_header=True, header_style="bold cyan")
        for header in headers:
            table.add_column(header)
        for row in rows:
            table.add_row(*row)
        self._stdout.print(table)

    # ------------------------------------------------------------------ #
    # stderr
    # ------------------------------------------------------------------ #

    def _emit(self, kind: str, message: str) -> None:
        rule = _DIAGNOSTICS[kind]
        if rule.quiet_hides and self._quiet:
            return
        if rule.verbose_only and not self._verbose:
            return
        if rule.tty_only and not _is_tty():
            return

        if self._no_color or rule.style is None:
            print(f"{rule.prefix}{message}", file=sys.stderr, flush=True)
        elif rule.styled_prefix_only:
            prefix = rule.prefix.rstrip()
            self._stderr.print(f"[{rule.style}]{escape(prefix)}[/{rule.style}] {escape(message)}")
        else:
            self._stderr.print(f"[{rule.style}]{escape(rule.prefix + message)}[/{rule.style}]")

    def info(self, message: str) -> None:
        self._emit("info", message)

    def success(self, message: str) -> None:
        self._emit("success", message)

    def warning(self, message: str) -> None:
        """Shown even with ``--quiet``."""
        self._emit("warning", message)

    def error(self, message: str) -> None:
        """Always shown."""
        self._emit("error", message)

    def suggest(self, message: str) -> None:
        """Next-step hint, prefixed with an arrow."""
        self._emit("suggest", message)

    def debug(self, message: str) -> None:
        self._emit("debug", message)

    def progress(self, message: str) -> None:
        """Per-pass status line; only when stdout is a terminal."""
        self._emit("progress", message)


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """``NO_COLOR`` (any value) or ``TERM=dumb`` disables colour."""
    return os.environ.get("NO_COLOR") is not None or os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Process-wide instance
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed manager, creating an ``AUTO`` one on first use."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Forget the installed manager (tests swap stdout between runs)."""
    global _output
    _output = None


def print_data(text: str) -> None:
    get_output().print_data(text)


def print_json(data: Any) -> None:
    get_output().print_json(data)


def print_table(headers: list[str], rows: list[list[str]], title: Optional[str] = None) -> None:
    get_output().print_table(headers, rows, title)


def info(message: str) -> None:
    get_output().info(message)


def error(message: str) -> None:
    get_output().error(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def suggest(message: str) -> None:
    get_output().suggest(message)


def debug(message: str) -> None:
    get_output().debug(message)


def progress(message: str) -> None:
    get_output().progress(message)
