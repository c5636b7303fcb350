"""Built-in CLI sub-commands for utc.

This package groups all Typer sub-command modules that form the CLI's
top-level command tree:

* :mod:`~utc.commands.build` -- run every build pass and rewrite
  ``package.json``.
* :mod:`~utc.commands.inspect` -- preview build passes, entries and bins.
* :mod:`~utc.commands.config` -- show the effective configuration.

Each module either exports a :class:`typer.Typer` sub-application (for
multi-command groups like ``inspect`` and ``config``) or a plain callback
function registered directly on the root app (for ``build``).
"""
