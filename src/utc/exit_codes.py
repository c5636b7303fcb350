"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~utc.exceptions.UtcError` subclass.
CI scripts can inspect the exit code to tell a bad configuration apart
from a failing bundler without parsing stderr.

Example::

    $ utc build
    $ echo $?
    4   # EXIT_ENTRY_CONFLICT -- two modules claim the same subpath
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_CONFIG_ERROR = 3
"""The configuration (conditions, source annotations, config file) is invalid."""

EXIT_ENTRY_CONFLICT = 4
"""Two source files resolved to the same entry subpath or bin id."""

EXIT_BUILD_FAILURE = 5
"""The external bundler failed for one build pass."""

EXIT_PACKAGE_JSON_ERROR = 6
"""``package.json`` is missing, unreadable, or not a JSON object."""

EXIT_INTERRUPTED = 130
"""The invocation was cancelled with Ctrl-C."""
