"""Exception hierarchy for utc.

All fatal exceptions inherit from :class:`UtcError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`utc.exit_codes`.
The top-level error handler in :func:`utc.app.main` catches ``UtcError``
and exits with the appropriate code, while unexpected exceptions produce a
crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    UtcError (exit 1)
    +-- InvalidUsageError       (exit 2)
    +-- ConfigError             (exit 3)
    |   +-- ConditionSpecError  (exit 3)
    |   +-- ModulePathError     (exit 3)
    |   +-- EntryConflictError  (exit 4)
    +-- BuildError              (exit 5)
    +-- PackageJsonError        (exit 6)

:class:`DocCommentError` is deliberately outside the hierarchy: it is a
per-file scan error that the module scanner recovers from locally.
"""

from utc.exit_codes import (
    EXIT_BUILD_FAILURE,
    EXIT_CONFIG_ERROR,
    EXIT_ENTRY_CONFLICT,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_PACKAGE_JSON_ERROR,
)


class UtcError(Exception):
    """Base exception for all fatal utc errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`utc.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(UtcError):
    """Raised for invalid CLI arguments (e.g. an unparsable ``--conditions`` value)."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(UtcError):
    """Raised for configuration problems (invalid config file, bad option values)."""

    exit_code = EXIT_CONFIG_ERROR


class ConditionSpecError(ConfigError):
    """Raised when the condition spec is neither a label list nor a group mapping."""


class ModulePathError(ConfigError):
    """Raised when a ``@modulePath`` annotation cannot be normalized to a subpath."""


class EntryConflictError(ConfigError):
    """Raised when two distinct files resolve to the same subpath or bin id.

    Args:
        subpath: The contested subpath (or bin id).
        existing: The file that claimed the subpath first.
        conflicting: The file that tried to claim it second.
    """

    exit_code = EXIT_ENTRY_CONFLICT

    def __init__(self, subpath: str, existing: str, conflicting: str, kind: str = "Subpath"):
        super().__init__(
            f"{kind} conflict: '{subpath}' is defined by both "
            f"'{existing}' and '{conflicting}'."
        )
        self.subpath = subpath
        self.existing = existing
        self.conflicting = conflicting


class BuildError(UtcError):
    """Raised when the external bundler fails for one build pass."""

    exit_code = EXIT_BUILD_FAILURE


class PackageJsonError(UtcError):
    """Raised when ``package.json`` is missing, unreadable, or not a JSON object."""

    exit_code = EXIT_PACKAGE_JSON_ERROR


class DocCommentError(Exception):
    """Raised by the doc-comment lexer when a file's leading trivia is malformed.

    The module scanner catches this, logs a warning, and excludes the file
    from root and bin candidacy.
    """
