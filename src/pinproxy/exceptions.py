"""Exception hierarchy for pinproxy.

All exceptions inherit from :class:`PinproxyError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`pinproxy.exit_codes`.
The top-level error handler in :func:`pinproxy.app.main` catches
``PinproxyError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Expected, user-facing outcomes of a request (method not permitted, cooldown
not elapsed) are *not* exceptions: the dispatcher returns them as
:class:`~pinproxy.models.ErrorResult` values so that page-rendering callers
can show the message inline.

Subclass hierarchy::

    PinproxyError (exit 1)
    +-- InvalidUsageError   (exit 2)
    +-- ConfigError         (exit 1)
    +-- StoreError          (exit 8)
"""

from pinproxy.exit_codes import (
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_STORE_ERROR,
)


class PinproxyError(Exception):
    """Base exception for all pinproxy errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`pinproxy.exit_codes`. The entry point catches
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


class InvalidUsageError(PinproxyError):
    """Raised for invalid CLI arguments (e.g. a malformed ``key=value`` parameter)."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(PinproxyError):
    """Raised for configuration problems (invalid JSON, missing token, bad credential sources)."""

    exit_code = EXIT_GENERIC_FAILURE


class StoreError(PinproxyError):
    """Raised when the request log or response cache cannot be persisted.

    A failed save silently breaks future rate limiting, so unlike a failed
    load (which falls back to defaults) it always surfaces to the caller.
    """

    exit_code = EXIT_STORE_ERROR
