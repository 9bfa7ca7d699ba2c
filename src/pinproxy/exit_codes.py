"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~pinproxy.exceptions.PinproxyError` subclass or by
the ``request`` command when the dispatcher returns an
:class:`~pinproxy.models.ErrorResult`.
Shell wrappers can inspect the exit code to determine the failure class
without parsing stderr.

Example::

    $ pinproxy request posts/all
    $ echo $?
    9   # EXIT_RATE_LIMITED -- the posts/all cooldown has not elapsed
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or a method that is not permitted."""

EXIT_CONNECTION_ERROR = 6
"""The request was sent but no usable response came back (transport failure)."""

EXIT_STORE_ERROR = 8
"""The request log or response cache could not be written."""

EXIT_RATE_LIMITED = 9
"""The request was refused locally because a cooldown has not elapsed."""
