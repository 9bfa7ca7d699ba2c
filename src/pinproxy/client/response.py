"""Result formatting bridge -- maps dispatcher results to the output system.

This module bridges the dispatcher and the output/formatting layer. After
:meth:`~pinproxy.client.PinboardClient.perform` returns,
:func:`format_result` writes the status line to stderr, routes the body
through :meth:`~pinproxy.output.OutputManager.format_response`, and
returns the process exit code matching the outcome.

See Also:
    :mod:`pinproxy.output` -- the output manager that renders data.
"""

from __future__ import annotations

from typing import Union

from pinproxy.exit_codes import (
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_RATE_LIMITED,
    EXIT_SUCCESS,
)
from pinproxy.models import CachedResponse, ErrorKind, ErrorResult
from pinproxy.output import get_output

_ERROR_EXIT_CODES = {
    ErrorKind.METHOD_NOT_ALLOWED: EXIT_INVALID_USAGE,
    ErrorKind.RATE_LIMITED: EXIT_RATE_LIMITED,
}


def format_result(result: Union[CachedResponse, ErrorResult]) -> int:
    """Print *result* and return the exit code for it.

    * :class:`ErrorResult` -- the plain-text message goes to stderr.
    * :class:`CachedResponse` -- ``HTTP <code>`` goes to stderr and the
      decoded body to stdout. A status of ``0`` means no response arrived.

    Args:
        result: The value returned by ``perform``.

    Returns:
        One of the constants from :mod:`pinproxy.exit_codes`.
    """
    output = get_output()

    if isinstance(result, ErrorResult):
        output.error(result.error_text)
        return _ERROR_EXIT_CODES.get(result.kind, EXIT_GENERIC_FAILURE)

    if result.http_code == 0:
        output.error("No response from the API (transport failure).")
        return EXIT_CONNECTION_ERROR

    output.info(f"HTTP {result.http_code}")
    if result.body is not None:
        output.format_response(result.body)

    if result.http_code >= 400:
        return EXIT_GENERIC_FAILURE
    return EXIT_SUCCESS
