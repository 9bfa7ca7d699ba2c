"""Request command -- send one API call through the proxy.

Implements ``pinproxy request METHOD [key=value ...]``. The call goes
through the same allow-list, cache, and cooldown checks as library use,
so running it repeatedly from a shell respects the API's rate limits.
"""

from __future__ import annotations

from typing import Optional

import typer

from pinproxy.commands import make_client
from pinproxy.exceptions import InvalidUsageError


def parse_params(pairs: list[str]) -> dict[str, str]:
    """Turn ``key=value`` arguments into a parameter mapping.

    Raises:
        InvalidUsageError: If an argument has no ``=`` or an empty key.
    """
    params: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise InvalidUsageError(f"Expected key=value, got: {pair}")
        params[key] = value
    return params


def request_command(
    ctx: typer.Context,
    method: str = typer.Argument(help="API method, e.g. 'posts/recent'."),
    params: Optional[list[str]] = typer.Argument(
        None, help="Query parameters as key=value pairs."
    ),
) -> None:
    """Send an API request, honouring the cache and cooldowns.

    The decoded response body is written to stdout and the HTTP status to
    stderr. Refused requests print their message and exit non-zero.

    Raises:
        typer.Exit: With 2 if the method is not permitted, 9 if rate
            limited, 6 on transport failure.

    Example::

        pinproxy request posts/recent count=5
        pinproxy --json request posts/get tag=python
    """
    from pinproxy.client.response import format_result

    query = parse_params(params or [])
    with make_client(ctx) as client:
        result = client.perform(method, query)
    code = format_result(result)
    if code:
        raise typer.Exit(code=code)
