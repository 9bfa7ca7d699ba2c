"""Built-in CLI sub-commands for pinproxy.

This package groups the Typer sub-command modules that form the CLI's
top-level command tree:

* :mod:`~pinproxy.commands.request` -- send one API request through the proxy.
* :mod:`~pinproxy.commands.state` -- inspect or reset the request log and
  response cache.
* :mod:`~pinproxy.commands.config` -- view and modify user settings.

Each module either exports a :class:`typer.Typer` sub-application (for
multi-command groups like ``state`` and ``config``) or a plain callback
function registered directly on the root app (for single commands like
``request``).
"""

from __future__ import annotations

import typer

from pinproxy.client import PinboardClient


def make_client(ctx: typer.Context, needs_token: bool = True) -> PinboardClient:
    """Build a :class:`PinboardClient` from the config overrides in ``ctx.obj``.

    Args:
        ctx: Typer context populated by :func:`~pinproxy.app.main_callback`.
        needs_token: When ``False`` the token is not resolved, so state
            commands work without credentials.
    """
    from pinproxy.config import resolve_config

    obj = ctx.obj or {}
    config = resolve_config(
        cli_endpoint=obj.get("endpoint"),
        cli_cache_dir=obj.get("cache_dir"),
        cli_cache_duration=obj.get("cache_duration"),
    )
    return PinboardClient(config, token=None if needs_token else "")
