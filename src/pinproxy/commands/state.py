"""State commands -- inspect and reset the proxy's persisted state.

Provides the ``pinproxy state`` sub-command group. ``show`` reports how
long each cooldown category still has to wait and whether the post-429
penalty is active; ``reset-log`` zeroes every cooldown timestamp;
``clear-cache`` empties the response cache.
"""

from __future__ import annotations

from datetime import datetime, timezone

import typer

from pinproxy.commands import make_client
from pinproxy.output import (
    OutputFormat,
    format_response,
    get_output,
    info,
    print_table,
    success,
)

state_app = typer.Typer(no_args_is_help=True)


def _format_timestamp(value: int) -> str:
    if not value:
        return "never"
    return datetime.fromtimestamp(value, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def _confirm(ctx: typer.Context, prompt: str) -> None:
    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force and not typer.confirm(prompt):
        info("Cancelled.")
        raise typer.Exit()


@state_app.command("show")
def state_show(ctx: typer.Context) -> None:
    """Show cooldown status per category and response cache statistics.

    Example::

        pinproxy state show
        pinproxy --json state show
    """
    client = make_client(ctx, needs_token=False)
    status = client.status()

    if get_output().format == OutputFormat.JSON:
        format_response(status)
        return

    records = [
        {
            "category": category,
            "last request": _format_timestamp(entry["last_request"]),
            "cooldown (s)": entry["cooldown"],
            "wait (s)": entry["wait"],
        }
        for category, entry in status["categories"].items()
    ]
    print_table(records, title="Cooldowns")

    cache = status["cache"]
    info(f"State directory: {client.store.directory}")
    if status["escalated"]:
        info("Last response was HTTP 429: penalty cooldown in effect.")
    if cache["enabled"]:
        info(f"Response cache: {cache['size']} entries, {cache['duration']}s duration")
    else:
        info("Response cache: disabled")


@state_app.command("reset-log")
def state_reset_log(ctx: typer.Context) -> None:
    """Reset every cooldown timestamp to zero.

    The next request for any method is allowed immediately. Asks for
    confirmation unless ``--force`` is active.

    Example::

        pinproxy --force state reset-log
    """
    _confirm(ctx, "Reset the request log? Cooldowns will no longer apply to the next request.")
    make_client(ctx, needs_token=False).reset_request_log()
    success("Request log reset.")


@state_app.command("clear-cache")
def state_clear_cache(ctx: typer.Context) -> None:
    """Remove every cached response.

    Asks for confirmation unless ``--force`` is active.

    Example::

        pinproxy --force state clear-cache
    """
    _confirm(ctx, "Clear all cached responses?")
    make_client(ctx, needs_token=False).clear_response_cache()
    success("Response cache cleared.")
