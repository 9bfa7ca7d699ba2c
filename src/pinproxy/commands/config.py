"""Config commands -- view and modify the user configuration.

Provides the ``pinproxy config`` sub-command group for reading,
updating, and resetting the user's configuration file
(:class:`~pinproxy.models.ProxyConfig`). Settings are persisted in the
pinproxy config directory and control the endpoint, token source,
allowed methods, cooldowns, and cache duration.
"""

from __future__ import annotations

from typing import Any

import typer

from pinproxy.output import error, format_response, info, success, warning

config_app = typer.Typer(no_args_is_help=True)


def _coerce(current: Any, value: str, key: str) -> Any:
    """Convert *value* to the type of the field it replaces.

    Raises:
        typer.Exit: With code 2 if an integer or number is expected and
            *value* is not one.
    """
    if isinstance(current, bool):
        return value.lower() in ("true", "1", "yes")
    if isinstance(current, int):
        try:
            return int(value)
        except ValueError:
            error(f"Expected integer for {key}, got: {value}")
            raise typer.Exit(code=2) from None
    if isinstance(current, float):
        try:
            return float(value)
        except ValueError:
            error(f"Expected number for {key}, got: {value}")
            raise typer.Exit(code=2) from None
    if isinstance(current, list):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


@config_app.command("show")
def config_show() -> None:
    """Show current configuration.

    Prints the config file path followed by the stored configuration.
    The API token, if stored literally, is masked.

    Example::

        pinproxy config show
        pinproxy --json config show
    """
    from pinproxy.config import config_path, load_config

    config = load_config()
    info(f"Config file: {config_path()}")
    data = config.model_dump(mode="json")
    if data.get("token"):
        data["token"] = "********"
    format_response(data)


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key (dot notation for cooldowns, e.g. 'method_cooldowns.posts/all')."
    ),
    value: str = typer.Argument(help="Value to set (comma-separated for lists)."),
) -> None:
    """Set a configuration value.

    The value is coerced to match the existing field's type (bool, int,
    float, list, or str). New entries may be added to ``method_cooldowns``
    and are stored as integers. The updated config is validated against
    :class:`~pinproxy.models.ProxyConfig` before saving. The configured
    ``cache_duration`` is stored as given; a warning shows when the clamp
    raises the duration actually applied.

    Raises:
        typer.Exit: With code 2 if the key path is invalid, the value
            cannot be coerced, or Pydantic validation fails.

    Example::

        pinproxy config set cache_duration 600
        pinproxy config set method_cooldowns.posts/all 300
        pinproxy config set allowed_methods posts/get,posts/recent,notes/*
    """
    from pydantic import ValidationError

    from pinproxy.config import load_config, save_config
    from pinproxy.models import ProxyConfig

    config = load_config()
    data = config.model_dump(mode="json")

    # Split on the first dot only; the rest is a method name.
    field, _, sub_key = key.partition(".")
    if field not in data:
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=2)

    if sub_key:
        target = data[field]
        if not isinstance(target, dict):
            error(f"Invalid config key: {key}")
            raise typer.Exit(code=2)
        current = target.get(sub_key, 0)
        coerced = _coerce(current, value, key)
        target[sub_key] = coerced
    else:
        coerced = _coerce(data[field], value, key)
        data[field] = coerced

    try:
        new_config = ProxyConfig.model_validate(data)
    except ValidationError as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=2) from None

    save_config(new_config)
    success(f"Set {key} = {coerced}")
    configured = new_config.cache_duration
    effective = new_config.effective_cache_duration
    if field in ("cache_duration", "method_cooldowns") and 0 < configured < effective:
        warning(
            f"cache_duration {configured}s applies as {effective}s "
            "to match the longest cooldown"
        )


@config_app.command("unset")
def config_unset(
    key: str = typer.Argument(help="Cooldown entry to remove, e.g. 'method_cooldowns.posts/all'."),
) -> None:
    """Remove a per-method cooldown entry.

    The method then falls back to the ``global`` cooldown. The ``global``
    entry itself cannot be removed.

    Raises:
        typer.Exit: With code 2 if the key is not a removable cooldown entry.
    """
    from pinproxy.config import load_config, save_config
    from pinproxy.models import GLOBAL_CATEGORY

    field, _, method = key.partition(".")
    config = load_config()
    if field != "method_cooldowns" or method not in config.method_cooldowns:
        error(f"No such cooldown entry: {key}")
        raise typer.Exit(code=2)
    if method == GLOBAL_CATEGORY:
        error(f"The '{GLOBAL_CATEGORY}' cooldown is required")
        raise typer.Exit(code=2)

    del config.method_cooldowns[method]
    save_config(config)
    success(f"Removed {key}")


@config_app.command("reset")
def config_reset(
    ctx: typer.Context,
) -> None:
    """Reset configuration to defaults.

    Replaces the persisted config with a fresh
    :class:`~pinproxy.models.ProxyConfig` containing all default values.
    Asks for confirmation unless ``--force`` is active.

    Raises:
        typer.Exit: If the user declines confirmation.

    Example::

        pinproxy config reset
        pinproxy --force config reset
    """
    from pinproxy.config import save_config
    from pinproxy.models import ProxyConfig

    force = ctx.obj.get("force", False) if ctx.obj else False
    if not force:
        confirmed = typer.confirm("Reset all config to defaults?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    save_config(ProxyConfig())
    success("Configuration reset to defaults.")
