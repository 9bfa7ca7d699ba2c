"""Where pinproxy keeps its files, and how the effective settings are resolved.

Three directories are used, laid out per the XDG Base Directory scheme on
Linux and the BSDs and under ``~/.pinproxy/`` elsewhere:

======  ==============================  ======================
kind    XDG location                    fallback
======  ==============================  ======================
config  ``$XDG_CONFIG_HOME/pinproxy``   ``~/.pinproxy``
cache   ``$XDG_CACHE_HOME/pinproxy``    ``~/.pinproxy/cache``
data    ``$XDG_DATA_HOME/pinproxy``     ``~/.pinproxy/logs``
======  ==============================  ======================

The config directory holds ``config.json`` (a serialised
:class:`~pinproxy.models.ProxyConfig`). The cache directory is the default
home of the request log and response cache; it is safe to delete, at the
price of forgetting every cooldown. The data directory only receives crash
logs.

:func:`resolve_config` layers CLI flags over ``PINPROXY_*`` environment
variables over ``./pinproxy.json`` over the user config. :func:`resolve_token`
turns the ``token``/``token_source`` settings into the API token.
"""

from __future__ import annotations

import contextlib
import getpass
import json
import os
import sys
import tempfile
from pathlib import Path
from typing import Any, Callable, Optional

from pydantic import ValidationError

from pinproxy.exceptions import ConfigError
from pinproxy.models import ProxyConfig

_APP_NAME = "pinproxy"
_CONFIG_FILENAME = "config.json"
_PROJECT_CONFIG_FILENAME = "pinproxy.json"

# kind -> (XDG variable, default under $HOME, sub-directory of the fallback)
_DIRECTORIES: dict[str, tuple[str, tuple[str, ...], tuple[str, ...]]] = {
    "config": ("XDG_CONFIG_HOME", (".config",), ()),
    "cache": ("XDG_CACHE_HOME", (".cache",), ("cache",)),
    "data": ("XDG_DATA_HOME", (".local", "share"), ("logs",)),
}

# environment variable -> (ProxyConfig field, parser)
_ENV_OVERRIDES: dict[str, tuple[str, Callable[[str], Any]]] = {
    "PINPROXY_ENDPOINT": ("endpoint", str),
    "PINPROXY_CACHE_DIR": ("cache_dir", str),
    "PINPROXY_CACHE_DURATION": ("cache_duration", int),
}


# --- Directories ---


def _is_xdg_platform() -> bool:
    return sys.platform.startswith(("linux", "freebsd", "openbsd", "netbsd"))


def _app_dir(kind: str) -> Path:
    env_var, home_default, fallback_sub = _DIRECTORIES[kind]
    if _is_xdg_platform():
        base = os.environ.get(env_var) or Path.home().joinpath(*home_default)
        path = Path(base) / _APP_NAME
    else:
        path = Path.home().joinpath(f".{_APP_NAME}", *fallback_sub)
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """Directory holding ``config.json`` (created if missing)."""
    return _app_dir("config")


def get_cache_dir() -> Path:
    """Default directory for ``request_log.json`` and ``response_cache.json``."""
    return _app_dir("cache")


def get_data_dir() -> Path:
    """Directory for crash logs (created if missing)."""
    return _app_dir("data")


# --- Atomic file writes ---


def atomic_write(path: Path, data: str) -> None:
    """Replace *path* with *data* in one rename.

    A reader of *path* sees either the previous or the new content. The
    user config and both state documents are written this way, so a crash
    mid-write cannot leave a truncated request log behind.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp_name)
        raise


# --- Config files ---


def config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def _read_json(path: Path, what: str) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ConfigError(f"Invalid {what} at {path}: {exc}") from exc


def load_config() -> ProxyConfig:
    """Load ``config.json``, or the defaults when it does not exist.

    Raises:
        ConfigError: If the file is not valid JSON or not a valid config.
    """
    path = config_path()
    if not path.is_file():
        return ProxyConfig()
    data = _read_json(path, "config")
    try:
        return ProxyConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc


def save_config(config: ProxyConfig) -> None:
    """Write *config* to ``config.json`` as given (``cache_duration`` unclamped)."""
    text = json.dumps(config.model_dump(mode="json"), indent=2)
    atomic_write(config_path(), text + "\n")


def load_project_config() -> Optional[dict[str, Any]]:
    """Return the overrides in ``./pinproxy.json``, or ``None`` without one.

    Any :class:`~pinproxy.models.ProxyConfig` field may appear. A project
    can, for instance, tighten ``method_cooldowns`` for a shared token.

    Raises:
        ConfigError: If the file is not a JSON object.
    """
    path = Path.cwd() / _PROJECT_CONFIG_FILENAME
    if not path.is_file():
        return None
    data = _read_json(path, "project config")
    if not isinstance(data, dict):
        raise ConfigError(f"Invalid project config at {path}: expected a JSON object")
    return data


def _env_overrides() -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for env_var, (field, parse) in _ENV_OVERRIDES.items():
        raw = os.environ.get(env_var)
        if not raw:
            continue
        try:
            overrides[field] = parse(raw)
        except ValueError:
            raise ConfigError(f"{env_var} must be an integer, got: {raw}") from None
    return overrides


def resolve_config(
    cli_endpoint: Optional[str] = None,
    cli_cache_dir: Optional[str] = None,
    cli_cache_duration: Optional[int] = None,
) -> ProxyConfig:
    """Build the effective configuration.

    Later layers win: defaults, user ``config.json``, ``./pinproxy.json``,
    ``PINPROXY_ENDPOINT``/``PINPROXY_CACHE_DIR``/``PINPROXY_CACHE_DURATION``,
    then the ``--endpoint``/``--cache-dir``/``--cache-duration`` flags.
    Because the cache-duration clamp is a property of the result, it always
    reflects the final cooldown table.

    Raises:
        ConfigError: If any layer is invalid or the merged result is.
    """
    data = load_config().model_dump(mode="json")
    data.update(load_project_config() or {})
    data.update(_env_overrides())
    cli = {
        "endpoint": cli_endpoint,
        "cache_dir": cli_cache_dir,
        "cache_duration": cli_cache_duration,
    }
    data.update({field: value for field, value in cli.items() if value is not None})

    try:
        return ProxyConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


def state_dir(config: ProxyConfig) -> Path:
    """Directory holding the request log and response cache for *config*."""
    if config.cache_dir:
        return Path(config.cache_dir).expanduser()
    return get_cache_dir()


# --- API token ---


def _token_from_env(name: str) -> str:
    value = os.environ.get(name)
    if value is None:
        raise ConfigError(f"Environment variable '{name}' is not set (source: env:{name})")
    return value


def _token_from_file(name: str) -> str:
    path = Path(name).expanduser()
    if not path.is_file():
        raise ConfigError(f"Token file not found: {path}")
    try:
        return path.read_text(encoding="utf-8").strip()
    except OSError as exc:
        raise ConfigError(f"Cannot read token file {path}: {exc}") from exc


def _token_from_prompt() -> str:
    if not sys.stdin.isatty():
        raise ConfigError("Cannot prompt for the API token: stdin is not a TTY")
    return getpass.getpass("Pinboard API token: ")


def resolve_credential(source: str) -> str:
    """Read a token from ``env:NAME``, ``file:/path`` or ``prompt``.

    Raises:
        ConfigError: If the source is malformed or yields nothing.
    """
    if source == "prompt":
        return _token_from_prompt()
    scheme, sep, argument = source.partition(":")
    readers = {"env": _token_from_env, "file": _token_from_file}
    if not sep or scheme not in readers:
        raise ConfigError(f"Unknown credential source format: {source}")
    return readers[scheme](argument)


def resolve_token(config: ProxyConfig) -> str:
    """Return the API token: the literal ``token`` if set, else ``token_source``."""
    if config.token:
        return config.token
    return resolve_credential(config.token_source)
