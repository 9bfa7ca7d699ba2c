"""pinproxy -- a rate-limited, caching proxy for the Pinboard bookmarking API.

This package sits between a calling application and the Pinboard API. Every
request goes through a single dispatcher that checks the method against an
allow-list, serves fresh responses from a local cache, enforces per-method
cooldowns (with a longer penalty after an HTTP 429), and persists its
request log and response cache as JSON documents on disk.

Typical usage::

    from pinproxy import PinboardClient, ProxyConfig

    config = ProxyConfig(token="user:TOKEN", cache_duration=600)
    with PinboardClient(config) as client:
        result = client.perform("posts/recent", {"count": 10})

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models shared across the package.
    config: XDG-aware configuration loading and precedence resolution.
    store: JSON-backed persistent state (request log, response cache).
    cooldown: Cooldown policy deciding whether a request may be sent.
    cache: Response cache policy and document updates.
    client: The request dispatcher.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"

from pinproxy.client import PinboardClient  # noqa: E402
from pinproxy.models import CachedResponse, ErrorKind, ErrorResult, ProxyConfig  # noqa: E402

__all__ = [
    "PinboardClient",
    "ProxyConfig",
    "CachedResponse",
    "ErrorResult",
    "ErrorKind",
    "__version__",
]
