"""Canonical Pydantic models shared across all pinproxy modules.

This is the single source of truth for data shapes in the project. The
models fall into two groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`ProxyConfig` and the :class:`AllowedMethods` policy derived from
    its ``allowed_methods`` list.

**State and result models** -- produced and consumed by the dispatcher:
    :class:`CachedResponse` (one entry of the response cache),
    :class:`RequestLog` (the request-log document), :class:`ErrorKind` and
    :class:`ErrorResult` (structured, non-fatal request outcomes).

The API payload inside :class:`CachedResponse` is kept opaque because its
schema varies by method.
"""

from __future__ import annotations

import enum
import html
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

GLOBAL_CATEGORY = "global"
"""Cooldown category used by every method without its own cooldown entry."""

WILDCARD_SUFFIX = "*"
"""Suffix marking an ``allowed_methods`` entry as a prefix rule (``notes/*``)."""

DEFAULT_ENDPOINT = "https://api.pinboard.in/v1/"

DEFAULT_ALLOWED_METHODS: list[str] = [
    "posts/update",
    "posts/get",
    "posts/recent",
    "posts/dates",
    "posts/all",
    "posts/suggest",
    "tags/get",
    "user/secret",
    "notes/list",
    "notes/*",
]

DEFAULT_METHOD_COOLDOWNS: dict[str, int] = {
    GLOBAL_CATEGORY: 3,
    "posts/recent": 60,
    "posts/all": 300,
}


# --- Allowed methods ---


class AllowedMethods(BaseModel):
    """The set of API methods the proxy will forward.

    Exact names are matched literally. At most one prefix rule may be
    present; a method is also allowed when it starts with that prefix.

    Example::

        policy = AllowedMethods.from_entries(["posts/get", "notes/*"])
        policy.permits("notes/abc123")   # True
        policy.permits("posts/delete")   # False
    """

    model_config = ConfigDict(frozen=True)

    exact: frozenset[str] = Field(default_factory=frozenset)
    prefix: Optional[str] = None

    @classmethod
    def from_entries(cls, entries: list[str]) -> AllowedMethods:
        """Split configuration entries into exact names and a prefix rule."""
        exact: set[str] = set()
        prefix: Optional[str] = None
        for entry in entries:
            if entry.endswith(WILDCARD_SUFFIX):
                prefix = entry[: -len(WILDCARD_SUFFIX)]
            else:
                exact.add(entry)
        return cls(exact=frozenset(exact), prefix=prefix)

    def permits(self, method: str) -> bool:
        if method in self.exact:
            return True
        return bool(self.prefix) and method.startswith(self.prefix)


# --- Configuration ---


class ProxyConfig(BaseModel):
    """User configuration persisted at ``~/.config/pinproxy/config.json``.

    Loaded and saved by :func:`~pinproxy.config.load_config` and
    :func:`~pinproxy.config.save_config`. Values here have the lowest
    precedence and can be overridden by project config, environment
    variables, or CLI flags. See :func:`~pinproxy.config.resolve_config`.

    ``cache_duration`` keeps the value the user configured. The duration
    actually applied is :attr:`effective_cache_duration`: a non-zero duration
    raised to at least the largest cooldown of the final table, so a cached
    entry never expires before the request it stands in for could be re-sent.
    """

    endpoint: str = Field(default=DEFAULT_ENDPOINT, description="API endpoint URL")
    token: Optional[str] = Field(
        default=None, description="Literal API token (takes precedence over token_source)"
    )
    token_source: str = Field(
        default="env:PINBOARD_API_TOKEN",
        description="Credential source: env:VAR, file:/path, prompt",
    )
    allowed_methods: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ALLOWED_METHODS),
        description="Permitted API methods; one entry may end in '*' as a prefix rule",
    )
    method_cooldowns: dict[str, int] = Field(
        default_factory=lambda: dict(DEFAULT_METHOD_COOLDOWNS),
        description="Minimum seconds between requests, per method or 'global'",
    )
    cache_dir: Optional[str] = Field(
        default=None, description="Directory for request_log.json and response_cache.json"
    )
    cache_duration: int = Field(
        default=0, description="Seconds a cached response stays usable (0 disables caching)"
    )
    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")

    @field_validator("method_cooldowns")
    @classmethod
    def _check_cooldowns(cls, value: dict[str, int]) -> dict[str, int]:
        if GLOBAL_CATEGORY not in value:
            raise ValueError(f"method_cooldowns must define a '{GLOBAL_CATEGORY}' entry")
        negative = sorted(k for k, v in value.items() if v < 0)
        if negative:
            raise ValueError(f"cooldowns must not be negative: {', '.join(negative)}")
        return value

    @field_validator("allowed_methods")
    @classmethod
    def _check_allowed_methods(cls, value: list[str]) -> list[str]:
        wildcards = [entry for entry in value if entry.endswith(WILDCARD_SUFFIX)]
        if len(wildcards) > 1:
            raise ValueError(
                f"only one prefix rule is supported, got: {', '.join(wildcards)}"
            )
        return value

    @property
    def effective_cache_duration(self) -> int:
        """Cache duration in seconds after clamping (``0`` when disabled)."""
        from pinproxy.cache.policy import effective_cache_duration

        return effective_cache_duration(self.cache_duration, self.method_cooldowns)

    @property
    def allowed(self) -> AllowedMethods:
        """The :class:`AllowedMethods` policy built from ``allowed_methods``."""
        return AllowedMethods.from_entries(self.allowed_methods)

    @property
    def cooldown_categories(self) -> list[str]:
        """Every method with its own cooldown entry, excluding ``global``."""
        return [k for k in self.method_cooldowns if k != GLOBAL_CATEGORY]


# --- Persisted state ---


class CachedResponse(BaseModel):
    """One response as returned to callers and stored in the response cache.

    Attributes:
        body: The decoded JSON payload, or ``None`` when the transport
            failed or the body was not valid JSON.
        http_code: HTTP status code; ``0`` when no response was received.
        request_time: Unix timestamp (seconds) at which the request was made.
    """

    body: Any = None
    http_code: int = 0
    request_time: int = 0

    @property
    def is_too_many_requests(self) -> bool:
        return self.http_code == 429

    def as_dict(self) -> dict[str, Any]:
        """Return the flat form: the API's own fields merged with status and time.

        Non-object payloads (lists, scalars) are placed under ``"body"``.
        """
        merged: dict[str, Any] = {}
        if isinstance(self.body, dict):
            merged.update(self.body)
        elif self.body is not None:
            merged["body"] = self.body
        merged["http_code"] = self.http_code
        merged["request_time"] = self.request_time
        return merged


class RequestLog(BaseModel):
    """The request-log document: last request time per cooldown category.

    Persisted as a flat object so existing log files stay readable::

        {"last-global": 1700000000, "last-posts/all": 1699999000,
         "last_request_hash": "9f86d0..."}
    """

    timestamps: dict[str, int] = Field(default_factory=dict)
    last_request_hash: Optional[str] = None

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> RequestLog:
        """Parse the flat document written by :meth:`to_document`.

        Raises:
            pydantic.ValidationError: If a timestamp is not an integer or the
                hash is not a string.
        """
        timestamps = {
            key[len("last-"):]: value
            for key, value in document.items()
            if key.startswith("last-")
        }
        timestamps.setdefault(GLOBAL_CATEGORY, 0)
        return cls(
            timestamps=timestamps,
            last_request_hash=document.get("last_request_hash"),
        )

    def to_document(self) -> dict[str, Any]:
        document: dict[str, Any] = {
            f"last-{category}": value for category, value in self.timestamps.items()
        }
        if self.last_request_hash is not None:
            document["last_request_hash"] = self.last_request_hash
        return document

    def last(self, category: str) -> int:
        """Timestamp of the last request in *category* (``0`` if never)."""
        return self.timestamps.get(category, 0)

    def touch(self, category: str, now: int) -> None:
        self.timestamps[category] = now


# --- Request outcomes ---


class ErrorKind(str, enum.Enum):
    """Failure categories surfaced by the dispatcher."""

    METHOD_NOT_ALLOWED = "method_not_allowed"
    RATE_LIMITED = "rate_limited"
    TRANSPORT_FAILURE = "transport_failure"
    IO_FAILURE = "io_failure"


_ERROR_HTML = "<p style='color: red; font-weight: bold;'>{}</p>\n"


class ErrorResult(BaseModel):
    """A request that was refused locally, ready for inline display.

    Carries both a plain-text message and an HTML fragment so callers that
    render pages can show the error in place instead of aborting.
    """

    kind: ErrorKind
    error_text: str
    error_html: str

    @classmethod
    def method_not_allowed(cls, method: str) -> ErrorResult:
        return cls(
            kind=ErrorKind.METHOD_NOT_ALLOWED,
            error_text=f"The method “{method}” is not permitted.",
            error_html=_ERROR_HTML.format(
                f"The method “<code>{html.escape(method)}</code>” is not permitted."
            ),
        )

    @classmethod
    def rate_limited(cls) -> ErrorResult:
        message = "Too many requests. Wait a bit, then try again."
        return cls(
            kind=ErrorKind.RATE_LIMITED,
            error_text=message,
            error_html=_ERROR_HTML.format(message),
        )

    def as_dict(self) -> dict[str, str]:
        """Return the ``{"error-text", "error-html"}`` mapping."""
        return {"error-text": self.error_text, "error-html": self.error_html}
