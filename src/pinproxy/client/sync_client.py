"""Synchronous request dispatcher with allow-list, cache, and cooldowns.

This module provides :class:`PinboardClient`, the single entry point
through which every Pinboard API request passes. It wraps
:class:`httpx.Client` and layers on:

- **Method authorization** -- only methods in the configured allow-list
  (or matching its prefix rule) are forwarded.
- **Response caching** -- fresh responses are served from the
  :class:`~pinproxy.cache.ResponseCache` without touching the network.
- **Cooldowns** -- per-method minimum intervals, escalated after an HTTP
  429, enforced by :func:`~pinproxy.cooldown.check_cooldown`.
- **Persistence** -- every response that reaches the network is recorded
  in the response cache and the request log.

There are deliberately no retries: one call to :meth:`PinboardClient.perform`
issues at most one HTTP request.
"""

from __future__ import annotations

import hashlib
import time
from typing import Any, Callable, Mapping, Optional, Union
from urllib.parse import urlencode

import httpx

from pinproxy.cache import ResponseCache
from pinproxy.config import resolve_token, state_dir
from pinproxy.cooldown import TOO_MANY_REQUESTS, check_cooldown
from pinproxy.models import (
    GLOBAL_CATEGORY,
    CachedResponse,
    ErrorResult,
    ProxyConfig,
    RequestLog,
)
from pinproxy.output import get_output
from pinproxy.store import StateStore, StoreKind

Result = Union[CachedResponse, ErrorResult]

_FIXED_PARAMS = ("format", "auth_token")


def request_fingerprint(url: str) -> str:
    """Return the cache key for a fully-constructed request URL."""
    return hashlib.sha256(url.encode("utf-8")).hexdigest()


def _query_value(value: Any) -> str:
    """Render a parameter value the way the Pinboard API expects it."""
    if isinstance(value, bool):
        return "yes" if value else "no"
    return str(value)


class PinboardClient:
    """Rate-limited, caching client for the Pinboard API.

    Must be used as a context manager so that the underlying transport is
    properly opened and closed. State (request log and response cache) is
    re-read from the store at the start of each :meth:`perform` and written
    back at the end.

    Args:
        config: Effective configuration (endpoint, allow-list, cooldowns,
            cache duration, request settings).
        store: Persistent store for the request log and response cache.
            Defaults to a :class:`~pinproxy.store.StateStore` in
            :func:`~pinproxy.config.state_dir`.
        token: API token. Defaults to :func:`~pinproxy.config.resolve_token`.
        transport: Optional :mod:`httpx` transport, e.g. a
            :class:`httpx.MockTransport` in tests.
        clock: Returns the current Unix time; truncated to whole seconds.

    Example::

        with PinboardClient(config) as client:
            result = client.perform("posts/recent", {"count": 5})
            if isinstance(result, ErrorResult):
                print(result.error_text)
    """

    def __init__(
        self,
        config: ProxyConfig,
        store: Optional[StateStore] = None,
        token: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config
        self._allowed = config.allowed
        self._store = store or StateStore(state_dir(config), config.cooldown_categories)
        self._cache = ResponseCache(self._store, config.effective_cache_duration)
        self._token = token if token is not None else resolve_token(config)
        self._transport = transport
        self._clock = clock
        self._client: Optional[httpx.Client] = None

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> PinboardClient:
        self._client = httpx.Client(
            timeout=self._config.timeout,
            verify=self._config.verify_ssl,
            follow_redirects=True,
            transport=self._transport,
        )
        return self

    def __exit__(self, *args: object) -> None:
        if self._client:
            self._client.close()
            self._client = None

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    @property
    def store(self) -> StateStore:
        return self._store

    # ------------------------------------------------------------------ #
    # Public operations
    # ------------------------------------------------------------------ #

    def perform(self, method: str, params: Optional[Mapping[str, Any]] = None) -> Result:
        """Send *method* with *params* to the API, subject to cache and cooldowns.

        Steps, in order:

        1. Refuse methods outside the allow-list.
        2. Build the request URL and its fingerprint.
        3. Return a fresh cached response for the same URL, if any.
        4. Refuse the request if its cooldown has not elapsed.
        5. Issue one GET request and wrap the outcome.
        6. Record the response and update the request log.

        Args:
            method: API method, e.g. ``"posts/get"``.
            params: Query parameters; order does not matter.

        Returns:
            A :class:`~pinproxy.models.CachedResponse` (fresh or cached), or
            an :class:`~pinproxy.models.ErrorResult` when the method is not
            permitted or the request is rate limited. Transport failures
            come back as a ``CachedResponse`` with ``http_code`` ``0``.

        Raises:
            StoreError: If the updated state cannot be written.
        """
        output = get_output()

        # 1. Method authorization
        if not self._allowed.permits(method):
            output.debug(f"Refusing method not in allow-list: {method}")
            return ErrorResult.method_not_allowed(method)

        # 2. Fingerprint
        url = self.build_url(method, params)
        fingerprint = request_fingerprint(url)
        now = int(self._clock())

        # 3. Cache short-circuit
        cached = self._cache.lookup(fingerprint, now)
        if cached is not None:
            output.debug(f"Cache hit: {method} (recorded {now - cached.request_time}s ago)")
            return cached

        # 4. Cooldown check
        log = RequestLog.from_document(self._store.load(StoreKind.REQUEST_LOG))
        previous_status = self._cache.previous_status(log.last_request_hash)
        decision = check_cooldown(
            method, self._config.method_cooldowns, log, now, previous_status,
        )
        if not decision.allowed:
            reason = "after HTTP 429" if decision.escalated else f"category {decision.category}"
            output.debug(
                f"Rate limited: {method} ({reason}, {decision.remaining}s remaining)"
            )
            return ErrorResult.rate_limited()

        # 5. Network call + response assembly
        response = self._send(url, now)

        # 6. State update
        self._cache.record(fingerprint, response)
        log.touch(GLOBAL_CATEGORY, now)
        if decision.category != GLOBAL_CATEGORY:
            log.touch(decision.category, now)
        log.last_request_hash = fingerprint
        self._store.save(StoreKind.REQUEST_LOG, log.to_document())

        return response

    def build_url(self, method: str, params: Optional[Mapping[str, Any]] = None) -> str:
        """Return the full request URL for *method* with a canonical query string.

        ``format`` and ``auth_token`` come first; caller parameters follow,
        sorted by name, so the URL (and its fingerprint) does not depend on
        insertion order. Caller parameters may override the fixed ones;
        parameters whose value is ``None`` are dropped.
        """
        merged: dict[str, Any] = {"format": "json", "auth_token": self._token}
        merged.update(params or {})

        items = [(key, merged[key]) for key in _FIXED_PARAMS if merged.get(key) is not None]
        items.extend(
            (key, value)
            for key, value in sorted(merged.items(), key=lambda item: str(item[0]))
            if key not in _FIXED_PARAMS and value is not None
        )
        query = urlencode([(str(k), _query_value(v)) for k, v in items])

        endpoint = self._config.endpoint
        if not endpoint.endswith("/"):
            endpoint += "/"
        return f"{endpoint}{method.lstrip('/')}?{query}"

    def reset_request_log(self) -> dict[str, Any]:
        """Zero every cooldown timestamp; the next request is always allowed."""
        return self._store.reset(StoreKind.REQUEST_LOG)

    def clear_response_cache(self) -> None:
        """Drop every cached response."""
        self._cache.clear()

    def status(self) -> dict[str, Any]:
        """Report cooldown state per category plus cache statistics.

        Returns:
            A ``dict`` with ``escalated`` (bool), ``last_status`` (int or
            ``None``), ``categories`` (category to ``last_request``,
            ``cooldown`` and ``wait`` seconds) and ``cache`` (see
            :meth:`~pinproxy.cache.ResponseCache.stats`).
        """
        now = int(self._clock())
        cooldowns = self._config.method_cooldowns
        log = RequestLog.from_document(self._store.load(StoreKind.REQUEST_LOG))
        previous_status = self._cache.previous_status(log.last_request_hash)

        categories: dict[str, dict[str, int]] = {}
        for category in cooldowns:
            decision = check_cooldown(category, cooldowns, log, now, previous_status)
            categories[category] = {
                "last_request": log.last(category),
                "cooldown": decision.cooldown,
                "wait": decision.remaining,
            }

        return {
            "escalated": previous_status == TOO_MANY_REQUESTS,
            "last_status": previous_status,
            "categories": categories,
            "cache": self._cache.stats(),
        }

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _send(self, url: str, now: int) -> CachedResponse:
        """Issue the GET request and wrap the result.

        Transport errors and undecodable bodies are not raised: the caller
        gets the status (``0`` without a response) and ``body=None``.
        """
        assert self._client is not None, "Client not initialised -- use as context manager"

        output = get_output()
        try:
            response = self._client.get(url, headers={"Accept": "application/json"})
        except httpx.HTTPError as exc:
            output.debug(f"Transport failure: {exc}")
            return CachedResponse(body=None, http_code=0, request_time=now)

        body: Any = None
        if response.content:
            try:
                body = response.json()
            except ValueError:
                output.debug(f"Undecodable body from HTTP {response.status_code}")
        return CachedResponse(body=body, http_code=response.status_code, request_time=now)
