"""JSON-backed response cache keyed by request fingerprint.

Wraps the ``response_cache`` document of a
:class:`~pinproxy.store.StateStore`. Entries are
:class:`~pinproxy.models.CachedResponse` objects stored under the SHA-256
fingerprint of the fully-constructed request URL, so two different queries
never share an entry. There is no size-based eviction: an entry is only
replaced when the same request is fetched again, and the whole document is
emptied by :meth:`ResponseCache.clear`.

See Also:
    :mod:`pinproxy.cache.policy` -- the freshness rules applied by
    :meth:`ResponseCache.lookup`.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import ValidationError

from pinproxy.cache.policy import is_fresh
from pinproxy.models import CachedResponse
from pinproxy.output import warning
from pinproxy.store import StateStore, StoreKind


class ResponseCache:
    """Response cache over a persistent :class:`~pinproxy.store.StateStore`.

    The document is re-read from disk on every lookup and fully rewritten
    on every :meth:`record`, matching the store's single-writer model.

    When caching is disabled (``duration == 0``) :meth:`lookup` always
    misses, but :meth:`record` still persists the most recent response on
    its own. The dispatcher needs that entry to see whether the previous
    request was answered with HTTP 429.

    Args:
        store: The persistent store holding the ``response_cache`` document.
        duration: Effective cache duration in seconds (already clamped;
            see :func:`~pinproxy.cache.policy.effective_cache_duration`).

    Example::

        cache = ResponseCache(StateStore("/tmp/pinproxy"), duration=600)
        cache.record(fingerprint, CachedResponse(body={}, http_code=200, request_time=now))
        hit = cache.lookup(fingerprint, now + 10)
    """

    def __init__(self, store: StateStore, duration: int) -> None:
        self._store = store
        self._duration = duration

    @property
    def enabled(self) -> bool:
        return self._duration > 0

    @property
    def duration(self) -> int:
        return self._duration

    def get(self, fingerprint: str) -> Optional[CachedResponse]:
        """Return the stored entry for *fingerprint* regardless of age."""
        raw = self._store.load(StoreKind.RESPONSE_CACHE).get(fingerprint)
        if raw is None:
            return None
        try:
            return CachedResponse.model_validate(raw)
        except ValidationError:
            warning(f"Ignoring malformed cache entry {fingerprint[:12]}")
            return None

    def lookup(self, fingerprint: str, now: int) -> Optional[CachedResponse]:
        """Return the entry for *fingerprint* if it is still fresh at *now*.

        Args:
            fingerprint: The request fingerprint.
            now: Current Unix timestamp in seconds.

        Returns:
            The cached response, unchanged, or ``None`` on a miss, an
            expired entry, or when caching is disabled.
        """
        if not self.enabled:
            return None
        entry = self.get(fingerprint)
        return entry if is_fresh(entry, now, self._duration) else None

    def previous_status(self, fingerprint: Optional[str]) -> Optional[int]:
        """HTTP status recorded for *fingerprint*, or ``None`` if unknown."""
        if not fingerprint:
            return None
        entry = self.get(fingerprint)
        return entry.http_code if entry is not None else None

    def record(self, fingerprint: str, response: CachedResponse) -> None:
        """Store *response* under *fingerprint* and persist the document.

        Raises:
            StoreError: If the document cannot be written.
        """
        document: dict[str, Any] = (
            self._store.load(StoreKind.RESPONSE_CACHE) if self.enabled else {}
        )
        document[fingerprint] = response.model_dump(mode="json")
        self._store.save(StoreKind.RESPONSE_CACHE, document)

    def clear(self) -> None:
        """Remove all entries from the cache."""
        self._store.reset(StoreKind.RESPONSE_CACHE)

    def stats(self) -> dict[str, Any]:
        """Return cache statistics.

        Returns:
            A ``dict`` with ``enabled`` (bool), ``size`` (number of stored
            entries), ``path`` (str) and ``duration`` (int seconds).
        """
        return {
            "enabled": self.enabled,
            "size": len(self._store.load(StoreKind.RESPONSE_CACHE)),
            "path": str(self._store.path(StoreKind.RESPONSE_CACHE)),
            "duration": self._duration,
        }
