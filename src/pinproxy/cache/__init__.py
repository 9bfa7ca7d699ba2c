"""Response caching for pinproxy.

This package provides :class:`ResponseCache`, which stores every response
the dispatcher receives in the ``response_cache.json`` document, and the
pure freshness rules in :mod:`pinproxy.cache.policy` that decide whether a
stored response may be served instead of a network call.

The cache is consumed by :class:`~pinproxy.client.PinboardClient` and is
controlled by ``cache_duration`` in :class:`~pinproxy.models.ProxyConfig`.
"""

from pinproxy.cache.cache import ResponseCache
from pinproxy.cache.policy import effective_cache_duration, is_fresh

__all__ = ["ResponseCache", "effective_cache_duration", "is_fresh"]
