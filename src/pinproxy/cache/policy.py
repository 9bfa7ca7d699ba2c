"""Freshness rules for cached responses.

Both functions are pure: they read only their arguments, so the decision
for a given entry and timestamp is always reproducible.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Mapping, Optional

if TYPE_CHECKING:
    from pinproxy.models import CachedResponse


def effective_cache_duration(duration: int, cooldowns: Mapping[str, int]) -> int:
    """Return the cache duration actually applied at runtime.

    A duration of zero (or less) disables caching. Any positive duration is
    raised to at least the largest configured cooldown.

    Args:
        duration: The configured cache duration in seconds.
        cooldowns: The cooldown table (method or ``global`` to seconds).

    Returns:
        ``0`` when caching is disabled, otherwise the clamped duration.
    """
    if duration <= 0:
        return 0
    return max(duration, max(cooldowns.values(), default=0))


def is_fresh(entry: Optional[CachedResponse], now: int, duration: int) -> bool:
    """Return ``True`` when *entry* may be served instead of a network call.

    The entry is usable when caching is enabled, the entry exists, and it
    was recorded no more than *duration* seconds before *now*.
    """
    if duration <= 0 or entry is None:
        return False
    return now - entry.request_time <= duration
