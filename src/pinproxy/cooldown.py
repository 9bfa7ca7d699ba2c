"""Cooldown policy: may a request for a given method be sent now?

Every method belongs to a *cooldown category*: the method itself when the
cooldown table has an entry for it, otherwise ``global``. A request is
allowed once the category's cooldown has elapsed since the last request
in that category.

After the API answers with HTTP 429 (Too Many Requests) a stricter rule
takes over. The next request of *any* method must wait twice the longest
configured cooldown, measured from the last request of any kind. The
escalation is re-evaluated on every call from the status stored for the
most recent request, so it lasts until a request finally gets through.

:func:`check_cooldown` is a pure function of its arguments.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

from pinproxy.models import GLOBAL_CATEGORY, RequestLog

TOO_MANY_REQUESTS = 429


@dataclass(frozen=True)
class CooldownDecision:
    """Outcome of :func:`check_cooldown`.

    Attributes:
        allowed: Whether the request may be sent.
        category: The cooldown category the method resolved to.
        cooldown: The interval that applied, in seconds.
        elapsed: Seconds since the reference request.
        escalated: ``True`` when the post-429 penalty applied.
    """

    allowed: bool
    category: str
    cooldown: int
    elapsed: int
    escalated: bool = False

    @property
    def remaining(self) -> int:
        """Seconds until the request would be allowed (``0`` if it already is)."""
        return max(self.cooldown - self.elapsed, 0)


def cooldown_category(method: str, cooldowns: Mapping[str, int]) -> str:
    """Return *method* if it has its own cooldown entry, else ``global``.

    A configured value of ``0`` still counts as an entry: the method then
    has no cooldown rather than inheriting the global one.
    """
    return method if method in cooldowns else GLOBAL_CATEGORY


def penalty_cooldown(cooldowns: Mapping[str, int]) -> int:
    """The cooldown applied after an HTTP 429: twice the longest cooldown."""
    return 2 * max(cooldowns.values())


def check_cooldown(
    method: str,
    cooldowns: Mapping[str, int],
    log: RequestLog,
    now: int,
    previous_status: Optional[int] = None,
) -> CooldownDecision:
    """Decide whether a request for *method* may be sent at *now*.

    Args:
        method: The API method, e.g. ``"posts/all"``.
        cooldowns: The cooldown table; must contain ``global``.
        log: The current request log.
        now: Current Unix timestamp in seconds.
        previous_status: HTTP status of the most recent request, if known.

    Returns:
        A :class:`CooldownDecision`.
    """
    category = cooldown_category(method, cooldowns)
    cooldown = cooldowns[category]
    elapsed = now - log.last(category)
    escalated = previous_status == TOO_MANY_REQUESTS
    if escalated:
        cooldown = penalty_cooldown(cooldowns)
        elapsed = now - log.last(GLOBAL_CATEGORY)
    return CooldownDecision(
        allowed=elapsed >= cooldown,
        category=category,
        cooldown=cooldown,
        elapsed=elapsed,
        escalated=escalated,
    )
