"""Whether an obstacle's reported time pattern applies at a given instant."""
from __future__ import annotations

from datetime import datetime

from waispath.core.entities import TimePattern

MORNING_HOURS = (6, 10)
AFTERNOON_HOURS = (12, 18)
EVENING_START_HOUR = 18
EVENING_END_HOUR = 6
_WEEKEND_DAYS = frozenset({5, 6})


def is_pattern_active(pattern: TimePattern | str | None, at: datetime) -> bool:
    """Return True if an obstacle with ``pattern`` is expected to be present at ``at``.

    Hours are half-open (``06:00 <= t < 10:00`` for mornings) and evenings wrap
    past midnight. Unknown patterns are treated as always active.
    """

    hour = at.hour
    if pattern == TimePattern.MORNING:
        return MORNING_HOURS[0] <= hour < MORNING_HOURS[1]
    if pattern == TimePattern.AFTERNOON:
        return AFTERNOON_HOURS[0] <= hour < AFTERNOON_HOURS[1]
    if pattern == TimePattern.EVENING:
        return hour >= EVENING_START_HOUR or hour < EVENING_END_HOUR
    if pattern == TimePattern.WEEKEND:
        return at.weekday() in _WEEKEND_DAYS
    return True


__all__ = ["is_pattern_active"]
