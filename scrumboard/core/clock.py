"""
Time source and sprint date arithmetic.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime, timedelta

_ONE_DAY = timedelta(days=1).total_seconds()


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (as returned by some stores) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def calculate_end_date(start: datetime, duration_days: int) -> datetime:
    """Calendar-day arithmetic: the end date is `duration_days` after start."""
    return start + timedelta(days=duration_days)


def calculate_days_remaining(now: datetime, end: datetime | None) -> int:
    """Whole days left until `end`, rounded up and never negative."""
    if end is None:
        return 0
    seconds = (as_utc(end) - as_utc(now)).total_seconds()
    return max(0, math.ceil(seconds / _ONE_DAY))
