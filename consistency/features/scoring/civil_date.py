"""
Civil-date helpers.

An instant becomes a civil date exactly once, through IANA zone rules.
From then on everything is plain `datetime.date` arithmetic, which never
touches a timezone again.
"""

from datetime import date, datetime, timedelta, timezone
from typing import List
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from consistency.core.errors import InvalidTimezoneError


def resolve_timezone(name) -> ZoneInfo:
    """
    Look up an IANA zone by name.

    Raises:
        InvalidTimezoneError: unknown, empty, or malformed identifier
    """
    if not isinstance(name, str) or not name.strip():
        raise InvalidTimezoneError(name)
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        raise InvalidTimezoneError(name) from None


def to_civil_date(instant: datetime, zone: ZoneInfo) -> date:
    """Civil date of an instant in the given zone. Naive instants are read as UTC."""
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(zone).date()


def add_days(day: date, n: int) -> date:
    return day + timedelta(days=n)


def days_between(earlier: date, later: date) -> int:
    """Whole civil days from `earlier` to `later` (negative if reversed)."""
    return (later - earlier).days


def window_dates(end: date, length: int) -> List[date]:
    """`length` consecutive civil dates ending at `end`, oldest first."""
    return [add_days(end, -offset) for offset in range(length - 1, -1, -1)]


def gap_sequence(days: List[date]) -> List[int]:
    """Day differences between consecutive entries of an ascending date list."""
    return [days_between(prev, curr) for prev, curr in zip(days, days[1:])]
