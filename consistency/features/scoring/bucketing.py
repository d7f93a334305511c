"""
Day bucketing.

Collapses sessions into one ActiveDay per civil date in the user's timezone.
Multiple sessions on the same local date count as one active day.
"""

import math
from datetime import date
from numbers import Real
from typing import Any, Dict, Iterable, List
from zoneinfo import ZoneInfo

from consistency.models.consistency import ActiveDay
from consistency.models.session import coerce_session
from consistency.features.scoring.civil_date import add_days, resolve_timezone, to_civil_date


def normalize_duration(raw: Any) -> float:
    """
    Clean a raw duration value: max(0, numeric value), 0 when not numeric.

    Numeric strings ("45", "12.5") count as numeric; booleans, NaN and
    infinities do not.
    """
    if isinstance(raw, bool) or raw is None:
        return 0.0
    if isinstance(raw, Real):
        value = float(raw)
    elif isinstance(raw, str):
        try:
            value = float(raw.strip())
        except ValueError:
            return 0.0
    else:
        return 0.0
    if not math.isfinite(value):
        return 0.0
    return max(0.0, value)


def group_sessions_by_day(sessions: Iterable[Any], timezone: str) -> List[ActiveDay]:
    """
    Group sessions by civil date in `timezone`, ascending by date.

    Public entry point taking a zone name; the pipeline resolves the zone once
    and calls bucket_sessions directly.

    The result does not depend on input order.

    Raises:
        InvalidTimezoneError: unknown timezone identifier
        InvalidSessionError: a session without a usable timestamp
    """
    zone = resolve_timezone(timezone)
    return bucket_sessions(sessions, zone)


def bucket_sessions(sessions: Iterable[Any], zone: ZoneInfo) -> List[ActiveDay]:
    """group_sessions_by_day for an already resolved zone."""
    durations: Dict[date, List[float]] = {}

    for index, raw in enumerate(sessions):
        session = coerce_session(raw, index)
        day = to_civil_date(session.timestamp, zone)
        durations.setdefault(day, []).append(normalize_duration(session.duration_sec))

    # fsum is exactly rounded, so totals are identical for any input order
    return [
        ActiveDay(date=day, session_count=len(values), total_duration_sec=math.fsum(values))
        for day, values in sorted(durations.items())
    ]


def clip_to_window(active_days: List[ActiveDay], end: date, length: int) -> List[ActiveDay]:
    """Keep only buckets whose date lies in the `length` days ending at `end`."""
    start = add_days(end, -(length - 1))
    return [d for d in active_days if start <= d.date <= end]
