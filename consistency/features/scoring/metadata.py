"""
Activity metadata: totals, longest streak, gaps and recency.
"""

from datetime import date, datetime
from typing import List

from consistency.models.consistency import ActiveDay, ConsistencyMetadata, WINDOW_DAYS
from consistency.features.scoring.civil_date import days_between, gap_sequence, resolve_timezone, to_civil_date


def longest_streak(days: List[date]) -> int:
    """Longest run of consecutive dates in an ascending list (0 when empty)."""
    if not days:
        return 0

    longest = current = 1
    for gap in gap_sequence(days):
        if gap == 1:
            current += 1
            longest = max(longest, current)
        else:
            current = 1
    return longest


def calculate_metadata(
    active_days: List[ActiveDay],
    reference_date: datetime,
    timezone: str,
) -> ConsistencyMetadata:
    """
    Derive metadata from ascending active days.

    Public entry point taking the reference instant and a zone name; the
    pipeline already holds the civil reference day and calls
    calculate_metadata_for_day.

    days_since_last_session compares the reference instant's own civil date
    with the latest active date; with no activity it is the 28-day sentinel.
    """
    if not active_days:
        return ConsistencyMetadata(
            total_sessions=0,
            active_days=0,
            longest_streak=0,
            longest_gap=0,
            average_gap=0.0,
            days_since_last_session=WINDOW_DAYS,
        )

    reference_day = to_civil_date(reference_date, resolve_timezone(timezone))
    return calculate_metadata_for_day(active_days, reference_day)


def calculate_metadata_for_day(active_days: List[ActiveDay], reference_day: date) -> ConsistencyMetadata:
    """Same as calculate_metadata, with the reference already a civil date."""
    if not active_days:
        return ConsistencyMetadata()

    dates = [d.date for d in active_days]
    gaps = gap_sequence(dates)

    return ConsistencyMetadata(
        total_sessions=sum(d.session_count for d in active_days),
        active_days=len(active_days),
        longest_streak=longest_streak(dates),
        longest_gap=max(gaps) if gaps else 0,
        average_gap=sum(gaps) / len(gaps) if gaps else 0.0,
        days_since_last_session=days_between(dates[-1], reference_day),
    )
