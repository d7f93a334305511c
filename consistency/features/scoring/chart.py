"""28-day activity chart, oldest day first."""

from datetime import date
from typing import List

from consistency.models.consistency import ActiveDay, DayActivity, WINDOW_DAYS
from consistency.features.scoring.civil_date import window_dates


def generate_chart_data(active_days: List[ActiveDay], reference_day: date) -> List[DayActivity]:
    """One DayActivity per civil date from reference_day - 27 through reference_day."""
    by_date = {d.date: d for d in active_days}

    chart: List[DayActivity] = []
    for day in window_dates(reference_day, WINDOW_DAYS):
        bucket = by_date.get(day)
        chart.append(
            DayActivity(
                date=day,
                has_activity=bucket is not None,
                session_count=bucket.session_count if bucket else 0,
            )
        )
    return chart
