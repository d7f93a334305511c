"""
Consistency scoring pipeline.

sessions -> active days -> {metadata, chart} -> breakdown -> explanations.
Each stage only reads the previous stage's output.
"""

from datetime import datetime
from typing import Any, Iterable

from consistency.models.consistency import ConsistencyScore, WINDOW_DAYS
from consistency.features.scoring.bucketing import bucket_sessions, clip_to_window
from consistency.features.scoring.chart import generate_chart_data
from consistency.features.scoring.civil_date import resolve_timezone, to_civil_date
from consistency.features.scoring.explanations import generate_explanations
from consistency.features.scoring.metadata import calculate_metadata_for_day
from consistency.features.scoring.scoring_engine import ConsistencyScoringEngine


def compute_consistency_score(
    sessions: Iterable[Any],
    reference_date: datetime,
    timezone: str = "UTC",
) -> ConsistencyScore:
    """
    Score a user's sessions over the 28 civil days ending at reference_date.

    Args:
        sessions: Session models or mappings, in any order
        reference_date: Instant the window ends at (naive means UTC)
        timezone: IANA zone used for every calendar-day decision

    Returns:
        ConsistencyScore, validated

    Raises:
        InvalidTimezoneError: unknown timezone
        InvalidSessionError: a session has no usable timestamp
    """
    zone = resolve_timezone(timezone)
    reference_day = to_civil_date(reference_date, zone)

    # Sessions outside the window (older, or after the reference date) never score
    active_days = clip_to_window(bucket_sessions(sessions, zone), reference_day, WINDOW_DAYS)

    metadata = calculate_metadata_for_day(active_days, reference_day)
    chart_data = generate_chart_data(active_days, reference_day)
    breakdown = ConsistencyScoringEngine.compose_breakdown(active_days, metadata, reference_day)
    explanations = generate_explanations(metadata, breakdown)

    result = ConsistencyScore(
        score=ConsistencyScoringEngine.total_score(breakdown),
        explanations=explanations,
        chart_data=chart_data,
        metadata=metadata,
        breakdown=breakdown,
    )
    result.validate()
    return result
