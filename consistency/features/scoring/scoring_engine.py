"""
Consistency Scoring Engine

Pure, deterministic composition of the consistency score from active days.
No external calls, no clock reads, no side effects.

Scoring philosophy:
- Frequency contributes 0..60 (share of the 28 days with a session)
- Distribution contributes 0..25 (driven by the single longest gap)
- Current streak contributes 0..10 (2 points per day)
- Recency contributes 0..5 (tiered on days since the last session)
- Final score rounded once, then clamped to 0..100
"""

import math
from datetime import date
from enum import Enum
from typing import Iterable, List

from consistency.models.consistency import (
    ActiveDay,
    ConsistencyMetadata,
    ScoreBreakdown,
    WINDOW_DAYS,
    MAX_BASE_SCORE,
    MAX_DISTRIBUTION_BONUS,
    MAX_STREAK_BONUS,
)
from consistency.features.scoring.civil_date import add_days, gap_sequence


def round_half_up(value: float) -> int:
    """Nearest integer, halves rounded up (not to even)."""
    return int(math.floor(value + 0.5))


class StreakWalkState(str, Enum):
    """States of the backward walk that measures the current streak."""
    SEARCHING = "searching"
    IN_STREAK = "in_streak"
    DONE = "done"


def next_streak_state(state: StreakWalkState, hit: bool) -> StreakWalkState:
    """
    Transition for one day of the backward walk.

    A miss before any hit keeps searching (today may simply have no session
    yet); a miss after a hit ends the streak.
    """
    if state is StreakWalkState.SEARCHING:
        return StreakWalkState.IN_STREAK if hit else StreakWalkState.SEARCHING
    if state is StreakWalkState.IN_STREAK:
        return StreakWalkState.IN_STREAK if hit else StreakWalkState.DONE
    return StreakWalkState.DONE


def walk_current_streak(active_dates: Iterable[date], reference_day: date, max_steps: int = WINDOW_DAYS) -> int:
    """Length of the streak ending at or before reference_day, looking back at most max_steps days."""
    active = set(active_dates)
    state = StreakWalkState.SEARCHING
    count = 0

    for step in range(max_steps):
        state = next_streak_state(state, add_days(reference_day, -step) in active)
        if state is StreakWalkState.DONE:
            break
        if state is StreakWalkState.IN_STREAK:
            count += 1

    return count


class ConsistencyScoringEngine:
    """Pure deterministic consistency scoring."""

    # Streak weights
    STREAK_POINTS_PER_DAY = 2.0

    # Recency tiers: (max days since last session, bonus)
    RECENCY_TIERS = ((1, 5.0), (3, 3.0), (7, 1.0))

    # Distribution needs at least two active days to have a gap
    MIN_DAYS_FOR_DISTRIBUTION = 2

    @staticmethod
    def compose_breakdown(
        active_days: List[ActiveDay],
        metadata: ConsistencyMetadata,
        reference_day: date,
    ) -> ScoreBreakdown:
        """
        Score each component.

        Args:
            active_days: Ascending active days inside the window
            metadata: Metadata derived from the same active days
            reference_day: Civil date of the reference instant

        Returns:
            ScoreBreakdown with every component inside its bound
        """
        dates = [d.date for d in active_days]
        breakdown = ScoreBreakdown(
            base_score=ConsistencyScoringEngine._score_base(len(dates)),
            distribution_bonus=ConsistencyScoringEngine._score_distribution(dates),
            streak_bonus=ConsistencyScoringEngine._score_streak(dates, reference_day),
            recency_bonus=ConsistencyScoringEngine._score_recency(metadata.days_since_last_session),
        )
        breakdown.validate()
        return breakdown

    @staticmethod
    def total_score(breakdown: ScoreBreakdown) -> int:
        """Sum, round once, clamp to 0..100."""
        return max(0, min(100, round_half_up(breakdown.total())))

    @staticmethod
    def _score_base(active_day_count: int) -> float:
        """
        Frequency score, 0..60.

        Share of the window with at least one session.
        """
        return (active_day_count / WINDOW_DAYS) * MAX_BASE_SCORE

    @staticmethod
    def _score_distribution(dates: List[date]) -> float:
        """
        Distribution score, 0..25.

        Rewards even spacing by penalizing the single longest silence. Two
        histories with the same longest gap score the same regardless of the
        smaller gaps.
        """
        if len(dates) < ConsistencyScoringEngine.MIN_DAYS_FOR_DISTRIBUTION:
            return 0.0

        max_gap = max(gap_sequence(dates))
        quality = 1 - min(max_gap / WINDOW_DAYS, 1)
        return quality * MAX_DISTRIBUTION_BONUS

    @staticmethod
    def _score_streak(dates: List[date], reference_day: date) -> float:
        """
        Current streak score, 0..10.

        +2 per consecutive day, capped.
        """
        if not dates:
            return 0.0
        streak = walk_current_streak(dates, reference_day)
        return min(streak * ConsistencyScoringEngine.STREAK_POINTS_PER_DAY, MAX_STREAK_BONUS)

    @staticmethod
    def _score_recency(days_since_last_session: int) -> float:
        """Recency score, 0..5."""
        for max_days, bonus in ConsistencyScoringEngine.RECENCY_TIERS:
            if days_since_last_session <= max_days:
                return bonus
        return 0.0
