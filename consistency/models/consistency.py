"""
Consistency score domain model.

Consistency Score answers: "How steadily did I train over the last 28 days?"
It is deterministic and explainable: a breakdown of four capped components,
a fixed 28-day chart, and at most five plain-language bullets.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import List

WINDOW_DAYS = 28

MAX_BASE_SCORE = 60.0
MAX_DISTRIBUTION_BONUS = 25.0
MAX_STREAK_BONUS = 10.0
MAX_RECENCY_BONUS = 5.0

MAX_EXPLANATIONS = 5


@dataclass
class ActiveDay:
    """All sessions falling on one civil date in the user's timezone."""

    date: date
    session_count: int = 0
    total_duration_sec: float = 0.0

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "sessionCount": self.session_count,
            "totalDurationSec": self.total_duration_sec,
        }


@dataclass(frozen=True)
class DayActivity:
    """One slot of the 28-day chart."""

    date: date
    has_activity: bool
    session_count: int = 0

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "hasActivity": self.has_activity,
            "sessionCount": self.session_count,
        }


@dataclass(frozen=True)
class ConsistencyMetadata:
    """Derived activity statistics. days_since_last_session is 28 when there is no activity."""

    total_sessions: int = 0
    active_days: int = 0
    longest_streak: int = 0
    longest_gap: int = 0
    average_gap: float = 0.0
    days_since_last_session: int = WINDOW_DAYS

    def validate(self) -> None:
        assert self.total_sessions >= 0, f"total_sessions negative: {self.total_sessions}"
        assert 0 <= self.active_days <= self.total_sessions, (
            f"active_days out of range: {self.active_days} (total_sessions={self.total_sessions})"
        )
        assert self.longest_streak <= self.active_days, f"longest_streak exceeds active_days: {self.longest_streak}"
        assert self.longest_gap >= 0, f"longest_gap negative: {self.longest_gap}"

    def to_dict(self) -> dict:
        return {
            "totalSessions": self.total_sessions,
            "activeDays": self.active_days,
            "longestStreak": self.longest_streak,
            "longestGap": self.longest_gap,
            "averageGap": self.average_gap,
            "daysSinceLastSession": self.days_since_last_session,
        }


@dataclass(frozen=True)
class ScoreBreakdown:
    """Individual contributors to the consistency score."""

    base_score: float = 0.0  # 0..60 points from active-day frequency
    distribution_bonus: float = 0.0  # 0..25 points from even spacing
    streak_bonus: float = 0.0  # 0..10 points from the current streak
    recency_bonus: float = 0.0  # 0..5 points from recent activity

    def validate(self) -> None:
        """Ensure all components are in valid ranges."""
        assert 0.0 <= self.base_score <= MAX_BASE_SCORE, f"base_score out of range: {self.base_score}"
        assert 0.0 <= self.distribution_bonus <= MAX_DISTRIBUTION_BONUS, f"distribution_bonus out of range: {self.distribution_bonus}"
        assert 0.0 <= self.streak_bonus <= MAX_STREAK_BONUS, f"streak_bonus out of range: {self.streak_bonus}"
        assert 0.0 <= self.recency_bonus <= MAX_RECENCY_BONUS, f"recency_bonus out of range: {self.recency_bonus}"

    def total(self) -> float:
        """Sum of all components (before rounding and clamping)."""
        return (
            self.base_score
            + self.distribution_bonus
            + self.streak_bonus
            + self.recency_bonus
        )

    def to_dict(self) -> dict:
        return {
            "baseScore": self.base_score,
            "distributionBonus": self.distribution_bonus,
            "streakBonus": self.streak_bonus,
            "recencyBonus": self.recency_bonus,
        }


@dataclass(frozen=True)
class ConsistencyScore:
    """
    Complete consistency result for one user at one reference instant.

    Attributes:
        score: Overall score, integer 0..100 (rounded once, then clamped)
        explanations: 1..5 human-readable bullets, in rule order
        chart_data: Exactly 28 days, oldest first, ending at the reference date
        metadata: Derived activity statistics
        breakdown: Per-component contributions
    """

    score: int
    explanations: List[str]
    chart_data: List[DayActivity]
    metadata: ConsistencyMetadata
    breakdown: ScoreBreakdown = field(default_factory=ScoreBreakdown)

    def validate(self) -> None:
        """Ensure result is valid."""
        assert isinstance(self.score, int), f"score must be an integer: {self.score!r}"
        assert 0 <= self.score <= 100, f"score out of range: {self.score}"
        assert 1 <= len(self.explanations) <= MAX_EXPLANATIONS, f"explanations length out of range: {len(self.explanations)}"
        assert len(self.chart_data) == WINDOW_DAYS, f"chart_data must have {WINDOW_DAYS} entries: {len(self.chart_data)}"
        self.metadata.validate()
        self.breakdown.validate()

    def to_dict(self) -> dict:
        """Serialize to dict for JSON response."""
        return {
            "score": self.score,
            "explanations": list(self.explanations),
            "chartData": [d.to_dict() for d in self.chart_data],
            "metadata": self.metadata.to_dict(),
            "breakdown": self.breakdown.to_dict(),
        }
