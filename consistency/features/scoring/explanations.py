"""
Explanation bullets.

Rules run in a fixed order and each adds at most one bullet; the list is cut
to five. Wording stays supportive and never shaming.
"""

from typing import List

from consistency.models.consistency import (
    ConsistencyMetadata,
    ScoreBreakdown,
    WINDOW_DAYS,
    MAX_DISTRIBUTION_BONUS,
    MAX_EXPLANATIONS,
)
from consistency.features.scoring.scoring_engine import round_half_up

EVENLY_DISTRIBUTED_PCT = 75
FAIRLY_SPACED_PCT = 50
RECENT_SESSION_DAYS = 3
NOTABLE_GAP_DAYS = 7


def _frequency_bullet(metadata: ConsistencyMetadata) -> str:
    pct = round_half_up(metadata.active_days / WINDOW_DAYS * 100)
    return f"You trained {metadata.active_days} out of {WINDOW_DAYS} days ({pct}%)"


def _distribution_bullet(breakdown: ScoreBreakdown) -> str:
    dist_pct = round_half_up(breakdown.distribution_bonus / MAX_DISTRIBUTION_BONUS * 100)
    if dist_pct >= EVENLY_DISTRIBUTED_PCT:
        return "Your sessions are evenly distributed"
    if dist_pct >= FAIRLY_SPACED_PCT:
        return "Your sessions are fairly well spaced"
    return "Long gaps reduce your consistency score"


def _recency_bullet(days_since: int) -> str:
    if days_since == 0:
        return "You exercised today, great momentum!"
    return f"Last session was {days_since} days ago"


def generate_explanations(metadata: ConsistencyMetadata, breakdown: ScoreBreakdown) -> List[str]:
    """Build 1..5 bullets from metadata and breakdown, in rule order."""
    bullets = [_frequency_bullet(metadata)]

    if metadata.active_days >= 2:
        bullets.append(_distribution_bullet(breakdown))

    if metadata.longest_streak > 1:
        bullets.append(f"Longest streak: {metadata.longest_streak} days")

    if metadata.days_since_last_session <= RECENT_SESSION_DAYS:
        bullets.append(_recency_bullet(metadata.days_since_last_session))

    if metadata.longest_gap > NOTABLE_GAP_DAYS and len(bullets) < MAX_EXPLANATIONS:
        bullets.append(f"Longest gap: {metadata.longest_gap} days")

    return bullets[:MAX_EXPLANATIONS]
