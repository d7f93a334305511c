"""
Consistency API Endpoints

POST /v1/consistency/score: score a caller-supplied session list
GET /v1/consistency/users/{user_id}: score a user's stored sessions
POST /v1/consistency/batch: score many users against one reference instant
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from consistency.core.config import settings
from consistency.core.errors import ValidationError
from consistency.features.scoring.service import ConsistencyService

router = APIRouter(prefix="/v1/consistency", tags=["consistency"])


class ScoreRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Sessions are validated by the scoring pipeline so that a bad timestamp
    # surfaces as invalid_session rather than a generic 422.
    sessions: List[Dict[str, Any]] = Field(default_factory=list)
    reference_date: Optional[datetime] = Field(default=None, alias="referenceDate")
    timezone: Optional[str] = None


class BatchScoreRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_ids: List[str] = Field(..., alias="userIds")
    reference_date: Optional[datetime] = Field(default=None, alias="referenceDate")
    timezone: Optional[str] = None


# Dependency injection
def get_consistency_service() -> ConsistencyService:
    """Get consistency service instance."""
    return ConsistencyService()


def parse_now(now: Optional[str]) -> Optional[datetime]:
    if not now:
        return None
    try:
        return datetime.fromisoformat(now)
    except ValueError:
        raise ValidationError("Invalid 'now' timestamp format. Use ISO 8601.")


@router.post("/score")
async def score_sessions(
    body: ScoreRequest,
    service: ConsistencyService = Depends(get_consistency_service),
) -> dict:
    """
    Score a session list.

    Body:
        {
            "sessions": [{"id": "s1", "timestamp": "2026-10-01T07:30:00Z", "durationSec": 1800}],
            "referenceDate": "2026-10-18T12:00:00Z",   (optional, default now)
            "timezone": "Europe/Berlin"                (optional, default UTC)
        }

    Returns:
        {"data": {score, explanations, chartData, metadata, breakdown}}

    **Deterministic:** same sessions + same referenceDate + same timezone
    always produce the same result, whatever the session order.
    """
    result = service.score_sessions(
        body.sessions,
        reference_date=body.reference_date,
        timezone=body.timezone,
    )
    return {"data": result.to_dict()}


@router.get("/users/{user_id}")
async def score_user(
    user_id: str,
    timezone: Optional[str] = Query(None, description="IANA timezone, default UTC"),
    now: Optional[str] = Query(None, description="Optional ISO timestamp for deterministic testing"),
    service: ConsistencyService = Depends(get_consistency_service),
) -> dict:
    """Score the stored sessions of one user over the last 28 days."""
    result = service.score_user(user_id, reference_date=parse_now(now), timezone=timezone)
    return {"data": result.to_dict()}


@router.post("/batch")
async def score_batch(
    body: BatchScoreRequest,
    service: ConsistencyService = Depends(get_consistency_service),
) -> dict:
    """
    Score several users at once.

    Users whose sessions cannot be fetched are scored on an empty history.

    Returns:
        {"data": {"<userId>": {score, ...}, ...}}
    """
    if not body.user_ids:
        raise ValidationError("userIds must not be empty")
    if len(body.user_ids) > settings.BATCH_MAX_USERS:
        raise ValidationError(f"At most {settings.BATCH_MAX_USERS} users per batch")

    results = await service.score_users(
        body.user_ids,
        reference_date=body.reference_date,
        timezone=body.timezone,
    )
    return {"data": {uid: r.to_dict() for uid, r in results.items()}}
