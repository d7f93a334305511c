"""
Session API Endpoints

POST /v1/users/{user_id}/sessions: record a session
GET /v1/users/{user_id}/sessions: sessions in the lookback window, newest first
GET /v1/users/{user_id}/sessions/last: most recent session
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Query

from consistency.core.config import settings
from consistency.api.consistency import parse_now
from consistency.core.errors import NotFoundError
from consistency.core.logging import log_event
from consistency.features.sessions.store import get_store
from consistency.models.session import coerce_session

router = APIRouter(prefix="/v1/users", tags=["sessions"])


@router.post("/{user_id}/sessions")
async def record_session(user_id: str, body: Dict[str, Any]) -> dict:
    """
    Record one session for a user. Re-posting the same id is a no-op.

    Returns:
        {"data": {session}, "created": true|false}
    """
    session = coerce_session(body)
    created = get_store().add_session(user_id, session)
    event = "session.recorded" if created else "session.duplicate"
    log_event(
        "info",
        event,
        user_id=user_id,
        event_type=event,
        extra={"session_id": session.id},
    )
    return {"data": session.to_dict(), "created": created}


@router.get("/{user_id}/sessions")
async def list_sessions(
    user_id: str,
    days: Optional[int] = Query(None, ge=1, le=366, description="Lookback window in days"),
    limit: Optional[int] = Query(None, ge=1, le=1000, description="Max sessions returned"),
    now: Optional[str] = Query(None, description="Optional ISO timestamp for deterministic testing"),
) -> dict:
    """Sessions within the lookback window, newest first."""
    sessions = get_store().fetch_user_sessions(
        user_id,
        days or settings.SESSION_LOOKBACK_DAYS,
        limit=limit or settings.SESSION_FETCH_LIMIT,
        reference_date=parse_now(now),
    )
    return {"data": [s.to_dict() for s in sessions]}


@router.get("/{user_id}/sessions/last")
async def last_session(user_id: str) -> dict:
    """Most recent session, 404 when the user has none."""
    session = get_store().get_last_session(user_id)
    if session is None:
        raise NotFoundError(f"No sessions recorded for user {user_id}")
    return {"data": session.to_dict()}
