"""
consistency/features/sessions/store.py

Read/append store for exercise sessions.
In-memory implementation; store_sql.py persists the same interface via SQLAlchemy.

Scope:
- Single query per user (no N+1)
- Explicit limits to bound the cost of a score calculation
- Batch fan-out that degrades per user instead of failing the batch
"""

import asyncio
import logging
from datetime import datetime, time, timedelta, timezone
from typing import Dict, Iterable, List, Optional

from consistency.core.config import settings
from consistency.core.logging import log_event
from consistency.features.scoring.bucketing import normalize_duration
from consistency.models.session import Session

logger = logging.getLogger("consistency")

DEFAULT_WINDOW_DAYS = 28
DEFAULT_LIMIT = 200


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def window_start(reference_date: datetime, days: int) -> datetime:
    """UTC midnight of the day `days` before reference_date."""
    start_day = (as_utc(reference_date) - timedelta(days=days)).date()
    return datetime.combine(start_day, time.min, tzinfo=timezone.utc)


def _newest_first(sessions: Iterable[Session]) -> List[Session]:
    return sorted(sessions, key=lambda s: (as_utc(s.timestamp), s.id), reverse=True)


class SessionStore:
    """
    In-memory session store.

    Sessions are kept per user and keyed by session id, so re-recording the
    same session is a no-op.
    """

    def __init__(self):
        self._sessions: Dict[str, Dict[str, Session]] = {}

    def add_session(self, user_id: str, session: Session) -> bool:
        """
        Record a session for a user, with its duration normalized.

        Returns:
            True if stored, False if this session id was already recorded
        """
        user_sessions = self._sessions.setdefault(user_id, {})
        if session.id in user_sessions:
            return False
        user_sessions[session.id] = session.model_copy(update={"duration_sec": normalize_duration(session.duration_sec)})
        return True

    def fetch_user_sessions(
        self,
        user_id: str,
        days: int = DEFAULT_WINDOW_DAYS,
        *,
        limit: int = DEFAULT_LIMIT,
        reference_date: Optional[datetime] = None,
    ) -> List[Session]:
        """
        Sessions for a user within the last `days` days, newest first.

        Args:
            user_id: User ID
            days: Lookback window
            limit: Max sessions returned
            reference_date: End of the window (default: now)

        Returns:
            At most `limit` sessions with start <= timestamp <= reference_date
        """
        end = as_utc(reference_date or datetime.now(timezone.utc))
        start = window_start(end, days)

        in_range = [
            s for s in self._sessions.get(user_id, {}).values()
            if start <= as_utc(s.timestamp) <= end
        ]
        return _newest_first(in_range)[:limit]

    def get_last_session(self, user_id: str) -> Optional[Session]:
        """Most recent session for a user, or None."""
        sessions = _newest_first(self._sessions.get(user_id, {}).values())
        return sessions[0] if sessions else None

    def clear(self) -> None:
        """
        Remove all sessions.
        FOR TESTING ONLY.
        """
        self._sessions.clear()

    def count(self) -> int:
        """Total number of stored sessions."""
        return sum(len(s) for s in self._sessions.values())


async def batch_fetch_user_sessions(
    user_ids: List[str],
    days: int = DEFAULT_WINDOW_DAYS,
    *,
    store=None,
    reference_date: Optional[datetime] = None,
    limit: Optional[int] = None,
) -> Dict[str, List[Session]]:
    """
    Fetch sessions for many users concurrently.

    A failure for one user is logged and yields an empty list for that user
    only; the batch itself never fails.

    Returns:
        Mapping of user_id -> sessions (newest first), in input order
    """
    active_store = store or get_store()
    fetch_limit = limit or settings.SESSION_FETCH_LIMIT

    async def _fetch_one(user_id: str):
        try:
            sessions = await asyncio.to_thread(
                active_store.fetch_user_sessions,
                user_id,
                days,
                limit=fetch_limit,
                reference_date=reference_date,
            )
            return user_id, sessions
        except Exception as e:
            log_event(
                "warning",
                "sessions.fetch_failed",
                user_id=user_id,
                event_type="sessions.fetch_failed",
                error_code=type(e).__name__,
                extra={"error": e},
            )
            return user_id, []

    results = await asyncio.gather(*(_fetch_one(uid) for uid in user_ids))
    return dict(results)


# ============================================================================
# Store selection
# ============================================================================

def get_session_store():
    """
    Get the appropriate session store implementation.

    - SQL store if DATABASE_URL is configured and reachable
    - Falls back to in-memory otherwise

    Returns:
        SessionStore or SqlSessionStore instance
    """
    from consistency.core.database import get_database_url

    if get_database_url():
        try:
            from consistency.features.sessions.store_sql import SqlSessionStore
            from consistency.core.database import check_connection, create_all_tables

            if check_connection():
                create_all_tables()
                return SqlSessionStore()
            logger.warning("[session_store] database unavailable, falling back to in-memory")
        except Exception as e:
            logger.warning(f"[session_store] failed to initialize SQL store: {e}; falling back to in-memory")

    return SessionStore()


# Global store instance (lazy initialization)
_store_instance = None


def get_store():
    """
    Get the singleton session store instance.

    This is the primary API that all consumers should use.
    """
    global _store_instance
    if _store_instance is None:
        _store_instance = get_session_store()
    return _store_instance


def reset_store():
    """
    Reset the store instance.

    FOR TESTING ONLY - forces re-initialization on next get_store() call.
    """
    global _store_instance
    _store_instance = None
