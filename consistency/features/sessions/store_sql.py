"""
consistency/features/sessions/store_sql.py

SQLAlchemy-backed session store.

Maintains identical interface to the in-memory SessionStore. Timestamps are
stored in UTC; rows read back from backends that drop the offset (SQLite)
are re-labelled as UTC.
"""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select, insert, and_, func
from sqlalchemy.exc import IntegrityError

from consistency.core.database import get_db_session, exercise_sessions
from consistency.features.scoring.bucketing import normalize_duration
from consistency.features.sessions.store import DEFAULT_LIMIT, DEFAULT_WINDOW_DAYS, as_utc, window_start
from consistency.models.session import Session


def _row_to_session(row) -> Session:
    occurred_at = row.occurred_at
    if occurred_at.tzinfo is None:
        occurred_at = occurred_at.replace(tzinfo=timezone.utc)
    return Session(
        id=row.session_id,
        timestamp=occurred_at,
        duration_sec=row.duration_sec,
        type=row.session_type,
    )


class SqlSessionStore:
    """SQL session store, one row per (user_id, session_id)."""

    @staticmethod
    def add_session(user_id: str, session: Session) -> bool:
        """
        Insert a session.

        Returns:
            True if stored, False if this session id was already recorded
        """
        try:
            with get_db_session() as db:
                db.execute(
                    insert(exercise_sessions).values(
                        user_id=user_id,
                        session_id=session.id,
                        occurred_at=as_utc(session.timestamp),
                        duration_sec=normalize_duration(session.duration_sec),
                        session_type=session.type,
                    )
                )
            return True
        except IntegrityError:
            # Duplicate (user_id, session_id)
            return False

    @staticmethod
    def fetch_user_sessions(
        user_id: str,
        days: int = DEFAULT_WINDOW_DAYS,
        *,
        limit: int = DEFAULT_LIMIT,
        reference_date: Optional[datetime] = None,
    ) -> List[Session]:
        """
        Sessions for a user within the last `days` days, newest first.

        Uses the (user_id, occurred_at) index for the range + order.
        """
        end = as_utc(reference_date or datetime.now(timezone.utc))
        start = window_start(end, days)

        query = (
            select(exercise_sessions)
            .where(
                and_(
                    exercise_sessions.c.user_id == user_id,
                    exercise_sessions.c.occurred_at >= start,
                    exercise_sessions.c.occurred_at <= end,
                )
            )
            .order_by(exercise_sessions.c.occurred_at.desc(), exercise_sessions.c.session_id.desc())
            .limit(limit)
        )

        with get_db_session() as db:
            return [_row_to_session(row) for row in db.execute(query)]

    @staticmethod
    def get_last_session(user_id: str) -> Optional[Session]:
        """Most recent session for a user, or None."""
        query = (
            select(exercise_sessions)
            .where(exercise_sessions.c.user_id == user_id)
            .order_by(exercise_sessions.c.occurred_at.desc(), exercise_sessions.c.session_id.desc())
            .limit(1)
        )
        with get_db_session() as db:
            row = db.execute(query).first()
            return _row_to_session(row) if row else None

    @staticmethod
    def clear() -> None:
        """
        Delete all sessions.
        FOR TESTING ONLY.
        """
        with get_db_session() as db:
            db.execute(exercise_sessions.delete())

    @staticmethod
    def count() -> int:
        """Total number of stored sessions."""
        with get_db_session() as db:
            return db.execute(select(func.count()).select_from(exercise_sessions)).scalar_one()
