"""
Consistency Service

Fetches sessions from the session store, supplies the reference instant and
timezone defaults, then runs the pure scoring pipeline.
"""

from datetime import datetime, timezone as dt_timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from consistency.core.config import settings
from consistency.core.logging import log_event
from consistency.models.consistency import ConsistencyScore
from consistency.features.scoring.civil_date import resolve_timezone
from consistency.features.scoring.pipeline import compute_consistency_score
from consistency.features.sessions.store import batch_fetch_user_sessions, get_store


def utc_now() -> datetime:
    return datetime.now(dt_timezone.utc)


class ConsistencyService:
    """Consistency scoring with an injected clock and session store."""

    def __init__(
        self,
        store=None,
        clock: Optional[Callable[[], datetime]] = None,
        default_timezone: Optional[str] = None,
    ):
        self._store = store
        self._clock = clock or utc_now
        self._default_timezone = default_timezone or settings.DEFAULT_TIMEZONE

    @property
    def store(self):
        return self._store or get_store()

    def _resolve_inputs(self, reference_date: Optional[datetime], timezone: Optional[str]):
        # only an omitted zone takes the default; "" is as invalid as any unknown name
        tz_name = self._default_timezone if timezone is None else timezone
        resolve_timezone(tz_name)  # fail fast, before any fetch
        return reference_date or self._clock(), tz_name

    def score_sessions(
        self,
        sessions: Iterable[Any],
        *,
        reference_date: Optional[datetime] = None,
        timezone: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> ConsistencyScore:
        """
        Score an already fetched session list.

        Args:
            sessions: Session models or mappings
            reference_date: End of the window (default: clock)
            timezone: IANA zone (default: configured DEFAULT_TIMEZONE)
            user_id: Only used for log correlation

        Returns:
            ConsistencyScore
        """
        ref, tz_name = self._resolve_inputs(reference_date, timezone)
        result = compute_consistency_score(sessions, ref, tz_name)

        log_event(
            "info",
            "score.computed",
            user_id=user_id,
            event_type="score.computed",
            extra={
                "score": result.score,
                "active_days": result.metadata.active_days,
                "timezone": tz_name,
            },
        )
        return result

    def score_user(
        self,
        user_id: str,
        *,
        reference_date: Optional[datetime] = None,
        timezone: Optional[str] = None,
    ) -> ConsistencyScore:
        """
        Fetch one user's sessions and score them.

        Store errors propagate; only batch scoring degrades per user.
        """
        if not user_id:
            raise ValueError("user_id is required")

        ref, tz_name = self._resolve_inputs(reference_date, timezone)
        sessions = self.store.fetch_user_sessions(
            user_id,
            settings.SESSION_LOOKBACK_DAYS,
            limit=settings.SESSION_FETCH_LIMIT,
            reference_date=ref,
        )
        return self.score_sessions(sessions, reference_date=ref, timezone=tz_name, user_id=user_id)

    async def score_users(
        self,
        user_ids: List[str],
        *,
        reference_date: Optional[datetime] = None,
        timezone: Optional[str] = None,
    ) -> Dict[str, ConsistencyScore]:
        """
        Score many users against one reference instant.

        Fetches run concurrently; a user whose fetch fails is scored on an
        empty history instead of failing the batch.

        Returns:
            Mapping of user_id -> ConsistencyScore, in input order
        """
        ref, tz_name = self._resolve_inputs(reference_date, timezone)
        unique_ids = list(dict.fromkeys(user_ids))

        sessions_by_user = await batch_fetch_user_sessions(
            unique_ids,
            settings.SESSION_LOOKBACK_DAYS,
            store=self.store,
            reference_date=ref,
            limit=settings.SESSION_FETCH_LIMIT,
        )

        return {
            uid: self.score_sessions(sessions_by_user.get(uid, []), reference_date=ref, timezone=tz_name, user_id=uid)
            for uid in unique_ids
        }
