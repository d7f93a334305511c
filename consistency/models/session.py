"""
Exercise session domain model.

A session is owned by the caller; scoring only reads it. Durations are kept
raw here and normalized at bucketing time, so a malformed duration never
rejects a session. A missing or unparsable timestamp always does.
"""

from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from consistency.core.errors import InvalidSessionError


class Session(BaseModel):
    """A single recorded workout."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    timestamp: datetime
    duration_sec: Any = Field(default=None, alias="durationSec")
    type: Optional[str] = None

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Naive timestamps are read as UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def to_dict(self) -> dict:
        """Serialize to dict for JSON response."""
        duration = self.duration_sec
        if isinstance(duration, bool) or not isinstance(duration, (int, float)):
            duration = None
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "durationSec": duration,
            "type": self.type,
        }


def coerce_session(raw: Any, index: Optional[int] = None) -> Session:
    """
    Turn a Session or a mapping into a Session.

    Raises:
        InvalidSessionError: timestamp (or id) missing or unparsable. The
            whole scoring call is rejected rather than silently skipping data.
    """
    if isinstance(raw, Session):
        return raw

    label = f"Session #{index}" if index is not None else "Session"
    if not isinstance(raw, Mapping):
        raise InvalidSessionError(
            f"{label} must be an object, got {type(raw).__name__}",
            index=index,
        )

    session_id = raw.get("id")
    if raw.get("timestamp") is None:
        raise InvalidSessionError(
            f"{label} ({session_id!r}) is missing its timestamp",
            index=index,
            session_id=session_id,
        )

    try:
        return Session.model_validate(raw)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise InvalidSessionError(
            f"{label} ({session_id!r}) has invalid field(s): {fields}",
            index=index,
            session_id=session_id,
        ) from e
