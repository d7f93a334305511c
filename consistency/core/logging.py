"""
Structured logging for the consistency service.

- One `consistency` logger; JSON lines in production, single-line text elsewhere.
- request_id lives in a ContextVar set by RequestIdMiddleware and is stamped
  on every record by RequestIdFilter.
- log_event() is the helper the service, store and API layers use. Values are
  truncated so a huge session payload never floods the log.
"""

import json
import logging
import os
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Dict, Optional

LOGGER_NAME = "consistency"

# Fields copied from LogRecord attributes into structured output, in this order
STRUCTURED_FIELDS = (
    "user_id",
    "event_type",
    "error_code",
    "timezone",
    "score",
    "active_days",
    "session_id",
    "method",
    "path",
    "status",
    "latency_bucket",
)

MAX_VALUE_CHARS = 500

request_id_ctx_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def get_request_id(default: Optional[str] = None) -> Optional[str]:
    """Request id bound to the current context, if any."""
    rid = request_id_ctx_var.get()
    return rid if rid is not None else default


def latency_bucket_ms(latency_ms: Optional[float]) -> str:
    if latency_ms is None:
        return "unknown"
    for upper, label in ((10, "<10ms"), (100, "10-100ms"), (500, "100-500ms"), (1000, "500-1000ms")):
        if latency_ms < upper:
            return label
    return ">=1000ms"


def _utc_timestamp(record: logging.LogRecord) -> str:
    return datetime.fromtimestamp(record.created, timezone.utc).isoformat().replace("+00:00", "Z")


def _structured_fields(record: logging.LogRecord) -> Dict[str, object]:
    fields = {}
    for name in STRUCTURED_FIELDS:
        value = getattr(record, name, None)
        if value is not None:
            fields[name] = value
    return fields


class RequestIdFilter(logging.Filter):
    """Stamp records with the context request_id unless one was passed explicitly."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = get_request_id()
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": _utc_timestamp(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        payload.update(_structured_fields(record))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class PrettyFormatter(logging.Formatter):
    """`<ts> LEVEL [consistency] [rid=..] message key=value ...`"""

    def format(self, record: logging.LogRecord) -> str:
        rid = getattr(record, "request_id", None)
        rid_part = f" [rid={rid}]" if rid else ""
        kv = " ".join(f"{k}={v}" for k, v in _structured_fields(record).items())
        line = f"{_utc_timestamp(record)} {record.levelname} [consistency]{rid_part} {record.getMessage()}"
        if kv:
            line = f"{line} {kv}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def configure_logging(env: str = "development", level: Optional[str] = None) -> None:
    """Install a single stdout handler on the `consistency` logger."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel((level or os.getenv("LOG_LEVEL") or "INFO").upper())

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter() if env.lower() == "production" else PrettyFormatter())
    handler.addFilter(RequestIdFilter())

    logger.handlers = [handler]
    logger.propagate = True

    # Keep uvicorn's own access/error output from doubling ours
    logging.getLogger("uvicorn").propagate = False
    logging.getLogger("uvicorn.error").propagate = False


def _safe_truncate(value, limit: int = MAX_VALUE_CHARS) -> str:
    try:
        text = str(value)
    except Exception:
        return "<unserializable>"
    if len(text) <= limit:
        return text
    return text[:limit] + "...<truncated>"


def log_event(
    level: str,
    msg: str,
    *,
    request_id: Optional[str] = None,
    user_id: Optional[str] = None,
    event_type: Optional[str] = None,
    error_code: Optional[str] = None,
    extra: Optional[Dict[str, object]] = None,
) -> None:
    """
    Emit one structured event on the `consistency` logger.

    Numbers and booleans in `extra` pass through unchanged; anything else is
    stringified and truncated.
    """
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        configure_logging(os.getenv("ENV", "development"))

    fields: Dict[str, object] = {"request_id": request_id or get_request_id()}
    for key, value in (("user_id", user_id), ("event_type", event_type), ("error_code", error_code)):
        if value is not None:
            fields[key] = value
    for key, value in (extra or {}).items():
        fields[key] = value if isinstance(value, (bool, int, float)) or value is None else _safe_truncate(value)

    logger.log(logging.getLevelName(level.upper()), msg, extra=fields)
