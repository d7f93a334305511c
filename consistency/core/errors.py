"""
Error types and the normalized error envelope.

Every error response has the shape

    {"error": {"code", "message", "request_id", "details"?}, "detail": message}

and carries the x-request-id header.
"""

import logging
from typing import Any, Dict, Optional
from uuid import uuid4

from fastapi import HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.requests import Request

from consistency.core.logging import LOGGER_NAME, get_request_id

logger = logging.getLogger(LOGGER_NAME)


class AppError(Exception):
    code = "app_error"
    status_code = 500

    def __init__(self, message: str, *, code: Optional[str] = None, status_code: Optional[int] = None, request_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.request_id = request_id

    def details(self) -> Dict[str, Any]:
        """Machine-readable context added to the envelope (empty by default)."""
        return {}


class ValidationError(AppError, ValueError):
    code = "validation_error"
    status_code = 400


class NotFoundError(AppError, ValueError):
    code = "not_found"
    status_code = 404


class InvalidTimezoneError(ValidationError):
    """Timezone identifier is not a known IANA zone.

    Never recovered by substituting UTC: every civil-date bucket depends on it.
    """
    code = "invalid_timezone"

    def __init__(self, timezone_name, **kwargs):
        super().__init__(f"Unknown timezone: {timezone_name!r}. Use an IANA identifier such as 'Europe/Berlin'.", **kwargs)
        self.timezone_name = timezone_name

    def details(self) -> Dict[str, Any]:
        return {"timezone": str(self.timezone_name)}


class InvalidSessionError(ValidationError):
    """A session is missing its timestamp, or it cannot be parsed."""
    code = "invalid_session"

    def __init__(self, message: str, *, index: Optional[int] = None, session_id: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.index = index
        self.session_id = session_id

    def details(self) -> Dict[str, Any]:
        found = {"index": self.index, "session_id": self.session_id}
        return {k: v for k, v in found.items() if v is not None}


def _extract_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or get_request_id() or str(uuid4())


def _error_response(status_code: int, code: str, message: str, request_id: str, details: Optional[dict] = None) -> JSONResponse:
    error = {"code": code, "message": message, "request_id": request_id}
    if details:
        error["details"] = details
    response = JSONResponse(status_code=status_code, content={"error": error, "detail": message})
    response.headers["x-request-id"] = request_id
    return response


async def app_error_handler(request: Request, exc: AppError):
    rid = exc.request_id or _extract_request_id(request)
    logger.log(
        logging.ERROR if exc.status_code >= 500 else logging.WARNING,
        "app.error",
        extra={"request_id": rid, "error_code": exc.code, "status": exc.status_code, "path": request.url.path},
    )
    return _error_response(exc.status_code, exc.code, exc.message, rid, exc.details())


async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies and query params share the 400 envelope."""
    rid = _extract_request_id(request)
    fields = [".".join(str(p) for p in err.get("loc", ())) for err in exc.errors()]
    message = f"Invalid request: {', '.join(fields)}" if fields else "Invalid request"
    logger.warning("request.invalid", extra={"request_id": rid, "error_code": "validation_error", "status": 400})
    return _error_response(400, "validation_error", message, rid, {"fields": fields})


async def http_error_handler(request: Request, exc: HTTPException):
    rid = _extract_request_id(request)
    code = "not_found" if exc.status_code == 404 else "http_error"
    message = exc.detail if exc.detail else "HTTP error"
    logger.warning("http.error", extra={"request_id": rid, "error_code": code, "status": exc.status_code})
    return _error_response(exc.status_code, code, message, rid)


async def unhandled_exception_handler(request: Request, exc: Exception):
    rid = _extract_request_id(request)
    logger.error("unhandled.exception", exc_info=True, extra={"request_id": rid, "error_code": "internal_error"})
    return _error_response(500, "internal_error", "Unexpected error", rid)
