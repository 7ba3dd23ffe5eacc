"""Error taxonomy and FastAPI handlers."""

from typing import Optional
from uuid import uuid4

from fastapi import HTTPException
from fastapi.responses import JSONResponse
from starlette.requests import Request

from looped.core.logging import get_request_id, log_event


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


class ValidationError(AppError, ValueError):
    code = "validation_error"
    status_code = 400


class AuthorizationError(AppError):
    """No valid session (401) or the row belongs to someone else (403)."""
    code = "forbidden"
    status_code = 403

    @classmethod
    def unauthenticated(cls, message: str = "Authentication required") -> "AuthorizationError":
        return cls(message, code="unauthorized", status_code=401)


class NotFoundError(AppError, LookupError):
    code = "not_found"
    status_code = 404


class ConflictError(AppError):
    code = "conflict"
    status_code = 409


class InvalidTransitionError(ConflictError):
    code = "invalid_transition"


class RateLimitError(AppError):
    code = "rate_limited"
    status_code = 429


class UpstreamError(AppError):
    code = "upstream_error"
    status_code = 502


def _extract_request_id(request: Request, fallback: Optional[str] = None) -> str:
    return (
        getattr(request.state, "request_id", None)
        or get_request_id()
        or fallback
        or str(uuid4())
    )


def _error_payload(code: str, message: str, request_id: str) -> dict:
    return {
        "error": {"code": code, "message": message, "request_id": request_id},
        "detail": message,
    }


def _error_response(rid: str, status_code: int, code: str, message: str) -> JSONResponse:
    response = JSONResponse(status_code=status_code, content=_error_payload(code, message, rid))
    response.headers["x-request-id"] = rid
    return response


async def app_error_handler(request: Request, exc: AppError):
    rid = exc.request_id or _extract_request_id(request)
    log_event(
        "error" if exc.status_code >= 500 else "warning",
        "app.error",
        request_id=rid,
        error_code=exc.code,
        extra={"status": exc.status_code, "error_message": exc.message, "path": request.url.path},
    )
    return _error_response(rid, exc.status_code, exc.code, exc.message)


async def http_error_handler(request: Request, exc: HTTPException):
    rid = _extract_request_id(request)
    code = "not_found" if exc.status_code == 404 else "http_error"
    log_event("warning", "http.error", request_id=rid, error_code=code, extra={"status": exc.status_code})
    return _error_response(rid, exc.status_code, code, exc.detail if exc.detail else "HTTP error")


async def unhandled_exception_handler(request: Request, exc: Exception):
    rid = _extract_request_id(request)
    log_event(
        "error",
        "unhandled.exception",
        request_id=rid,
        error_code="internal_error",
        extra={"path": request.url.path, "exception_type": type(exc).__name__},
        exc_info=True,
    )
    return _error_response(rid, 500, "internal_error", "Unexpected error")
