"""Application exception types and the HTTP translation for them.

Every error leaving the API has the shape ``{"error": {"code": str, "message": str}}``.
Server-side failures are logged with their traceback but answered with a
generic message so no internals leak to the caller.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from advanced_alchemy.exceptions import ConflictError, IntegrityError, NotFoundError
from litestar import Response
from litestar.exceptions import HTTPException
from litestar.status_codes import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_405_METHOD_NOT_ALLOWED,
    HTTP_409_CONFLICT,
    HTTP_429_TOO_MANY_REQUESTS,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

if TYPE_CHECKING:
    from litestar import Request

__all__ = (
    "ApplicationClientError",
    "ApplicationError",
    "InvalidQuestionError",
    "RateLimitExceededException",
    "UnauthorizedError",
    "UserNotFoundError",
    "error_payload",
    "exception_to_http_response",
)

logger = structlog.get_logger()

GENERIC_SERVER_MESSAGE = "An unexpected error occurred."

_STATUS_CODES: dict[int, str] = {
    HTTP_400_BAD_REQUEST: "REQUEST_ERROR",
    HTTP_401_UNAUTHORIZED: "UNAUTHORIZED",
    HTTP_403_FORBIDDEN: "FORBIDDEN",
    HTTP_404_NOT_FOUND: "NOT_FOUND",
    HTTP_405_METHOD_NOT_ALLOWED: "METHOD_NOT_ALLOWED",
    HTTP_409_CONFLICT: "CONFLICT",
    HTTP_429_TOO_MANY_REQUESTS: "RATE_LIMITED",
}


class ApplicationError(Exception):
    """Base exception type for the application's custom exception types."""

    status_code: int = HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"
    detail: str

    def __init__(self, *args: Any, detail: str = "", headers: dict[str, str] | None = None) -> None:
        str_args = [str(arg) for arg in args if arg]
        if not detail:
            if str_args:
                detail, *str_args = str_args
            elif hasattr(self, "detail"):
                detail = self.detail
        self.detail = detail
        self.headers = headers or {}
        super().__init__(*str_args)

    def __str__(self) -> str:
        return self.detail or super().__str__()


class ApplicationClientError(ApplicationError):
    """Base exception type for errors caused by the request itself."""

    status_code = HTTP_400_BAD_REQUEST
    code = "REQUEST_ERROR"


class InvalidQuestionError(ApplicationClientError):
    code = "INVALID_QUESTION"
    detail = "Request body must include a non-empty question."


class UnauthorizedError(ApplicationClientError):
    status_code = HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"
    detail = "No user context was found for this request."


class UserNotFoundError(ApplicationClientError):
    status_code = HTTP_404_NOT_FOUND
    code = "USER_NOT_FOUND"
    detail = "User context no longer exists."


class RateLimitExceededException(ApplicationClientError):
    """Raised when an actor exceeds the per-window request ceiling."""

    status_code = HTTP_429_TOO_MANY_REQUESTS
    code = "RATE_LIMITED"
    detail = "Too many requests, please try again shortly."

    def __init__(self, *, actor_key: str, count: int, limit: int, headers: dict[str, str]) -> None:
        self.actor_key = actor_key
        self.count = count
        self.limit = limit
        super().__init__(headers=headers)


def error_payload(code: str, message: str) -> dict[str, dict[str, str]]:
    return {"error": {"code": code, "message": message}}


def exception_to_http_response(request: Request[Any, Any, Any], exc: Exception) -> Response[Any]:
    """Translate any exception into the JSON error envelope.

    Args:
        request: The request that experienced the exception.
        exc: Exception raised during handling of the request.

    Returns:
        Exception response appropriate to the type of original exception.
    """
    headers: dict[str, str] = {}
    if isinstance(exc, ApplicationError):
        status_code, code, message = exc.status_code, exc.code, exc.detail
        headers = exc.headers
    elif isinstance(exc, NotFoundError):
        status_code, code, message = HTTP_404_NOT_FOUND, "NOT_FOUND", exc.detail or "Resource not found."
    elif isinstance(exc, (ConflictError, IntegrityError)):
        status_code, code, message = HTTP_409_CONFLICT, "CONFLICT", exc.detail or "Conflicting resource state."
    elif isinstance(exc, HTTPException):
        status_code = exc.status_code
        code = _STATUS_CODES.get(status_code, "REQUEST_ERROR" if status_code < 500 else "INTERNAL_ERROR")
        message = exc.detail
        headers = dict(exc.headers or {})
    else:
        status_code, code, message = HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR", GENERIC_SERVER_MESSAGE

    if status_code >= HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error(
            "request_failed",
            path=request.url.path,
            method=request.method,
            error_type=type(exc).__name__,
            exc_info=exc,
        )
        message = GENERIC_SERVER_MESSAGE

    return Response(
        content=error_payload(code, message),
        status_code=status_code,
        headers=headers,
        media_type="application/json",
    )
