"""Exception handlers mapping imposter-cards errors to JSON responses.

Every error body has the same shape, carrying the stable error ``code`` from
the exception taxonomy and the request's correlation id.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog
from litestar import Response
from litestar.status_codes import (
    HTTP_400_BAD_REQUEST,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_503_SERVICE_UNAVAILABLE,
)

from imposter_cards.exceptions import (
    ImposterError,
    InvalidCategoryError,
    InvalidNameError,
    InvalidPlayerIndexError,
    PlayerNotFoundError,
    RegistryFullError,
    RoomNotFoundError,
)

if TYPE_CHECKING:
    from litestar import Request
    from litestar.exceptions import HTTPException

logger = structlog.get_logger(__name__)

STATUS_BY_ERROR: dict[type[ImposterError], int] = {
    RoomNotFoundError: HTTP_404_NOT_FOUND,
    PlayerNotFoundError: HTTP_404_NOT_FOUND,
    InvalidCategoryError: HTTP_400_BAD_REQUEST,
    InvalidNameError: HTTP_400_BAD_REQUEST,
    InvalidPlayerIndexError: HTTP_400_BAD_REQUEST,
    RegistryFullError: HTTP_503_SERVICE_UNAVAILABLE,
}

HTTP_ERROR_CODES = {
    400: "bad_request",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
    422: "validation_error",
    429: "rate_limited",
    500: "internal_error",
    503: "service_unavailable",
}


@dataclass
class ErrorResponse:
    """Structured error response format."""

    status: str = "error"
    message: str = ""
    code: str = "internal_error"
    correlation_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON response."""
        result: dict[str, Any] = {
            "status": self.status,
            "message": self.message,
            "code": self.code,
        }
        if self.correlation_id:
            result["correlation_id"] = self.correlation_id
        return result


def get_correlation_id(request: Request) -> str | None:
    """Extract correlation ID from request state or headers."""
    correlation_id = request.scope.get("state", {}).get("correlation_id")
    if correlation_id:
        return correlation_id
    return request.headers.get("X-Correlation-ID") or request.headers.get("X-Request-ID")


def status_for(exc: ImposterError) -> int:
    """HTTP status for a domain error: 404 for lookups, 400 for bad input, 409 otherwise."""
    for error_type in type(exc).__mro__:
        if error_type in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[error_type]
    return HTTP_409_CONFLICT


def _json(error: ErrorResponse, status_code: int) -> Response[dict[str, Any]]:
    return Response(content=error.to_dict(), status_code=status_code, media_type="application/json")


def imposter_error_handler(request: Request, exc: ImposterError) -> Response[dict[str, Any]]:
    """Handle domain errors raised by controllers."""
    correlation_id = get_correlation_id(request)
    status_code = status_for(exc)

    logger.warning(
        "Request rejected",
        correlation_id=correlation_id,
        path=request.url.path,
        code=exc.code,
        status_code=status_code,
    )

    return _json(ErrorResponse(message=str(exc), code=exc.code, correlation_id=correlation_id), status_code)


def http_exception_handler(request: Request, exc: HTTPException) -> Response[dict[str, Any]]:
    """Handle Litestar HTTP exceptions (routing, validation) with the common body."""
    correlation_id = get_correlation_id(request)
    error_code = HTTP_ERROR_CODES.get(exc.status_code, "error")

    log_method = logger.warning if exc.status_code < 500 else logger.error
    log_method(
        "HTTP exception",
        correlation_id=correlation_id,
        path=request.url.path,
        method=request.method,
        status_code=exc.status_code,
        error_code=error_code,
    )

    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return _json(ErrorResponse(message=message, code=error_code, correlation_id=correlation_id), exc.status_code)


def generic_exception_handler(request: Request, exc: Exception) -> Response[dict[str, Any]]:
    """Log unexpected exceptions and return a safe message."""
    correlation_id = get_correlation_id(request)

    logger.exception(
        "Unhandled exception",
        correlation_id=correlation_id,
        path=request.url.path,
        method=request.method,
        exc_info=exc,
    )

    error = ErrorResponse(
        message="An unexpected error occurred. Please try again later.",
        code="internal_error",
        correlation_id=correlation_id,
    )
    return _json(error, HTTP_500_INTERNAL_SERVER_ERROR)


def get_exception_handlers() -> dict:
    """Get all exception handlers for the application."""
    from litestar.exceptions import HTTPException

    return {
        ImposterError: imposter_error_handler,
        HTTPException: http_exception_handler,
        Exception: generic_exception_handler,
    }
