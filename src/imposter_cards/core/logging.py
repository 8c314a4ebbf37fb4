"""Structured logging setup and ASGI logging middleware for imposter-cards."""

from __future__ import annotations

import logging
import time
import uuid
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from litestar.types import ASGIApp, Message, Receive, Scope, Send

CORRELATION_HEADERS = (b"x-correlation-id", b"x-request-id")
DEFAULT_QUIET_PATHS = frozenset({"/health", "/ready", "/favicon.ico"})


def configure_logging(*, debug: bool = False, json_logs: bool = False) -> None:
    """Configure structlog for the application.

    Args:
        debug: Emit debug events (per-player progress, timer bookkeeping).
        json_logs: Render one JSON object per event instead of console lines.
    """
    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if json_logs:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors += [structlog.processors.ExceptionPrettyPrinter(), structlog.dev.ConsoleRenderer(colors=True)]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG if debug else logging.INFO),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _correlation_id(scope: Scope) -> str:
    headers = dict(scope.get("headers", []))
    for name in CORRELATION_HEADERS:
        value = headers.get(name, b"").decode()
        if value:
            return value
    return uuid.uuid4().hex


class CorrelationIdMiddleware:
    """Bind a correlation id to every HTTP request and WebSocket session.

    The id comes from ``X-Correlation-ID`` or ``X-Request-ID`` when the client
    sends one and is generated otherwise. It is stored in the scope state,
    merged into every structlog event of the connection, and echoed in HTTP
    response headers. For a WebSocket it covers the whole session, so every
    intent logged by the room handler carries it.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        correlation_id = _correlation_id(scope)
        scope.setdefault("state", {})["correlation_id"] = correlation_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(correlation_id=correlation_id, path=scope.get("path", ""))
        if scope["type"] == "http":
            structlog.contextvars.bind_contextvars(method=scope.get("method", ""))

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                message["headers"] = [*message.get("headers", []), (b"x-correlation-id", correlation_id.encode())]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            structlog.contextvars.clear_contextvars()


class RequestLoggingMiddleware:
    """Log each completed HTTP request with its status and duration.

    Status 5xx is logged as an error, 4xx as a warning, anything else as info.
    Probe paths are skipped.
    """

    def __init__(self, app: ASGIApp, *, exclude_paths: set[str] | frozenset[str] | None = None) -> None:
        """Initialize the middleware.

        Args:
            app: The ASGI application.
            exclude_paths: Paths that are never logged.
        """
        self.app = app
        self.exclude_paths = exclude_paths if exclude_paths is not None else DEFAULT_QUIET_PATHS

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope.get("path", "") in self.exclude_paths:
            await self.app(scope, receive, send)
            return

        logger = structlog.get_logger(__name__)
        start_time = time.perf_counter()
        status_code = 500
        client = scope.get("client")
        client_ip = client[0] if client else "unknown"

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status", 500)
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception:
            logger.exception("Request failed with exception", client_ip=client_ip)
            raise
        finally:
            if status_code >= 500:
                log_method = logger.error
            elif status_code >= 400:
                log_method = logger.warning
            else:
                log_method = logger.info

            log_method(
                "Request completed",
                status_code=status_code,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
                client_ip=client_ip,
            )


def get_middleware() -> list:
    """Get the logging middleware stack, outermost first."""
    return [CorrelationIdMiddleware, RequestLoggingMiddleware]
