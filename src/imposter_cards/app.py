"""Main Litestar application for imposter-cards.

This module provides the application factory and the configured app instance
for running imposter-cards as a standalone server::

    uvicorn imposter_cards.app:app
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import structlog
from litestar import Litestar
from litestar.openapi import OpenAPIConfig

from imposter_cards import __version__
from imposter_cards.cli import ImposterCLIPlugin
from imposter_cards.core.error_handling import get_exception_handlers
from imposter_cards.core.logging import configure_logging, get_middleware
from imposter_cards.core.settings import AppSettings
from imposter_cards.plugin import ImposterConfig, ImposterPlugin

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from imposter_cards.services.game import RoomRegistry

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: Litestar) -> AsyncGenerator[None, None]:
    """Log application start and stop."""
    logger.info("Imposter Cards server starting", version=__version__)
    yield
    logger.info("Imposter Cards server stopped")


def create_app(
    settings: AppSettings | None = None,
    *,
    registry: RoomRegistry | None = None,
) -> Litestar:
    """Create and configure the Litestar application.

    Args:
        settings: Application settings. If None, loads from environment.
        registry: Pre-built room registry (tests inject one with a seeded
            random source).

    Returns:
        Configured Litestar application instance.
    """
    settings = settings or AppSettings.from_env()
    configure_logging(debug=settings.debug, json_logs=settings.json_logs)

    plugin = ImposterPlugin(
        ImposterConfig(
            registry=registry,
            api_path=settings.api_path,
            ws_path=settings.ws_path,
            room_max_age=settings.room_max_age,
            cleanup_interval_seconds=settings.cleanup_interval_seconds,
        )
    )

    return Litestar(
        route_handlers=[],
        plugins=[plugin, ImposterCLIPlugin()],
        debug=settings.debug,
        lifespan=[lifespan],
        middleware=get_middleware(),
        exception_handlers=get_exception_handlers(),
        openapi_config=OpenAPIConfig(
            title="imposter-cards API",
            version=__version__,
            description="Realtime party game server: find the player holding the different prompt",
            path="/schema",
            use_handler_docstrings=True,
        ),
    )


app = create_app()
