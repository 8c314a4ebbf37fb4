"""Litestar plugin for imposter-cards integration."""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass, field
from datetime import timedelta
from typing import TYPE_CHECKING

import structlog
from litestar.di import Provide
from litestar.plugins import InitPluginProtocol

from imposter_cards.core.tasks import run_periodic_cleanup
from imposter_cards.realtime.handler import RoomWebSocketHandler, create_room_websocket_handler
from imposter_cards.realtime.manager import ConnectionManager
from imposter_cards.services.game import RoomRegistry
from imposter_cards.web.controllers import create_router
from imposter_cards.web.health import HealthController

if TYPE_CHECKING:
    from litestar import Litestar
    from litestar.config.app import AppConfig

    from imposter_cards.game.prompts import PromptSource

logger = structlog.get_logger(__name__)


@dataclass
class ImposterConfig:
    """Configuration for the imposter-cards plugin.

    Attributes:
        registry: Pre-built room registry. If None, one is created from
            ``prompt_source``.
        prompt_source: Prompt supplier for a registry created by the plugin.
        connection_manager: Optional pre-configured ConnectionManager.
        enable_api: Whether to mount the REST routes. Defaults to True.
        enable_websocket: Whether to mount the WebSocket endpoint. Defaults to True.
        enable_health: Whether to mount /health and /ready. Defaults to True.
        api_path: Base path for the REST routes. Defaults to "/api".
        ws_path: Path of the WebSocket endpoint. Defaults to "/ws".
        room_max_age: Rooms older than this are swept.
        cleanup_interval_seconds: Time between two sweeps. Zero or less
            disables the sweeper.
        dependency_key: Dependency injection key for the RoomRegistry.

    Example:
        >>> config = ImposterConfig(ws_path="/socket", room_max_age=timedelta(minutes=30))
    """

    registry: RoomRegistry | None = None
    prompt_source: PromptSource | None = None
    connection_manager: ConnectionManager | None = field(default=None)
    enable_api: bool = True
    enable_websocket: bool = True
    enable_health: bool = True
    api_path: str = "/api"
    ws_path: str = "/ws"
    room_max_age: timedelta = field(default_factory=lambda: timedelta(hours=1))
    cleanup_interval_seconds: float = 1800
    dependency_key: str = "registry"


class ImposterPlugin(InitPluginProtocol):
    """Litestar plugin wiring the room registry into an application.

    Features:
        - Dependency injection for the RoomRegistry and ConnectionManager
        - REST lobby routes and health probes
        - The room WebSocket endpoint
        - A background sweeper that deletes stale rooms, started and stopped
          with the application

    Example:
        >>> from litestar import Litestar
        >>> from imposter_cards import ImposterPlugin, ImposterConfig
        >>>
        >>> app = Litestar(plugins=[ImposterPlugin(ImposterConfig())])

        Accessing the registry in route handlers:

        >>> from litestar import get
        >>> from imposter_cards.services.game import RoomRegistry
        >>>
        >>> @get("/rooms/count")
        ... async def count(registry: RoomRegistry) -> dict:
        ...     return {"rooms": registry.room_count}
    """

    def __init__(self, config: ImposterConfig | None = None) -> None:
        """Initialize the plugin with optional configuration.

        Args:
            config: Plugin configuration. If None, defaults are used.
        """
        self._config = config or ImposterConfig()
        self._registry: RoomRegistry | None = None
        self._connection_manager: ConnectionManager | None = None
        self._ws_handler: RoomWebSocketHandler | None = None
        self._sweeper: asyncio.Task[None] | None = None

    def on_app_init(self, app_config: AppConfig) -> AppConfig:
        """Register dependencies, routes, and lifecycle hooks.

        Args:
            app_config: The Litestar application configuration object.

        Returns:
            The modified application configuration.
        """
        self._registry = self._config.registry or RoomRegistry(self._config.prompt_source)
        self._connection_manager = self._config.connection_manager or ConnectionManager()

        app_config.dependencies[self._config.dependency_key] = Provide(self._provide_registry, sync_to_thread=False)
        app_config.dependencies["connection_manager"] = Provide(
            self._provide_connection_manager,
            sync_to_thread=False,
        )

        if self._config.enable_health:
            app_config.route_handlers.append(HealthController)

        if self._config.enable_api:
            app_config.route_handlers.append(create_router(path=self._config.api_path))

        if self._config.enable_websocket:
            ws_router, self._ws_handler = create_room_websocket_handler(
                path=self._config.ws_path,
                registry=self._registry,
                connection_manager=self._connection_manager,
            )
            app_config.route_handlers.append(ws_router)

        app_config.on_startup.append(self._start_sweeper)
        app_config.on_shutdown.append(self._shutdown)
        return app_config

    def _provide_registry(self) -> RoomRegistry:
        return self.registry

    def _provide_connection_manager(self) -> ConnectionManager:
        return self.connection_manager

    async def _start_sweeper(self, app: Litestar) -> None:
        if self._config.cleanup_interval_seconds <= 0 or self._sweeper is not None:
            return
        self._sweeper = asyncio.create_task(
            run_periodic_cleanup(
                self.registry,
                interval_seconds=self._config.cleanup_interval_seconds,
                max_age=self._config.room_max_age,
                connection_manager=self._connection_manager,
            )
        )

    async def _shutdown(self, app: Litestar) -> None:
        if self._sweeper is not None:
            self._sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweeper
            self._sweeper = None

        if self._registry is not None:
            await self._registry.timers.cancel_all()
            logger.info("Imposter plugin stopped", rooms=self._registry.room_count)

    @property
    def registry(self) -> RoomRegistry:
        """Get the room registry.

        Raises:
            RuntimeError: If the plugin has not been initialized yet.
        """
        if self._registry is None:
            msg = "Plugin not initialized. Call on_app_init first."
            raise RuntimeError(msg)
        return self._registry

    @property
    def connection_manager(self) -> ConnectionManager:
        """Get the connection manager.

        Raises:
            RuntimeError: If the plugin has not been initialized yet.
        """
        if self._connection_manager is None:
            msg = "Plugin not initialized. Call on_app_init first."
            raise RuntimeError(msg)
        return self._connection_manager

    @property
    def websocket_handler(self) -> RoomWebSocketHandler | None:
        """The room WebSocket handler, or None when the endpoint is disabled."""
        return self._ws_handler

    @property
    def sweeper_running(self) -> bool:
        """Whether the stale-room sweeper task is alive."""
        return self._sweeper is not None and not self._sweeper.done()
