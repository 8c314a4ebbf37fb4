"""Tests for settings, background tasks, error mapping, and the plugin."""

from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import TYPE_CHECKING
from unittest.mock import AsyncMock, MagicMock

import pytest
from litestar import Litestar
from litestar.testing import TestClient

from imposter_cards.core.error_handling import ErrorResponse, status_for
from imposter_cards.core.settings import AppSettings
from imposter_cards.core.tasks import cleanup_stale_rooms, run_periodic_cleanup
from imposter_cards.exceptions import (
    AlreadyVotedError,
    InvalidCategoryError,
    NotHostError,
    RegistryFullError,
    RoomNotFoundError,
)
from imposter_cards.game.types import TimerType
from imposter_cards.plugin import ImposterConfig, ImposterPlugin
from imposter_cards.realtime.manager import ConnectionManager

if TYPE_CHECKING:
    from imposter_cards.services.game import RoomRegistry


class TestAppSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test defaults when nothing is set."""
        for name in ("DEBUG", "JSON_LOGS", "ROOM_MAX_AGE_SECONDS", "CLEANUP_INTERVAL_SECONDS", "WS_PATH", "API_PATH"):
            monkeypatch.delenv(f"IMPOSTER_{name}", raising=False)

        settings = AppSettings.from_env()

        assert settings.debug is False
        assert settings.json_logs is False
        assert settings.room_max_age == timedelta(hours=1)
        assert settings.cleanup_interval_seconds == 1800
        assert settings.ws_path == "/ws"
        assert settings.api_path == "/api"

    def test_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test reading overrides from the environment."""
        monkeypatch.setenv("IMPOSTER_DEBUG", "yes")
        monkeypatch.setenv("IMPOSTER_JSON_LOGS", "1")
        monkeypatch.setenv("IMPOSTER_ROOM_MAX_AGE_SECONDS", "600")
        monkeypatch.setenv("IMPOSTER_WS_PATH", "/socket")

        settings = AppSettings.from_env()

        assert settings.debug is True
        assert settings.json_logs is True
        assert settings.room_max_age == timedelta(minutes=10)
        assert settings.ws_path == "/socket"


class TestErrorMapping:
    """Tests for HTTP status selection."""

    @pytest.mark.parametrize(
        ("exc", "status"),
        [
            (RoomNotFoundError("1234"), 404),
            (InvalidCategoryError("astrology"), 400),
            (RegistryFullError(9000), 503),
            (NotHostError(), 409),
            (AlreadyVotedError(0), 409),
        ],
    )
    def test_status_for(self, exc: Exception, status: int) -> None:
        """Test that each error family maps to its status."""
        assert status_for(exc) == status

    def test_error_response_omits_missing_correlation_id(self) -> None:
        """Test the error body without a correlation id."""
        assert ErrorResponse(message="nope", code="not_host").to_dict() == {
            "status": "error",
            "message": "nope",
            "code": "not_host",
        }


class TestCleanupTasks:
    """Tests for the stale-room sweep."""

    async def test_cleanup_stale_rooms(self, registry: RoomRegistry) -> None:
        """Test that expired rooms are deleted along with their sockets."""
        room = registry.create_room("alice", "Alice")
        manager = ConnectionManager()
        await manager.connect(MagicMock(), room.code, "alice", "Alice")

        result = await cleanup_stale_rooms(registry, timedelta(seconds=-1), manager)

        assert result == {"task": "cleanup_stale_rooms", "removed_rooms": 1, "remaining_rooms": 0}
        assert manager.total_connections == 0

    async def test_cleanup_keeps_fresh_rooms(self, registry: RoomRegistry) -> None:
        """Test that young rooms survive a sweep."""
        registry.create_room("alice", "Alice")

        result = await cleanup_stale_rooms(registry, timedelta(hours=1))

        assert result["removed_rooms"] == 0
        assert registry.room_count == 1

    async def test_periodic_cleanup_runs_until_cancelled(self, registry: RoomRegistry) -> None:
        """Test the sweeper loop."""
        registry.create_room("alice", "Alice")
        task = asyncio.create_task(
            run_periodic_cleanup(registry, interval_seconds=0.01, max_age=timedelta(seconds=-1))
        )

        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert registry.room_count == 0


class TestImposterPlugin:
    """Tests for the Litestar plugin."""

    def test_registry_before_init(self) -> None:
        """Test that the plugin refuses access before app init."""
        plugin = ImposterPlugin()
        with pytest.raises(RuntimeError):
            _ = plugin.registry

    def test_uses_given_registry(self, registry: RoomRegistry) -> None:
        """Test that a pre-built registry is injected."""
        plugin = ImposterPlugin(ImposterConfig(registry=registry, cleanup_interval_seconds=0))
        Litestar(plugins=[plugin])

        assert plugin.registry is registry
        assert plugin.websocket_handler is not None

    def test_disabled_routes(self, registry: RoomRegistry) -> None:
        """Test that route groups can be switched off."""
        plugin = ImposterPlugin(
            ImposterConfig(
                registry=registry,
                enable_api=False,
                enable_websocket=False,
                cleanup_interval_seconds=0,
            )
        )
        app = Litestar(plugins=[plugin])

        with TestClient(app=app) as client:
            assert client.get("/api/categories").status_code == 404
            assert client.get("/health").status_code == 200
        assert plugin.websocket_handler is None

    def test_sweeper_lifecycle(self, registry: RoomRegistry) -> None:
        """Test that the sweeper starts with the app and stops with it."""
        plugin = ImposterPlugin(ImposterConfig(registry=registry, cleanup_interval_seconds=60))
        app = Litestar(plugins=[plugin])

        with TestClient(app=app):
            assert plugin.sweeper_running is True
        assert plugin.sweeper_running is False

    async def test_shutdown_waits_for_countdowns(self, registry: RoomRegistry) -> None:
        """Test that stopping the plugin cancels and awaits armed countdowns."""
        plugin = ImposterPlugin(ImposterConfig(registry=registry, cleanup_interval_seconds=0))
        app = Litestar(plugins=[plugin])
        timer = registry.timers.arm("1234", TimerType.VOTING, 30, AsyncMock())

        await plugin._shutdown(app)

        assert timer.task is not None
        assert timer.task.done()
        assert registry.timers.active_count == 0
