"""Health check endpoints for imposter-cards.

Provides /health and /ready endpoints for container orchestration
and load balancer health checks.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import ClassVar

from litestar import Controller, get

from imposter_cards import __version__
from imposter_cards.realtime.manager import ConnectionManager  # noqa: TC001
from imposter_cards.services.game import CODE_SPACE, RoomRegistry


class HealthStatus(str, Enum):
    """Health check status values."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    """Health status of an individual component."""

    name: str
    status: HealthStatus
    message: str | None = None


@dataclass
class HealthResponse:
    """Health check response."""

    status: HealthStatus
    rooms: int = 0
    connections: int = 0
    version: str = __version__
    timestamp: str = field(default_factory=lambda: datetime.now(UTC).isoformat())
    components: list[ComponentHealth] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "status": self.status.value,
            "version": self.version,
            "timestamp": self.timestamp,
            "rooms": self.rooms,
            "connections": self.connections,
            "components": [{"name": c.name, "status": c.status.value, "message": c.message} for c in self.components],
        }


def _registry_health(registry: RoomRegistry) -> ComponentHealth:
    """Rooms can be created while codes are left; nearly full is degraded."""
    used = registry.room_count
    if used >= CODE_SPACE:
        status = HealthStatus.UNHEALTHY
    elif used >= CODE_SPACE * 0.9:
        status = HealthStatus.DEGRADED
    else:
        status = HealthStatus.HEALTHY
    return ComponentHealth(name="rooms", status=status, message=f"{used} of {CODE_SPACE} room codes in use")


class HealthController(Controller):
    """Health check controller.

    Provides endpoints for liveness and readiness probes.
    """

    path = ""
    include_in_schema: ClassVar[bool] = True
    tags: ClassVar[list[str]] = ["Health"]

    @get("/health")
    async def health(self, registry: RoomRegistry, connection_manager: ConnectionManager) -> dict:
        """Liveness probe endpoint.

        Returns:
            Overall status, live room and socket counts, and component details.
        """
        components = [
            ComponentHealth(name="application", status=HealthStatus.HEALTHY, message="Application is running"),
            _registry_health(registry),
            ComponentHealth(
                name="timers",
                status=HealthStatus.HEALTHY,
                message=f"{registry.timers.active_count} countdowns armed",
            ),
        ]

        statuses = [c.status for c in components]
        if HealthStatus.UNHEALTHY in statuses:
            overall_status = HealthStatus.UNHEALTHY
        elif HealthStatus.DEGRADED in statuses:
            overall_status = HealthStatus.DEGRADED
        else:
            overall_status = HealthStatus.HEALTHY

        return HealthResponse(
            status=overall_status,
            rooms=registry.room_count,
            connections=connection_manager.total_connections,
            components=components,
        ).to_dict()

    @get("/ready")
    async def ready(self, registry: RoomRegistry) -> dict:
        """Readiness probe endpoint.

        Returns:
            Readiness status with individual check results.
        """
        checks = {
            "application": True,
            "room_codes_available": registry.room_count < CODE_SPACE,
        }

        return {
            "ready": all(checks.values()),
            "timestamp": datetime.now(UTC).isoformat(),
            "checks": checks,
        }
