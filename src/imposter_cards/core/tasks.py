"""Background maintenance tasks.

Rooms live in process memory, so the sweep runs as an asyncio task on the
application's own event loop rather than in a separate worker.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from datetime import timedelta

    from imposter_cards.realtime.manager import ConnectionManager
    from imposter_cards.services.game import RoomRegistry

logger = structlog.get_logger(__name__)


async def cleanup_stale_rooms(
    registry: RoomRegistry,
    max_age: timedelta,
    connection_manager: ConnectionManager | None = None,
) -> dict:
    """Delete rooms older than ``max_age`` and detach everyone still connected to them.

    Args:
        registry: The room registry.
        max_age: Maximum room age.
        connection_manager: Sockets of deleted rooms are dropped from it.

    Returns:
        Dict with cleanup results.
    """
    removed = registry.cleanup_stale(max_age)
    await registry.notify_closed(removed)
    if connection_manager is not None:
        for code in removed:
            await connection_manager.close_room(code)

    return {"task": "cleanup_stale_rooms", "removed_rooms": len(removed), "remaining_rooms": registry.room_count}


async def run_periodic_cleanup(
    registry: RoomRegistry,
    *,
    interval_seconds: float,
    max_age: timedelta,
    connection_manager: ConnectionManager | None = None,
) -> None:
    """Sweep stale rooms every ``interval_seconds`` until cancelled."""
    logger.info("Room sweeper started", interval=interval_seconds, max_age=max_age.total_seconds())
    try:
        while True:
            await asyncio.sleep(interval_seconds)
            try:
                result = await cleanup_stale_rooms(registry, max_age, connection_manager)
            except Exception:
                logger.exception("Room cleanup failed")
            else:
                logger.debug("Room cleanup completed", **result)
    except asyncio.CancelledError:
        logger.info("Room sweeper stopped")
        raise
