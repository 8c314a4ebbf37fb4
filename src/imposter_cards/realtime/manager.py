"""Connection manager for room WebSocket sessions."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from litestar import WebSocket

logger = structlog.get_logger(__name__)


@dataclass
class ConnectedPlayer:
    """A socket that has joined a room."""

    player_id: str
    player_name: str
    websocket: WebSocket
    room_code: str
    connected_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "player_id": self.player_id,
            "player_name": self.player_name,
            "room_code": self.room_code,
            "connected_at": self.connected_at.isoformat(),
        }


class ConnectionManager:
    """Manages WebSocket connections grouped by room code.

    Tracks which sockets belong to which room and fans messages out to them.
    A send failure on one socket is logged and never stops delivery to the
    others.
    """

    def __init__(self) -> None:
        """Initialize the connection manager."""
        self._connections: dict[str, dict[str, ConnectedPlayer]] = {}
        self._lock = asyncio.Lock()

    async def connect(
        self,
        websocket: WebSocket,
        room_code: str,
        player_id: str,
        player_name: str,
    ) -> ConnectedPlayer:
        """Register a socket as a member of a room.

        Args:
            websocket: The WebSocket connection.
            room_code: The room being joined.
            player_id: Identity of the player.
            player_name: Display name of the player.

        Returns:
            The ConnectedPlayer instance.
        """
        async with self._lock:
            if room_code not in self._connections:
                self._connections[room_code] = {}

            player = ConnectedPlayer(
                player_id=player_id,
                player_name=player_name,
                websocket=websocket,
                room_code=room_code,
            )
            self._connections[room_code][player_id] = player

            logger.debug(
                "Socket joined room",
                player_id=player_id,
                room_code=room_code,
                sockets=len(self._connections[room_code]),
            )

            return player

    async def disconnect(self, room_code: str, player_id: str) -> None:
        """Remove a socket from a room.

        Args:
            room_code: The room being left.
            player_id: Identity of the player.
        """
        async with self._lock:
            if room_code in self._connections:
                if self._connections[room_code].pop(player_id, None):
                    logger.debug(
                        "Socket left room",
                        player_id=player_id,
                        room_code=room_code,
                        remaining=len(self._connections[room_code]),
                    )

                if not self._connections[room_code]:
                    del self._connections[room_code]

    async def close_room(self, room_code: str) -> None:
        """Forget every socket of a room."""
        async with self._lock:
            self._connections.pop(room_code, None)

    async def get_connected_players(self, room_code: str) -> list[ConnectedPlayer]:
        """Get all sockets that joined a room."""
        async with self._lock:
            return list(self._connections.get(room_code, {}).values())

    async def get_player(self, room_code: str, player_id: str) -> ConnectedPlayer | None:
        """Get one connected player, or None if not found."""
        async with self._lock:
            return self._connections.get(room_code, {}).get(player_id)

    async def broadcast(
        self,
        room_code: str,
        message: dict[str, Any],
        exclude_player: str | None = None,
    ) -> None:
        """Broadcast a message to every socket in a room.

        Args:
            room_code: The room to broadcast to.
            message: The message to send.
            exclude_player: Optional player ID to skip.
        """
        players = await self.get_connected_players(room_code)
        json_message = json.dumps(message)

        tasks = [
            self._send_to_player(player, json_message)
            for player in players
            if not (exclude_player and player.player_id == exclude_player)
        ]

        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def send_to_player(
        self,
        room_code: str,
        player_id: str,
        message: dict[str, Any],
    ) -> bool:
        """Send a message to one player of a room.

        Returns:
            True if sent successfully, False otherwise.
        """
        player = await self.get_player(room_code, player_id)
        if not player:
            return False

        try:
            await player.websocket.send_json(message)
        except Exception:
            logger.exception("Failed to send message to player", player_id=player_id, room_code=room_code)
            return False
        return True

    async def _send_to_player(self, player: ConnectedPlayer, message: str) -> None:
        try:
            await player.websocket.send_text(message)
        except Exception:
            logger.exception("Failed to send message", player_id=player.player_id, room_code=player.room_code)

    @property
    def active_rooms(self) -> int:
        """Number of rooms with at least one socket."""
        return len(self._connections)

    @property
    def total_connections(self) -> int:
        """Number of sockets that joined a room."""
        return sum(len(players) for players in self._connections.values())
