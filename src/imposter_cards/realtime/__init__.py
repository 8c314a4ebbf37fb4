"""Real-time WebSocket module for imposter-cards.

This module provides connection management, the wire messages, and the
WebSocket handler that turns client intents into room operations.
"""

from __future__ import annotations

from imposter_cards.realtime.handler import (
    ConnectionSession,
    RoomWebSocketHandler,
    create_room_websocket_handler,
)
from imposter_cards.realtime.manager import ConnectedPlayer, ConnectionManager
from imposter_cards.realtime.messages import (
    AckMessage,
    ErrorMessage,
    GameStartedMessage,
    MessageType,
    PlayerJoinedMessage,
    PlayerLeftMessage,
    RoomUpdatedMessage,
)

__all__ = [
    "AckMessage",
    "ConnectedPlayer",
    "ConnectionManager",
    "ConnectionSession",
    "ErrorMessage",
    "GameStartedMessage",
    "MessageType",
    "PlayerJoinedMessage",
    "PlayerLeftMessage",
    "RoomUpdatedMessage",
    "RoomWebSocketHandler",
    "create_room_websocket_handler",
]
