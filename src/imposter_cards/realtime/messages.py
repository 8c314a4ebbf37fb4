"""WebSocket message types and schemas for real-time communication."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class MessageType(str, Enum):
    """Types of WebSocket messages."""

    # Client -> Server
    CREATE_ROOM = "create_room"
    JOIN_ROOM = "join_room"
    LEAVE_ROOM = "leave_room"
    UPDATE_SETTINGS = "update_settings"
    START_GAME = "start_game"
    REQUEST_PROMPT = "request_prompt"
    CARD_VIEWED = "card_viewed"
    SUBMIT_ANSWER = "submit_answer"
    GET_ANSWERS = "get_answers"
    START_VOTING = "start_voting"
    CAST_VOTE = "cast_vote"
    GET_TIME = "get_time"
    PLAY_AGAIN = "play_again"
    LIST_CATEGORIES = "list_categories"

    # Server -> Client
    ACK = "ack"
    ERROR = "error"
    PLAYER_JOINED = "player_joined"
    PLAYER_LEFT = "player_left"
    GAME_STARTED = "game_started"
    ROOM_UPDATED = "room_updated"
    ROOM_CLOSED = "room_closed"


@dataclass
class AckMessage:
    """Reply sent to the requesting socket only, once per request."""

    action: str
    request_id: Any = None
    success: bool = True
    payload: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data: dict[str, Any] = {
            "type": MessageType.ACK.value,
            "requestId": self.request_id,
            "action": self.action,
            "success": self.success,
        }
        if self.success:
            data.update(self.payload)
        else:
            data["error"] = self.error
            data["message"] = self.message
        return data

    @classmethod
    def failure(cls, action: str, request_id: Any, code: str, message: str) -> AckMessage:
        """Build a failed acknowledgement."""
        return cls(action=action, request_id=request_id, success=False, error=code, message=message)


@dataclass
class ErrorMessage:
    """Message sent for frames that cannot be dispatched at all."""

    code: str
    message: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "type": MessageType.ERROR.value,
            "timestamp": self.timestamp.isoformat(),
            "code": self.code,
            "message": self.message,
        }


@dataclass
class RoomUpdatedMessage:
    """Broadcast carrying the sanitized room snapshot after a change."""

    room: dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "type": MessageType.ROOM_UPDATED.value,
            "timestamp": self.timestamp.isoformat(),
            "room": self.room,
        }


@dataclass
class GameStartedMessage:
    """Broadcast sent when a round is dealt."""

    room: dict[str, Any]
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "type": MessageType.GAME_STARTED.value,
            "timestamp": self.timestamp.isoformat(),
            "room": self.room,
        }


@dataclass
class PlayerJoinedMessage:
    """Broadcast sent to the other players when someone joins."""

    player: dict[str, Any]
    players: list[dict[str, Any]]
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "type": MessageType.PLAYER_JOINED.value,
            "timestamp": self.timestamp.isoformat(),
            "player": self.player,
            "players": self.players,
        }


@dataclass
class PlayerLeftMessage:
    """Broadcast sent to the remaining players when someone leaves."""

    player_id: str
    player_name: str
    players: list[dict[str, Any]]
    new_host_id: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "type": MessageType.PLAYER_LEFT.value,
            "timestamp": self.timestamp.isoformat(),
            "playerId": self.player_id,
            "playerName": self.player_name,
            "players": self.players,
            "newHostId": self.new_host_id,
        }


@dataclass
class RoomClosedMessage:
    """Sent to the sockets of a room the server deleted on its own."""

    code: str
    reason: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "type": MessageType.ROOM_CLOSED.value,
            "timestamp": self.timestamp.isoformat(),
            "code": self.code,
            "reason": self.reason,
        }
