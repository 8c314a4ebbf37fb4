"""WebSocket handler for imposter rooms.

One socket is one player identity. Every client frame is a JSON object with a
``type`` naming the intent and an optional ``requestId`` that is echoed in the
single ``ack`` the caller receives. State changes are announced to the whole
room with ``room_updated`` snapshots.
"""

from __future__ import annotations

import contextlib
import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import structlog

from imposter_cards.exceptions import ImposterError, NotInRoomError
from imposter_cards.game.views import serialize_player, serialize_room
from imposter_cards.realtime.manager import ConnectionManager
from imposter_cards.realtime.messages import (
    AckMessage,
    ErrorMessage,
    GameStartedMessage,
    MessageType,
    PlayerJoinedMessage,
    PlayerLeftMessage,
    RoomClosedMessage,
    RoomUpdatedMessage,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from litestar import Router, WebSocket

    from imposter_cards.game.models import Room
    from imposter_cards.services.game import RoomRegistry

logger = structlog.get_logger(__name__)


@dataclass
class ConnectionSession:
    """Per-socket state: the identity and the room it currently belongs to."""

    socket: WebSocket
    player_id: str = field(default_factory=lambda: uuid4().hex)
    room_code: str | None = None
    player_name: str | None = None
    connected_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def require_room(self) -> str:
        """Get the current room code.

        Raises:
            NotInRoomError: If the session has not joined a room.
        """
        if self.room_code is None:
            raise NotInRoomError
        return self.room_code


def _int_field(data: dict[str, Any], key: str) -> int | None:
    """Read an optional integer field, ignoring values that are not numbers."""
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    return int(value)


class RoomWebSocketHandler:
    """Handler for room WebSocket connections.

    Translates client intents into registry operations, acknowledges each
    request to its sender, and broadcasts the resulting room state. Each
    intent runs under the room's lock, so broadcasts leave in the same order
    as the changes they describe.
    """

    def __init__(
        self,
        registry: RoomRegistry,
        connection_manager: ConnectionManager | None = None,
    ) -> None:
        """Initialize the handler.

        Args:
            registry: The room registry.
            connection_manager: Optional connection manager.
        """
        self._registry = registry
        self._manager = connection_manager or ConnectionManager()
        self._sessions: dict[str, ConnectionSession] = {}
        self._handlers: dict[str, Callable[[ConnectionSession, dict[str, Any]], Awaitable[dict[str, Any] | None]]] = {
            MessageType.CREATE_ROOM: self._handle_create_room,
            MessageType.JOIN_ROOM: self._handle_join_room,
            MessageType.LEAVE_ROOM: self._handle_leave_room,
            MessageType.UPDATE_SETTINGS: self._handle_update_settings,
            MessageType.START_GAME: self._handle_start_game,
            MessageType.REQUEST_PROMPT: self._handle_request_prompt,
            MessageType.CARD_VIEWED: self._handle_card_viewed,
            MessageType.SUBMIT_ANSWER: self._handle_submit_answer,
            MessageType.GET_ANSWERS: self._handle_get_answers,
            MessageType.START_VOTING: self._handle_start_voting,
            MessageType.CAST_VOTE: self._handle_cast_vote,
            MessageType.GET_TIME: self._handle_get_time,
            MessageType.PLAY_AGAIN: self._handle_play_again,
            MessageType.LIST_CATEGORIES: self._handle_list_categories,
        }
        registry.add_timeout_listener(self._on_timer_advance)
        registry.add_close_listener(self._on_room_closed)

    @property
    def manager(self) -> ConnectionManager:
        """The connection manager."""
        return self._manager

    @property
    def session_count(self) -> int:
        """Number of open sockets, in a room or not."""
        return len(self._sessions)

    async def handle_connection(self, socket: WebSocket) -> None:
        """Serve one socket until it closes.

        Args:
            socket: The WebSocket connection.
        """
        await socket.accept()
        session = ConnectionSession(socket=socket)
        self._sessions[session.player_id] = session

        logger.debug("WebSocket connection accepted", player_id=session.player_id)

        try:
            await self._receive_loop(session)
        except Exception:
            logger.exception("WebSocket error", player_id=session.player_id, room_code=session.room_code)
        finally:
            await self._handle_disconnect(session)

    async def _receive_loop(self, session: ConnectionSession) -> None:
        async for message in session.socket.iter_data():
            try:
                data = json.loads(message)
            except (json.JSONDecodeError, UnicodeDecodeError):
                await self._send_error(session.socket, "invalid_json", "Invalid JSON message")
                continue

            if not isinstance(data, dict) or not data.get("type"):
                await self._send_error(session.socket, "missing_type", "Message type required")
                continue

            await self._handle_message(session, data)

    async def _handle_message(self, session: ConnectionSession, data: dict[str, Any]) -> None:
        """Route a frame to its intent handler and acknowledge the result.

        Args:
            session: The sender's session.
            data: The decoded frame.
        """
        action = str(data["type"])
        request_id = data.get("requestId")

        handler = self._handlers.get(action)
        if handler is None:
            await self._send_error(session.socket, "unknown_type", f"Unknown message type: {action}")
            return

        try:
            payload = await handler(session, data)
        except ImposterError as exc:
            logger.warning(
                "Intent rejected",
                action=action,
                code=exc.code,
                player_id=session.player_id,
                room_code=session.room_code,
            )
            await self._send(session.socket, AckMessage.failure(action, request_id, exc.code, str(exc)).to_dict())
            return
        except Exception:
            logger.exception(
                "Error handling message",
                action=action,
                player_id=session.player_id,
                room_code=session.room_code,
            )
            failure = AckMessage.failure(action, request_id, "internal_error", "Internal server error")
            await self._send(session.socket, failure.to_dict())
            return

        ack = AckMessage(action=action, request_id=request_id, payload=payload or {})
        await self._send(session.socket, ack.to_dict())

    # Lobby

    async def _handle_create_room(self, session: ConnectionSession, data: dict[str, Any]) -> dict[str, Any]:
        name = self._registry.check_can_create(data.get("name"))
        if session.room_code is not None:
            await self._leave(session)

        room = self._registry.create_room(session.player_id, name)
        async with self._registry.room_lock(room.code):
            await self._attach(session, room)
            snapshot = serialize_room(room)

        return {"room": snapshot, "playerId": session.player_id}

    async def _handle_join_room(self, session: ConnectionSession, data: dict[str, Any]) -> dict[str, Any]:
        code = self._registry.get_room(str(data.get("code") or "")).code
        name = data.get("name")

        # Both rooms stay locked, in code order, from validation until the join.
        codes = sorted({code, session.room_code or code})
        async with contextlib.AsyncExitStack() as stack:
            for locked in codes:
                await stack.enter_async_context(self._registry.room_lock(locked))

            self._registry.check_can_join(code, session.player_id, name)
            if session.room_code is not None and session.room_code != code:
                await self._leave_locked(session)

            room, player = self._registry.join_room(code, session.player_id, name)
            await self._attach(session, room)
            snapshot = serialize_room(room)

            joined = PlayerJoinedMessage(
                player=serialize_player(player),
                players=[serialize_player(p) for p in room.players],
            )
            await self._manager.broadcast(room.code, joined.to_dict(), exclude_player=session.player_id)
            await self._broadcast_room(room)

        return {"room": snapshot, "playerId": session.player_id}

    async def _handle_leave_room(self, session: ConnectionSession, data: dict[str, Any]) -> None:
        session.require_room()
        await self._leave(session)

    async def _handle_update_settings(self, session: ConnectionSession, data: dict[str, Any]) -> dict[str, Any]:
        code = session.require_room()
        enabled = data.get("answeringEnabled")
        async with self._registry.room_lock(code):
            room = self._registry.update_settings(
                code,
                session.player_id,
                voting_time=_int_field(data, "votingTime"),
                answer_time=_int_field(data, "answerTime"),
                answering_enabled=enabled if isinstance(enabled, bool) else None,
            )
            await self._broadcast_room(room)
            return {"room": serialize_room(room)}

    # Round

    async def _handle_start_game(self, session: ConnectionSession, data: dict[str, Any]) -> None:
        code = session.require_room()
        async with self._registry.room_lock(code):
            room = self._registry.start_game(code, session.player_id, str(data.get("category") or ""))
            await self._manager.broadcast(room.code, GameStartedMessage(room=serialize_room(room)).to_dict())

    async def _handle_request_prompt(self, session: ConnectionSession, data: dict[str, Any]) -> dict[str, Any]:
        code = session.require_room()
        return {"prompt": self._registry.get_prompt(code, session.player_id, data.get("playerIndex"))}

    async def _handle_card_viewed(self, session: ConnectionSession, data: dict[str, Any]) -> None:
        code = session.require_room()
        async with self._registry.room_lock(code):
            room = self._registry.card_viewed(code, session.player_id)
            await self._broadcast_room(room)

    async def _handle_submit_answer(self, session: ConnectionSession, data: dict[str, Any]) -> None:
        code = session.require_room()
        async with self._registry.room_lock(code):
            room = self._registry.submit_answer(code, data.get("playerIndex"), str(data.get("answer") or ""))
            await self._broadcast_room(room)

    async def _handle_get_answers(self, session: ConnectionSession, data: dict[str, Any]) -> dict[str, Any]:
        code = session.require_room()
        return {"answers": self._registry.get_answers(code)}

    async def _handle_start_voting(self, session: ConnectionSession, data: dict[str, Any]) -> None:
        code = session.require_room()
        async with self._registry.room_lock(code):
            room = self._registry.start_voting(code, session.player_id)
            await self._broadcast_room(room)

    async def _handle_cast_vote(self, session: ConnectionSession, data: dict[str, Any]) -> None:
        code = session.require_room()
        async with self._registry.room_lock(code):
            room = self._registry.cast_vote(code, data.get("voterIndex"), data.get("votedForIndex"))
            await self._broadcast_room(room)

    async def _handle_get_time(self, session: ConnectionSession, data: dict[str, Any]) -> dict[str, Any]:
        code = session.require_room()
        return {"timeRemaining": self._registry.time_remaining(code)}

    async def _handle_play_again(self, session: ConnectionSession, data: dict[str, Any]) -> None:
        code = session.require_room()
        async with self._registry.room_lock(code):
            room = self._registry.reset_round(code, session.player_id)
            await self._broadcast_room(room)

    async def _handle_list_categories(self, session: ConnectionSession, data: dict[str, Any]) -> dict[str, Any]:
        return {"categories": self._registry.prompts.categories()}

    # Membership

    async def _attach(self, session: ConnectionSession, room: Room) -> None:
        player = room.get_player(session.player_id)
        session.room_code = room.code
        session.player_name = player.name if player else None
        await self._manager.connect(session.socket, room.code, session.player_id, session.player_name or "")

    async def _leave(self, session: ConnectionSession) -> None:
        """Take the session out of its room and tell the remaining players."""
        code = session.room_code
        if code is None:
            return

        async with self._registry.room_lock(code):
            await self._leave_locked(session)

    async def _leave_locked(self, session: ConnectionSession) -> None:
        """Leave the current room. The caller holds that room's lock."""
        code = session.room_code
        if code is None:
            return

        await self._manager.disconnect(code, session.player_id)
        result = self._registry.leave_room(code, session.player_id)
        session.room_code = None

        if result is None:
            return
        if result.room is None:
            await self._manager.close_room(code)
            return

        left = PlayerLeftMessage(
            player_id=session.player_id,
            player_name=result.player.name,
            players=[serialize_player(p) for p in result.room.players],
            new_host_id=result.room.host_id,
        )
        await self._manager.broadcast(code, left.to_dict())
        await self._broadcast_room(result.room)

    async def _handle_disconnect(self, session: ConnectionSession) -> None:
        self._sessions.pop(session.player_id, None)
        await self._leave(session)
        logger.debug("Player disconnected", player_id=session.player_id)

    async def _on_timer_advance(self, room: Room) -> None:
        await self._broadcast_room(room)

    async def _on_room_closed(self, code: str) -> None:
        """Detach every session still pointing at a swept room and tell its sockets."""
        await self._manager.broadcast(code, RoomClosedMessage(code=code, reason="expired").to_dict())
        for session in self._sessions.values():
            if session.room_code == code:
                session.room_code = None
                session.player_name = None
        await self._manager.close_room(code)

    # Sending

    async def _broadcast_room(self, room: Room) -> None:
        await self._manager.broadcast(room.code, RoomUpdatedMessage(room=serialize_room(room)).to_dict())

    async def _send(self, socket: WebSocket, data: dict[str, Any]) -> None:
        try:
            await socket.send_json(data)
        except Exception:
            logger.debug("Failed to send to socket", message_type=data.get("type"))

    async def _send_error(self, socket: WebSocket, code: str, message: str) -> None:
        await self._send(socket, ErrorMessage(code=code, message=message).to_dict())


def create_room_websocket_handler(
    path: str,
    registry: RoomRegistry,
    connection_manager: ConnectionManager | None = None,
) -> tuple[Router, RoomWebSocketHandler]:
    """Create a WebSocket router for room communication.

    Args:
        path: Path of the WebSocket endpoint.
        registry: The room registry.
        connection_manager: Optional connection manager.

    Returns:
        A tuple of (Litestar Router, RoomWebSocketHandler instance).
    """
    from litestar import Router, websocket

    handler = RoomWebSocketHandler(registry, connection_manager)

    @websocket(path="/")
    async def room_websocket(socket: WebSocket) -> None:
        """WebSocket endpoint for rooms.

        Args:
            socket: The WebSocket connection.
        """
        await handler.handle_connection(socket)

    router = Router(
        path=path,
        route_handlers=[room_websocket],
        tags=["Room WebSocket"],
    )
    return router, handler
