"""Room registry: owns every live room and drives their phase transitions."""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import structlog

from imposter_cards.exceptions import InvalidNameError, NotYourCardError, RegistryFullError, RoomNotFoundError
from imposter_cards.game.models import MAX_NAME_LENGTH, Player, Room, RoomSettings
from imposter_cards.game.prompts import PromptBank
from imposter_cards.game.timers import TimerScheduler
from imposter_cards.game.types import Phase, TimerType
from imposter_cards.game.views import serialize_answers

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from imposter_cards.game.prompts import PromptSource
    from imposter_cards.game.timers import ScheduledTimer
    from imposter_cards.game.types import RandomSource

logger = structlog.get_logger(__name__)

CODE_MIN = 1000
CODE_SPACE = 9000  # codes 1000-9999


@dataclass
class LeaveResult:
    """Outcome of a player leaving a room.

    Attributes:
        player: The player that left.
        room: The room, or None if it was deleted because it became empty.
        new_host_id: Identity of the new host if the host changed.
        advanced: Whether the departure completed the current phase.
    """

    player: Player
    room: Room | None
    new_host_id: str | None = None
    advanced: bool = False

    @property
    def room_deleted(self) -> bool:
        """Whether the room was deleted."""
        return self.room is None


def clean_name(name: object) -> str:
    """Normalize a display name.

    Args:
        name: Raw name from the client.

    Returns:
        The trimmed name, cut to the maximum length.

    Raises:
        InvalidNameError: If nothing is left after trimming.
    """
    cleaned = str(name or "").strip()[:MAX_NAME_LENGTH].strip()
    if not cleaned:
        raise InvalidNameError
    return cleaned


class RoomRegistry:
    """Service for managing rooms and round logic.

    Provides business logic for:
    - Creating rooms under unique 4-digit codes and looking them up
    - Player join/leave, including host migration and empty-room deletion
    - Round lifecycle (deal, answering, discussion, voting, results, reset)
    - Countdown arming/cancellation and timer expiry handling
    - Sweeping rooms older than a maximum age

    All mutations of one room should run while holding :meth:`room_lock`
    for that room's code. Operations themselves never await, so each call is
    atomic on the event loop; the lock orders them against timer expiries and
    against the broadcasts that follow them.
    """

    def __init__(
        self,
        prompt_source: PromptSource | None = None,
        *,
        timers: TimerScheduler | None = None,
        rng: RandomSource | None = None,
        code_rng: RandomSource | None = None,
    ) -> None:
        """Initialize the registry.

        Args:
            prompt_source: Prompt supplier. Uses the built-in PromptBank if None.
            timers: Countdown scheduler. A new one is created if None.
            rng: Random source for imposter picks and tie-breaks.
            code_rng: Random source for room codes.
        """
        self._rooms: dict[str, Room] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._prompts = prompt_source or PromptBank()
        self._timers = timers or TimerScheduler()
        self._rng = rng or random.Random()
        self._code_rng = code_rng or random.Random()
        self._listeners: list[Callable[[Room], Awaitable[None]]] = []
        self._close_listeners: list[Callable[[str], Awaitable[None]]] = []

    @property
    def prompts(self) -> PromptSource:
        """The prompt supplier."""
        return self._prompts

    @property
    def timers(self) -> TimerScheduler:
        """The countdown scheduler."""
        return self._timers

    @property
    def room_count(self) -> int:
        """Number of live rooms."""
        return len(self._rooms)

    def add_timeout_listener(self, listener: Callable[[Room], Awaitable[None]]) -> None:
        """Register a coroutine awaited after a countdown changes a room.

        Args:
            listener: Called with the room, while its lock is held.
        """
        self._listeners.append(listener)

    def add_close_listener(self, listener: Callable[[str], Awaitable[None]]) -> None:
        """Register a coroutine awaited for each room the sweeper deletes.

        Args:
            listener: Called with the deleted room's code.
        """
        self._close_listeners.append(listener)

    async def notify_closed(self, codes: list[str]) -> None:
        """Tell the close listeners about rooms deleted by a sweep."""
        for code in codes:
            for listener in list(self._close_listeners):
                await listener(code)

    def room_lock(self, code: str) -> asyncio.Lock:
        """Get the lock that serializes work on one room.

        Only live rooms keep their lock. A code with no room gets a throwaway
        lock, so lookups after a deletion never grow the lock table.
        """
        lock = self._locks.get(code)
        if lock is None:
            lock = asyncio.Lock()
            if code in self._rooms:
                self._locks[code] = lock
        return lock

    # Room Management

    def check_can_create(self, host_name: str) -> str:
        """Validate a create request without changing anything.

        Returns:
            The cleaned host name.

        Raises:
            InvalidNameError: If the name is empty.
            RegistryFullError: If every code is in use.
        """
        name = clean_name(host_name)
        if len(self._rooms) >= CODE_SPACE:
            raise RegistryFullError(CODE_SPACE)
        return name

    def create_room(self, host_id: str, host_name: str, settings: RoomSettings | None = None) -> Room:
        """Create a new room with the caller as host.

        Args:
            host_id: Identity of the creating connection.
            host_name: Display name of the host.
            settings: Room settings (uses defaults if None).

        Returns:
            The created room.
        """
        name = clean_name(host_name)
        code = self._generate_room_code()

        room = Room(code=code, settings=settings or RoomSettings())
        room.add_player(Player(id=host_id, name=name))
        self._rooms[code] = room

        logger.info("Room created", room_code=code, host_id=host_id, host_name=name)
        return room

    def get_room(self, code: str) -> Room:
        """Get a room by code.

        Raises:
            RoomNotFoundError: If no live room has the code.
        """
        room = self._rooms.get(str(code).strip())
        if room is None:
            raise RoomNotFoundError(str(code))
        return room

    def find_room(self, code: str) -> Room | None:
        """Get a room by code, or None."""
        return self._rooms.get(str(code).strip())

    def get_all_rooms(self) -> list[Room]:
        """Get every live room."""
        return list(self._rooms.values())

    def delete_room(self, code: str) -> None:
        """Delete a room and cancel its countdown."""
        room = self._rooms.pop(code, None)
        self._timers.cancel(code)
        self._locks.pop(code, None)
        if room:
            room.timer = None
            logger.info("Room deleted", room_code=code)

    def cleanup_stale(self, max_age: timedelta, *, now: datetime | None = None) -> list[str]:
        """Delete rooms created longer ago than ``max_age``.

        Args:
            max_age: Maximum room age.
            now: Reference time (defaults to the current UTC time).

        Returns:
            Codes of the deleted rooms.
        """
        cutoff = (now or datetime.now(UTC)) - max_age
        stale = [code for code, room in self._rooms.items() if room.created_at < cutoff]
        for code in stale:
            self.delete_room(code)

        if stale:
            logger.info("Stale rooms removed", count=len(stale), remaining=len(self._rooms))
        return stale

    # Player Management

    def join_room(self, code: str, player_id: str, name: str) -> tuple[Room, Player]:
        """Add a player to a room.

        Args:
            code: Room code.
            player_id: Identity of the joining connection.
            name: Display name.

        Returns:
            Tuple of (room, player).

        Raises:
            RoomNotFoundError: If the room doesn't exist.
            InvalidNameError: If the name is empty.
            GameInProgressError: If the round has started.
            RoomFullError: If the room is full.
            NameTakenError: If the name is already used.
        """
        room = self.get_room(code)

        existing = room.get_player(player_id)
        if existing:
            return room, existing

        player = Player(id=player_id, name=clean_name(name))
        room.add_player(player)

        logger.info(
            "Player joined room",
            room_code=room.code,
            player_id=player_id,
            player_name=player.name,
            player_count=len(room.players),
        )
        return room, player

    def check_can_join(self, code: str, player_id: str, name: str) -> Room:
        """Validate a join without changing anything.

        Returns:
            The room that would be joined.

        Raises:
            RoomNotFoundError: If the room doesn't exist.
            InvalidNameError: If the name is empty.
            GameInProgressError: If the round has started.
            RoomFullError: If the room is full.
            NameTakenError: If the name is already used.
        """
        room = self.get_room(code)
        if room.get_player(player_id) is None:
            room.check_can_join(clean_name(name))
        return room

    def leave_room(self, code: str, player_id: str) -> LeaveResult | None:
        """Remove a player from a room.

        Deletes the room when it becomes empty. Otherwise the current phase is
        re-checked, since the departure may leave every remaining player done.

        Args:
            code: Room code.
            player_id: Identity of the leaving player.

        Returns:
            The outcome, or None if the room or player was not found.
        """
        room = self.find_room(code)
        if room is None:
            return None

        was_host = room.is_host(player_id)
        player = room.remove_player(player_id)
        if player is None:
            return None

        logger.info(
            "Player left room",
            room_code=room.code,
            player_id=player_id,
            player_name=player.name,
            phase=room.phase.value,
        )

        if not room.players:
            self.delete_room(room.code)
            return LeaveResult(player=player, room=None)

        advanced = self._advance_if_complete(room)
        return LeaveResult(
            player=player,
            room=room,
            new_host_id=room.host_id if was_host else None,
            advanced=advanced,
        )

    def update_settings(
        self,
        code: str,
        player_id: str,
        *,
        voting_time: int | None = None,
        answer_time: int | None = None,
        answering_enabled: bool | None = None,
    ) -> Room:
        """Change round settings (host only).

        Raises:
            RoomNotFoundError: If the room doesn't exist.
            NotHostError: If the caller is not the host.
        """
        room = self.get_room(code)
        room.require_host(player_id, "change settings")

        room.settings.update(answer_time=answer_time, voting_time=voting_time)
        if answering_enabled is not None:
            room.settings.answering_enabled = bool(answering_enabled)

        logger.debug(
            "Settings updated",
            room_code=room.code,
            answer_time=room.settings.answer_time_seconds,
            voting_time=room.settings.voting_time_seconds,
        )
        return room

    # Round Flow

    def start_game(self, code: str, player_id: str, category: str) -> Room:
        """Deal a new round (host only).

        Args:
            code: Room code.
            player_id: Player requesting the start.
            category: Prompt category.

        Returns:
            The room, now in the deal phase.

        Raises:
            RoomNotFoundError: If the room doesn't exist.
            NotHostError: If the caller is not the host.
            WrongPhaseError: If the room is not in the lobby.
            InsufficientPlayersError: If fewer than three players are present.
            InvalidCategoryError: If the category has no prompts.
        """
        room = self.get_room(code)
        room.check_can_start(player_id)
        prompt_pair = self._prompts.draw(str(category))

        self._disarm(room)
        room.start_round(str(category), prompt_pair, self._rng)

        logger.info(
            "Game started",
            room_code=room.code,
            category=category,
            player_count=len(room.players),
        )
        return room

    def get_prompt(self, code: str, player_id: str, player_index: object) -> str | None:
        """Get the caller's own prompt.

        Args:
            code: Room code.
            player_id: Identity of the caller.
            player_index: Roster index the caller claims.

        Raises:
            RoomNotFoundError: If the room doesn't exist.
            InvalidPlayerIndexError: If the index is out of range.
            NotYourCardError: If the index belongs to another player.
        """
        room = self.get_room(code)
        index = room.require_index(player_index)
        if room.index_of(player_id) != index:
            raise NotYourCardError(index)
        return room.prompt_for(index)

    def card_viewed(self, code: str, player_id: str) -> Room:
        """Record that a player viewed their card; advances once everyone has.

        Raises:
            RoomNotFoundError: If the room doesn't exist.
            PlayerNotFoundError: If the identity is not in the room.
            WrongPhaseError: If the room is not dealing.
        """
        room = self.get_room(code)
        all_viewed = room.mark_card_viewed(player_id)

        logger.debug(
            "Card viewed",
            room_code=room.code,
            player_id=player_id,
            viewed=room.current_player_index,
            total=len(room.players),
        )

        if all_viewed:
            self._advance_if_complete(room)
        return room

    def submit_answer(self, code: str, player_index: object, text: str) -> Room:
        """Record an answer; advances to discussion once everyone has answered.

        Raises:
            RoomNotFoundError: If the room doesn't exist.
            WrongPhaseError: If the room is not answering.
            InvalidPlayerIndexError: If the index is out of range.
            AlreadyAnsweredError: If this player already answered.
        """
        room = self.get_room(code)
        if room.submit_answer(player_index, text):
            self._advance_if_complete(room)
        return room

    def get_answers(self, code: str) -> list[dict[str, Any]]:
        """Get every player's answer, with placeholders for missing ones."""
        return serialize_answers(self.get_room(code))

    def start_voting(self, code: str, player_id: str) -> Room:
        """Open voting (host only) and arm the voting countdown.

        Raises:
            RoomNotFoundError: If the room doesn't exist.
            NotHostError: If the caller is not the host.
            WrongPhaseError: If the room is not in discussion.
        """
        room = self.get_room(code)
        room.start_voting(player_id)
        self._arm(room, TimerType.VOTING, room.settings.voting_time_seconds)

        logger.info("Voting started", room_code=room.code, duration=room.settings.voting_time_seconds)
        return room

    def cast_vote(self, code: str, voter_index: object, voted_for_index: object) -> Room:
        """Record a vote; computes results once everyone has voted.

        Raises:
            RoomNotFoundError: If the room doesn't exist.
            WrongPhaseError: If the room is not voting.
            InvalidPlayerIndexError: If an index is out of range.
            CannotVoteSelfError: If the voter votes for themselves.
            AlreadyVotedError: If the voter already voted.
        """
        room = self.get_room(code)
        if room.cast_vote(voter_index, voted_for_index):
            self._advance_if_complete(room)
        return room

    def reset_round(self, code: str, player_id: str) -> Room:
        """Return the room to the lobby for another round (host only).

        Raises:
            RoomNotFoundError: If the room doesn't exist.
            NotHostError: If the caller is not the host.
        """
        room = self.get_room(code)
        room.require_host(player_id, "restart the game")

        self._disarm(room)
        room.reset_round()

        logger.info("Round reset", room_code=room.code)
        return room

    def time_remaining(self, code: str) -> int | None:
        """Whole seconds left on the room's countdown, or None if none is armed."""
        room = self.get_room(code)
        return self._timers.remaining_seconds(room.code)

    # Transitions

    def _advance_if_complete(self, room: Room) -> bool:
        """Leave the current phase if it has everything it waits for.

        Returns:
            True if the room changed phase.
        """
        if not room.is_complete():
            return False

        if room.phase == Phase.DEAL:
            if room.settings.answering_enabled:
                room.begin_answering()
                self._arm(room, TimerType.ANSWERING, room.settings.answer_time_seconds)
            else:
                self._disarm(room)
                room.begin_discussion()
            logger.info("All cards viewed", room_code=room.code, next_phase=room.phase.value)
        elif room.phase == Phase.ANSWERING:
            self._disarm(room)
            room.finish_answering()
            logger.info("Answering finished", room_code=room.code, early=True)
        elif room.phase == Phase.VOTING:
            self._disarm(room)
            self._finish_voting(room)
        return True

    def _finish_voting(self, room: Room) -> None:
        eliminated = room.finish_voting(self._rng)
        logger.info(
            "Voting finished",
            room_code=room.code,
            votes=len(room.votes),
            eliminated=eliminated,
            imposter=room.imposter_index,
        )

    def _arm(self, room: Room, timer_type: TimerType, seconds: int) -> None:
        self._timers.cancel(room.code)
        room.timer = self._timers.arm(room.code, timer_type, seconds, self._on_timer_expired)

    def _disarm(self, room: Room) -> None:
        self._timers.cancel(room.code)
        room.timer = None

    async def _on_timer_expired(self, timer: ScheduledTimer) -> None:
        """Finish the timed phase, unless the room has already moved on."""
        async with self.room_lock(timer.room_code):
            room = self._rooms.get(timer.room_code)
            if room is None or room.timer is not timer:
                logger.debug("Stale timer ignored", room_code=timer.room_code, timer_type=timer.timer_type.value)
                return

            room.timer = None
            if timer.timer_type == TimerType.ANSWERING and room.phase == Phase.ANSWERING:
                room.finish_answering()
                logger.info("Answering finished", room_code=room.code, early=False)
            elif timer.timer_type == TimerType.VOTING and room.phase == Phase.VOTING:
                self._finish_voting(room)
            else:
                return

            for listener in list(self._listeners):
                await listener(room)

    # Utility Methods

    def _generate_room_code(self) -> str:
        """Generate a 4-digit code not used by any live room.

        Raises:
            RegistryFullError: If every code is in use.
        """
        if len(self._rooms) >= CODE_SPACE:
            raise RegistryFullError(CODE_SPACE)
        while True:
            code = str(CODE_MIN + self._code_rng.randrange(CODE_SPACE))
            if code not in self._rooms:
                return code
            logger.debug("Room code collision, regenerating", room_code=code)
