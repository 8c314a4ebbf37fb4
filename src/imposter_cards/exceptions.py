"""Custom exceptions for imposter-cards.

Every failure a caller can trigger is a subclass of :class:`ImposterError`.
Each class carries a stable ``code`` that is sent back over the wire, so
clients can branch on it without parsing messages.
"""

from __future__ import annotations

from typing import ClassVar


class ImposterError(Exception):
    """Base exception class for all imposter-cards errors."""

    code: ClassVar[str] = "error"


class RoomNotFoundError(ImposterError):
    """Raised when no live room has the requested code.

    Attributes:
        room_code: The code that was looked up.
    """

    code = "room_not_found"

    def __init__(self, room_code: str) -> None:
        """Initialize the exception with the room code.

        Args:
            room_code: The code that was looked up.
        """
        self.room_code = room_code
        super().__init__(f"Room not found: {room_code}")


class PlayerNotFoundError(ImposterError):
    """Raised when an identity is not a member of the room."""

    code = "player_not_found"

    def __init__(self, player_id: str) -> None:
        self.player_id = player_id
        super().__init__(f"Player not found: {player_id}")


class NotInRoomError(ImposterError):
    """Raised when a connection sends a room intent before joining one."""

    code = "not_in_room"

    def __init__(self) -> None:
        super().__init__("Not in a room")


class NotHostError(ImposterError):
    """Raised when a host-only action is requested by another player."""

    code = "not_host"

    def __init__(self, action: str = "perform this action") -> None:
        """Initialize the exception.

        Args:
            action: Short description of the rejected action.
        """
        self.action = action
        super().__init__(f"Only the host can {action}")


class InsufficientPlayersError(ImposterError):
    """Raised when a round is started with too few players.

    Attributes:
        required: Minimum number of players.
        available: Number of players in the room.
    """

    code = "insufficient_players"

    def __init__(self, required: int, available: int) -> None:
        self.required = required
        self.available = available
        super().__init__(f"Need at least {required} players (have {available})")


class InvalidCategoryError(ImposterError):
    """Raised when a category has no prompts."""

    code = "invalid_category"

    def __init__(self, category: str) -> None:
        """Initialize the exception.

        Args:
            category: The invalid category that was requested.
        """
        self.category = category
        super().__init__(f"Invalid category: {category}")


class RoomFullError(ImposterError):
    """Raised when joining a room that is at capacity."""

    code = "room_full"

    def __init__(self, max_players: int) -> None:
        self.max_players = max_players
        super().__init__(f"Room is full ({max_players} players)")


class NameTakenError(ImposterError):
    """Raised when a display name is already used in the room (case-insensitive)."""

    code = "name_taken"

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Name already taken: {name}")


class InvalidNameError(ImposterError):
    """Raised when a display name is empty after trimming."""

    code = "invalid_name"

    def __init__(self) -> None:
        super().__init__("Name must not be empty")


class GameInProgressError(ImposterError):
    """Raised when joining a room whose round has already started."""

    code = "game_in_progress"

    def __init__(self) -> None:
        super().__init__("Game already in progress")


class WrongPhaseError(ImposterError):
    """Raised when an intent does not belong to the room's current phase.

    Attributes:
        expected: Phase the intent requires.
        actual: Phase the room is in.
    """

    code = "wrong_phase"

    def __init__(self, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"Not in {expected} phase (room is in {actual})")


class AlreadyAnsweredError(ImposterError):
    """Raised when a player submits a second answer in one answering phase."""

    code = "already_answered"

    def __init__(self, player_index: int) -> None:
        self.player_index = player_index
        super().__init__("Already answered")


class AlreadyVotedError(ImposterError):
    """Raised when a player votes twice in one voting phase."""

    code = "already_voted"

    def __init__(self, voter_index: int) -> None:
        self.voter_index = voter_index
        super().__init__("Already voted")


class CannotVoteSelfError(ImposterError):
    """Raised when a player votes for themselves."""

    code = "cannot_vote_self"

    def __init__(self, voter_index: int) -> None:
        self.voter_index = voter_index
        super().__init__("Cannot vote for yourself")


class InvalidPlayerIndexError(ImposterError):
    """Raised when a caller-supplied player index is outside the current roster."""

    code = "invalid_player_index"

    def __init__(self, index: object, player_count: int) -> None:
        self.index = index
        self.player_count = player_count
        super().__init__(f"Invalid player index {index!r} (room has {player_count} players)")


class NotYourCardError(ImposterError):
    """Raised when a player asks for another player's prompt."""

    code = "not_your_card"

    def __init__(self, index: int) -> None:
        self.index = index
        super().__init__("You can only view your own card")


class RegistryFullError(ImposterError):
    """Raised when every room code is in use."""

    code = "registry_full"

    def __init__(self, capacity: int) -> None:
        self.capacity = capacity
        super().__init__(f"No room codes available ({capacity} rooms live)")
