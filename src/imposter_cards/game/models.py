"""Game data models for imposter rounds.

This module defines the room state machine: players, prompt assignment,
answer and vote collection, and the guarded phase transitions. Every mutator
validates first and only then writes, so a rejected intent never leaves a
partial change behind.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from imposter_cards.exceptions import (
    AlreadyAnsweredError,
    AlreadyVotedError,
    CannotVoteSelfError,
    GameInProgressError,
    InsufficientPlayersError,
    InvalidPlayerIndexError,
    NameTakenError,
    NotHostError,
    PlayerNotFoundError,
    RoomFullError,
    WrongPhaseError,
)
from imposter_cards.game.types import Phase

if TYPE_CHECKING:
    from imposter_cards.game.timers import ScheduledTimer
    from imposter_cards.game.types import RandomSource

MAX_PLAYERS = 12
MIN_PLAYERS = 3
MAX_NAME_LENGTH = 20
MAX_ANSWER_LENGTH = 280
NO_ANSWER = "(No answer)"

ANSWER_TIME_BOUNDS = (15, 120)
VOTING_TIME_BOUNDS = (15, 300)


def _clamp(value: int, bounds: tuple[int, int]) -> int:
    low, high = bounds
    return max(low, min(high, value))


@dataclass
class Player:
    """A participant in a room.

    Attributes:
        id: Connection-derived identity, unique within the room.
        name: Display name, unique within the room ignoring case.
        is_host: Whether this player controls the room.
        is_connected: Whether the player's connection is live.
        joined_at: When the player joined.
    """

    id: str
    name: str
    is_host: bool = False
    is_connected: bool = True
    joined_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class PromptPair:
    """The two prompt texts dealt in a round.

    Attributes:
        majority: Text every non-imposter player receives.
        imposter: Text only the imposter receives.
        category: Category the pair was drawn from.
        id: Stable identifier for the pair.
    """

    majority: str
    imposter: str
    category: str = "general"
    id: str = ""

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "category": self.category,
            "majority": self.majority,
            "imposter": self.imposter,
        }


@dataclass
class RoomSettings:
    """Host-configurable round settings.

    Attributes:
        answer_time_seconds: Answering countdown (15-120).
        voting_time_seconds: Voting countdown (15-300).
        answering_enabled: Insert the answering phase between deal and discussion.
    """

    answer_time_seconds: int = 60
    voting_time_seconds: int = 60
    answering_enabled: bool = True

    def __post_init__(self) -> None:
        """Clamp durations into their bounds."""
        self.answer_time_seconds = _clamp(self.answer_time_seconds, ANSWER_TIME_BOUNDS)
        self.voting_time_seconds = _clamp(self.voting_time_seconds, VOTING_TIME_BOUNDS)

    def update(self, *, answer_time: int | None = None, voting_time: int | None = None) -> None:
        """Apply new durations, clamped into their bounds.

        Args:
            answer_time: New answering countdown in seconds.
            voting_time: New voting countdown in seconds.
        """
        if answer_time is not None:
            self.answer_time_seconds = _clamp(int(answer_time), ANSWER_TIME_BOUNDS)
        if voting_time is not None:
            self.voting_time_seconds = _clamp(int(voting_time), VOTING_TIME_BOUNDS)


@dataclass
class Room:
    """One isolated game session.

    Player indices are positions in ``players``, which keeps join order.
    ``votes`` and ``answers`` are keyed by the index a player had when the
    phase started. A player leaving mid-round does not renumber them; readers
    filter out indices that no longer fit the roster.

    Attributes:
        code: 4-digit join code.
        host_id: Identity of the current host.
        players: Roster in join order.
        phase: Current phase.
        settings: Countdown settings.
        category: Category of the current round.
        prompt_pair: Prompts of the current round (hidden until results).
        imposter_index: Index of the imposter (hidden until results).
        votes: Voter index -> voted-for index.
        answers: Player index -> submitted text.
        viewed: Identities that viewed their card this deal phase.
        eliminated_player_index: Voted-out index, set only in results.
        current_player_index: Deal progress (number of cards viewed).
        current_voter_index: Voting progress (number of votes cast).
        timer: The armed countdown, if any.
        created_at: When the room was created.
    """

    code: str
    host_id: str | None = None
    players: list[Player] = field(default_factory=list)
    phase: Phase = Phase.WAITING
    settings: RoomSettings = field(default_factory=RoomSettings)
    category: str | None = None
    prompt_pair: PromptPair | None = None
    imposter_index: int | None = None
    votes: dict[int, int] = field(default_factory=dict)
    answers: dict[int, str] = field(default_factory=dict)
    viewed: set[str] = field(default_factory=set)
    eliminated_player_index: int | None = None
    current_player_index: int = 0
    current_voter_index: int = 0
    timer: ScheduledTimer | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    # Roster

    def get_player(self, player_id: str) -> Player | None:
        """Get player by identity.

        Args:
            player_id: Identity to find.

        Returns:
            Player if found, None otherwise.
        """
        return next((p for p in self.players if p.id == player_id), None)

    def index_of(self, player_id: str) -> int | None:
        """Get the roster index of a player, or None if absent."""
        return next((i for i, p in enumerate(self.players) if p.id == player_id), None)

    def is_host(self, player_id: str) -> bool:
        """Check if a player is the host."""
        return self.host_id is not None and self.host_id == player_id

    def is_name_taken(self, name: str) -> bool:
        """Check a name against the roster, ignoring case."""
        folded = name.casefold()
        return any(p.name.casefold() == folded for p in self.players)

    def check_can_join(self, name: str) -> None:
        """Validate a join without changing anything.

        Args:
            name: Cleaned display name of the newcomer.

        Raises:
            GameInProgressError: If the room is not in the lobby.
            RoomFullError: If the room already has the maximum number of players.
            NameTakenError: If the name collides with a current player's.
        """
        if self.phase != Phase.WAITING:
            raise GameInProgressError
        if len(self.players) >= MAX_PLAYERS:
            raise RoomFullError(MAX_PLAYERS)
        if self.is_name_taken(name):
            raise NameTakenError(name)

    def add_player(self, player: Player) -> None:
        """Add a player to the room.

        The first player becomes the host.

        Args:
            player: Player to add.

        Raises:
            GameInProgressError: If the room is not in the lobby.
            RoomFullError: If the room already has the maximum number of players.
            NameTakenError: If the name collides with a current player's.
        """
        self.check_can_join(player.name)

        if not self.players:
            player.is_host = True
            self.host_id = player.id
        else:
            player.is_host = False

        self.players.append(player)

    def remove_player(self, player_id: str) -> Player | None:
        """Remove a player from the roster.

        If the host leaves, the earliest-joined remaining player becomes host.
        Round-scoped indices are left untouched.

        Args:
            player_id: Identity to remove.

        Returns:
            The removed player, or None if absent.
        """
        index = self.index_of(player_id)
        if index is None:
            return None

        player = self.players.pop(index)
        self.viewed.discard(player_id)

        if player.is_host:
            if self.players:
                self.players[0].is_host = True
                self.host_id = self.players[0].id
            else:
                self.host_id = None

        return player

    def require_host(self, player_id: str, action: str) -> None:
        """Raise NotHostError unless the player is the host."""
        if not self.is_host(player_id):
            raise NotHostError(action)

    def require_phase(self, phase: Phase) -> None:
        """Raise WrongPhaseError unless the room is in the given phase."""
        if self.phase != phase:
            raise WrongPhaseError(phase.value, self.phase.value)

    def require_index(self, index: object) -> int:
        """Validate a caller-supplied player index against the current roster.

        Args:
            index: Index as received from the client.

        Returns:
            The index as an int.

        Raises:
            InvalidPlayerIndexError: If the index is not an in-range integer.
        """
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(self.players):
            raise InvalidPlayerIndexError(index, len(self.players))
        return index

    # Round lifecycle

    def check_can_start(self, player_id: str) -> None:
        """Validate a start request without changing anything.

        Raises:
            NotHostError: If the caller is not the host.
            WrongPhaseError: If the room is not in the lobby.
            InsufficientPlayersError: If fewer than three players are present.
        """
        self.require_host(player_id, "start the game")
        self.require_phase(Phase.WAITING)
        if len(self.players) < MIN_PLAYERS:
            raise InsufficientPlayersError(MIN_PLAYERS, len(self.players))

    def start_round(self, category: str, prompt_pair: PromptPair, rng: RandomSource) -> None:
        """Deal a new round: pick the imposter and enter the deal phase.

        Callers validate with :meth:`check_can_start` first.

        Args:
            category: Category the prompts came from.
            prompt_pair: Prompts for this round.
            rng: Random source for the imposter pick.
        """
        self.category = category
        self.prompt_pair = prompt_pair
        self.imposter_index = rng.randrange(len(self.players))
        self.votes = {}
        self.answers = {}
        self.viewed = set()
        self.eliminated_player_index = None
        self.current_player_index = 0
        self.current_voter_index = 0
        self.phase = Phase.DEAL

    def prompt_for(self, player_index: object) -> str | None:
        """Get the prompt a player should see.

        Args:
            player_index: Roster index of the requesting player.

        Returns:
            The imposter text for the imposter, the majority text otherwise,
            or None while no round has been dealt.

        Raises:
            InvalidPlayerIndexError: If the index is out of range.
        """
        index = self.require_index(player_index)
        if self.prompt_pair is None:
            return None
        if index == self.imposter_index:
            return self.prompt_pair.imposter
        return self.prompt_pair.majority

    def mark_card_viewed(self, player_id: str) -> bool:
        """Record that a player viewed their card. Repeated calls are harmless.

        Args:
            player_id: Identity of the viewer.

        Returns:
            True once every current player has viewed their card.

        Raises:
            PlayerNotFoundError: If the identity is not in the room.
            WrongPhaseError: If the room is not dealing.
        """
        if self.get_player(player_id) is None:
            raise PlayerNotFoundError(player_id)
        self.require_phase(Phase.DEAL)

        self.viewed.add(player_id)
        self.current_player_index = len(self.viewed)
        return self.all_viewed()

    def all_viewed(self) -> bool:
        """Check whether every current player has viewed their card."""
        return bool(self.players) and all(p.id in self.viewed for p in self.players)

    def begin_answering(self) -> None:
        """Enter the answering phase."""
        self.answers = {}
        self.phase = Phase.ANSWERING

    def begin_discussion(self) -> None:
        """Enter the discussion phase straight from the deal (minimal loop)."""
        self.phase = Phase.DISCUSSION

    def submit_answer(self, player_index: object, text: str) -> bool:
        """Record a player's answer.

        Args:
            player_index: Roster index of the answering player.
            text: Answer text; trimmed and cut to 280 characters.

        Returns:
            True once every current player has answered.

        Raises:
            WrongPhaseError: If the room is not answering.
            InvalidPlayerIndexError: If the index is out of range.
            AlreadyAnsweredError: If this player already answered.
        """
        self.require_phase(Phase.ANSWERING)
        index = self.require_index(player_index)
        if index in self.answers:
            raise AlreadyAnsweredError(index)

        self.answers[index] = str(text).strip()[:MAX_ANSWER_LENGTH]
        return self.all_answered()

    def all_answered(self) -> bool:
        """Check whether every current player index has an answer."""
        return bool(self.players) and all(i in self.answers for i in range(len(self.players)))

    def finish_answering(self) -> None:
        """Close answering: fill in missing answers and enter discussion."""
        for index in range(len(self.players)):
            self.answers.setdefault(index, NO_ANSWER)
        self.phase = Phase.DISCUSSION

    def start_voting(self, player_id: str) -> None:
        """Open voting (host only).

        Raises:
            NotHostError: If the caller is not the host.
            WrongPhaseError: If the room is not in discussion.
        """
        self.require_host(player_id, "start voting")
        self.require_phase(Phase.DISCUSSION)

        self.votes = {}
        self.current_voter_index = 0
        self.phase = Phase.VOTING

    def cast_vote(self, voter_index: object, voted_for_index: object) -> bool:
        """Record a vote.

        Args:
            voter_index: Roster index of the voter.
            voted_for_index: Roster index of the suspect.

        Returns:
            True once every current player index has voted.

        Raises:
            WrongPhaseError: If the room is not voting.
            InvalidPlayerIndexError: If either index is out of range.
            CannotVoteSelfError: If the voter votes for themselves.
            AlreadyVotedError: If the voter already voted.
        """
        self.require_phase(Phase.VOTING)
        voter = self.require_index(voter_index)
        target = self.require_index(voted_for_index)
        if voter == target:
            raise CannotVoteSelfError(voter)
        if voter in self.votes:
            raise AlreadyVotedError(voter)

        self.votes[voter] = target
        self.current_voter_index += 1
        return self.all_voted()

    def all_voted(self) -> bool:
        """Check whether every current player index has a vote."""
        return bool(self.players) and all(i in self.votes for i in range(len(self.players)))

    def tally(self) -> Counter[int]:
        """Count votes per suspect, ignoring votes with stale indices.

        Returns:
            Counter mapping suspect index to votes received.
        """
        size = len(self.players)
        return Counter(
            target for voter, target in self.votes.items() if 0 <= voter < size and 0 <= target < size
        )

    def finish_voting(self, rng: RandomSource) -> int | None:
        """Close voting: pick the eliminated player and enter results.

        With no valid votes the eliminated player is drawn from the whole
        roster; otherwise ties on the highest count are broken at random.

        Args:
            rng: Random source for the tie-break.

        Returns:
            The eliminated index, or None if the room is empty.
        """
        counts = self.tally()
        if counts:
            top = max(counts.values())
            tied = sorted(index for index, count in counts.items() if count == top)
            eliminated = tied[0] if len(tied) == 1 else rng.choice(tied)
        elif self.players:
            eliminated = rng.randrange(len(self.players))
        else:
            eliminated = None

        self.eliminated_player_index = eliminated
        self.phase = Phase.RESULTS
        return eliminated

    def reset_round(self) -> None:
        """Return to the lobby, keeping the roster, code, and host."""
        self.phase = Phase.WAITING
        self.category = None
        self.prompt_pair = None
        self.imposter_index = None
        self.votes = {}
        self.answers = {}
        self.viewed = set()
        self.eliminated_player_index = None
        self.current_player_index = 0
        self.current_voter_index = 0
        self.timer = None

    def is_complete(self) -> bool:
        """Check whether the current phase has everything it waits for."""
        if self.phase == Phase.DEAL:
            return self.all_viewed()
        if self.phase == Phase.ANSWERING:
            return self.all_answered()
        if self.phase == Phase.VOTING:
            return self.all_voted()
        return False
