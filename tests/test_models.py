"""Tests for the room state machine."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

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
from imposter_cards.game.models import (
    MAX_ANSWER_LENGTH,
    MAX_PLAYERS,
    NO_ANSWER,
    Player,
    PromptPair,
    Room,
    RoomSettings,
)
from imposter_cards.game.types import Phase

if TYPE_CHECKING:
    from collections.abc import Callable

    from imposter_cards.game.types import RandomSource

    RngFactory = Callable[..., RandomSource]

PAIR = PromptPair(majority="Favorite season?", imposter="Least favorite season?", category="general", id="general-0")


def deal(room: Room, rng: RandomSource) -> None:
    room.check_can_start(room.host_id)
    room.start_round("general", PAIR, rng)


def to_voting(room: Room, rng: RandomSource) -> None:
    deal(room, rng)
    for player in room.players:
        room.mark_card_viewed(player.id)
    room.begin_discussion()
    room.start_voting(room.host_id)


class TestRoomSettings:
    """Tests for RoomSettings bounds."""

    def test_defaults(self) -> None:
        """Test default settings."""
        settings = RoomSettings()
        assert settings.answer_time_seconds == 60
        assert settings.voting_time_seconds == 60
        assert settings.answering_enabled is True

    def test_constructor_clamps(self) -> None:
        """Test constructor clamps."""
        settings = RoomSettings(answer_time_seconds=5, voting_time_seconds=1000)
        assert settings.answer_time_seconds == 15
        assert settings.voting_time_seconds == 300

    def test_update_clamps_and_ignores_none(self) -> None:
        """Test update clamps and ignores None."""
        settings = RoomSettings()
        settings.update(answer_time=500)
        assert settings.answer_time_seconds == 120
        assert settings.voting_time_seconds == 60

        settings.update(voting_time=3)
        assert settings.voting_time_seconds == 15


class TestRoster:
    """Tests for joining, leaving, and host migration."""

    def test_first_player_becomes_host(self) -> None:
        """Test first player becomes host."""
        room = Room(code="1000")
        room.add_player(Player(id="a", name="Alice"))
        room.add_player(Player(id="b", name="Bob"))

        assert room.host_id == "a"
        assert [p.is_host for p in room.players] == [True, False]

    def test_name_taken_is_case_insensitive(self, three_player_room: Room) -> None:
        """Test name taken is case insensitive."""
        with pytest.raises(NameTakenError, match="bob"):
            three_player_room.add_player(Player(id="x", name="bob"))
        assert len(three_player_room.players) == 3

    def test_room_full(self) -> None:
        """Test joining a full room."""
        room = Room(code="1000")
        for i in range(MAX_PLAYERS):
            room.add_player(Player(id=str(i), name=f"P{i}"))

        with pytest.raises(RoomFullError):
            room.add_player(Player(id="late", name="Late"))
        with pytest.raises(RoomFullError):
            room.check_can_join("Late")

    def test_check_can_join(self, three_player_room: Room) -> None:
        """Test that join validation never touches the roster."""
        three_player_room.check_can_join("Dave")
        with pytest.raises(NameTakenError):
            three_player_room.check_can_join("CAROL")
        assert [p.name for p in three_player_room.players] == ["Alice", "Bob", "Carol"]

    def test_join_during_round_rejected(self, three_player_room: Room, make_rng: RngFactory) -> None:
        """Test join during round rejected."""
        deal(three_player_room, make_rng())
        with pytest.raises(GameInProgressError):
            three_player_room.add_player(Player(id="d", name="Dave"))

    def test_host_leaving_migrates_to_earliest_joined(self, three_player_room: Room) -> None:
        """Test host leaving migrates to earliest joined."""
        removed = three_player_room.remove_player("alice")

        assert removed is not None
        assert removed.name == "Alice"
        assert three_player_room.host_id == "bob"
        assert [p.name for p in three_player_room.players] == ["Bob", "Carol"]
        assert [p.is_host for p in three_player_room.players] == [True, False]

    def test_non_host_leaving_keeps_host(self, three_player_room: Room) -> None:
        """Test non host leaving keeps host."""
        three_player_room.remove_player("carol")
        assert three_player_room.host_id == "alice"

    def test_last_player_leaving_clears_host(self) -> None:
        """Test last player leaving clears host."""
        room = Room(code="1000")
        room.add_player(Player(id="a", name="Alice"))
        room.remove_player("a")

        assert room.players == []
        assert room.host_id is None

    def test_remove_unknown_player(self, three_player_room: Room) -> None:
        """Test remove unknown player."""
        assert three_player_room.remove_player("nobody") is None
        assert len(three_player_room.players) == 3

    def test_exactly_one_host_through_departures(self, three_player_room: Room) -> None:
        """Test exactly one host through departures."""
        three_player_room.add_player(Player(id="dave", name="Dave"))
        for player_id in ("alice", "bob", "carol"):
            three_player_room.remove_player(player_id)
            assert sum(p.is_host for p in three_player_room.players) == 1


class TestStartGuards:
    """Tests for the start-game validation order."""

    def test_non_host_cannot_start(self, three_player_room: Room) -> None:
        """Test non host cannot start."""
        with pytest.raises(NotHostError, match="Only the host"):
            three_player_room.check_can_start("bob")

    def test_needs_three_players(self) -> None:
        """Test needs three players."""
        room = Room(code="1000")
        room.add_player(Player(id="a", name="Alice"))
        room.add_player(Player(id="b", name="Bob"))

        with pytest.raises(InsufficientPlayersError) as exc_info:
            room.check_can_start("a")
        assert exc_info.value.required == 3
        assert exc_info.value.available == 2

    def test_must_be_waiting(self, three_player_room: Room, make_rng: RngFactory) -> None:
        """Test must be waiting."""
        deal(three_player_room, make_rng())
        with pytest.raises(WrongPhaseError):
            three_player_room.check_can_start("alice")

    def test_host_check_comes_first(self) -> None:
        """Test host check comes first."""
        room = Room(code="1000")
        room.add_player(Player(id="a", name="Alice"))
        with pytest.raises(NotHostError):
            room.check_can_start("b")


class TestDeal:
    """Tests for dealing and card viewing."""

    def test_start_round_picks_imposter_from_rng(self, three_player_room: Room, make_rng: RngFactory) -> None:
        """Test start round picks imposter from rng."""
        deal(three_player_room, make_rng(indices=[2]))

        assert three_player_room.phase == Phase.DEAL
        assert three_player_room.imposter_index == 2
        assert three_player_room.eliminated_player_index is None
        assert three_player_room.votes == {}
        assert three_player_room.answers == {}

    def test_exactly_one_player_gets_imposter_prompt(self, three_player_room: Room, make_rng: RngFactory) -> None:
        """Test exactly one player gets imposter prompt."""
        deal(three_player_room, make_rng(indices=[1]))
        prompts = [three_player_room.prompt_for(i) for i in range(3)]

        assert prompts == [PAIR.majority, PAIR.imposter, PAIR.majority]

    def test_prompt_before_deal_is_none(self, three_player_room: Room) -> None:
        """Test prompt before deal is None."""
        assert three_player_room.prompt_for(0) is None

    def test_prompt_index_out_of_range(self, three_player_room: Room, make_rng: RngFactory) -> None:
        """Test prompt index out of range."""
        deal(three_player_room, make_rng())
        with pytest.raises(InvalidPlayerIndexError):
            three_player_room.prompt_for(3)
        with pytest.raises(InvalidPlayerIndexError):
            three_player_room.prompt_for("0")

    def test_card_viewed_is_idempotent(self, three_player_room: Room, make_rng: RngFactory) -> None:
        """Test card viewed is idempotent."""
        deal(three_player_room, make_rng())

        assert three_player_room.mark_card_viewed("bob") is False
        snapshot = (set(three_player_room.viewed), three_player_room.current_player_index)
        assert three_player_room.mark_card_viewed("bob") is False

        assert (set(three_player_room.viewed), three_player_room.current_player_index) == snapshot
        assert three_player_room.current_player_index == 1

    def test_all_viewed(self, three_player_room: Room, make_rng: RngFactory) -> None:
        """Test completion once every player viewed."""
        deal(three_player_room, make_rng())
        results = [three_player_room.mark_card_viewed(p.id) for p in three_player_room.players]
        assert results == [False, False, True]

    def test_card_viewed_outside_deal(self, three_player_room: Room) -> None:
        """Test card viewed outside deal."""
        with pytest.raises(WrongPhaseError):
            three_player_room.mark_card_viewed("alice")

    def test_card_viewed_unknown_player(self, three_player_room: Room, make_rng: RngFactory) -> None:
        """Test card viewed unknown player."""
        deal(three_player_room, make_rng())
        with pytest.raises(PlayerNotFoundError):
            three_player_room.mark_card_viewed("mallory")


class TestAnswering:
    """Tests for answer collection."""

    @pytest.fixture
    def answering_room(self, three_player_room: Room, make_rng: RngFactory) -> Room:
        deal(three_player_room, make_rng())
        three_player_room.begin_answering()
        return three_player_room

    def test_duplicate_answer_keeps_first(self, answering_room: Room) -> None:
        """Test duplicate answer keeps first."""
        answering_room.submit_answer(0, "Summer")

        with pytest.raises(AlreadyAnsweredError):
            answering_room.submit_answer(0, "Winter")
        assert answering_room.answers == {0: "Summer"}

    def test_answer_is_trimmed_and_truncated(self, answering_room: Room) -> None:
        """Test answer is trimmed and truncated."""
        answering_room.submit_answer(1, "   " + "x" * 400 + "  ")
        assert answering_room.answers[1] == "x" * MAX_ANSWER_LENGTH

    def test_answer_outside_answering(self, three_player_room: Room) -> None:
        """Test answer outside answering."""
        with pytest.raises(WrongPhaseError):
            three_player_room.submit_answer(0, "Summer")

    def test_answer_invalid_index(self, answering_room: Room) -> None:
        """Test answer invalid index."""
        with pytest.raises(InvalidPlayerIndexError):
            answering_room.submit_answer(7, "Summer")
        with pytest.raises(InvalidPlayerIndexError):
            answering_room.submit_answer(True, "Summer")
        assert answering_room.answers == {}

    def test_last_answer_reports_complete(self, answering_room: Room) -> None:
        """Test last answer reports complete."""
        assert answering_room.submit_answer(0, "a") is False
        assert answering_room.submit_answer(1, "b") is False
        assert answering_room.submit_answer(2, "c") is True

    def test_finish_answering_backfills_placeholder(self, answering_room: Room) -> None:
        """Test finish answering backfills placeholder."""
        answering_room.submit_answer(1, "Fall")
        answering_room.finish_answering()

        assert answering_room.phase == Phase.DISCUSSION
        assert answering_room.answers == {0: NO_ANSWER, 1: "Fall", 2: NO_ANSWER}


class TestVoting:
    """Tests for voting and result computation."""

    def test_start_voting_requires_host(self, three_player_room: Room, make_rng: RngFactory) -> None:
        """Test start voting requires host."""
        deal(three_player_room, make_rng())
        three_player_room.begin_discussion()
        with pytest.raises(NotHostError):
            three_player_room.start_voting("bob")
        assert three_player_room.phase == Phase.DISCUSSION

    def test_start_voting_requires_discussion(self, three_player_room: Room, make_rng: RngFactory) -> None:
        """Test start voting requires discussion."""
        deal(three_player_room, make_rng())
        with pytest.raises(WrongPhaseError):
            three_player_room.start_voting("alice")

    def test_cannot_vote_for_self(self, three_player_room: Room, make_rng: RngFactory) -> None:
        """Test cannot vote for self."""
        to_voting(three_player_room, make_rng())
        with pytest.raises(CannotVoteSelfError):
            three_player_room.cast_vote(1, 1)
        assert three_player_room.votes == {}

    def test_cannot_vote_twice(self, three_player_room: Room, make_rng: RngFactory) -> None:
        """Test cannot vote twice."""
        to_voting(three_player_room, make_rng())
        three_player_room.cast_vote(0, 1)
        with pytest.raises(AlreadyVotedError):
            three_player_room.cast_vote(0, 2)

        assert three_player_room.votes == {0: 1}
        assert three_player_room.current_voter_index == 1

    def test_vote_outside_voting(self, three_player_room: Room) -> None:
        """Test vote outside voting."""
        with pytest.raises(WrongPhaseError):
            three_player_room.cast_vote(0, 1)

    def test_vote_invalid_index(self, three_player_room: Room, make_rng: RngFactory) -> None:
        """Test vote invalid index."""
        to_voting(three_player_room, make_rng())
        with pytest.raises(InvalidPlayerIndexError):
            three_player_room.cast_vote(0, 9)
        with pytest.raises(InvalidPlayerIndexError):
            three_player_room.cast_vote(-1, 0)

    def test_majority_is_eliminated(self, three_player_room: Room, make_rng: RngFactory) -> None:
        """Test majority is eliminated."""
        to_voting(three_player_room, make_rng())
        three_player_room.cast_vote(0, 1)
        three_player_room.cast_vote(1, 0)
        assert three_player_room.cast_vote(2, 0) is True

        assert three_player_room.tally() == {0: 2, 1: 1}
        eliminated = three_player_room.finish_voting(make_rng(indices=[1]))

        assert eliminated == 0
        assert three_player_room.eliminated_player_index == 0
        assert three_player_room.phase == Phase.RESULTS

    def test_tie_is_broken_by_random_source(self, three_player_room: Room, make_rng: RngFactory) -> None:
        """Test tie is broken by random source."""
        to_voting(three_player_room, make_rng())
        three_player_room.cast_vote(0, 1)
        three_player_room.cast_vote(1, 0)

        assert three_player_room.finish_voting(make_rng(indices=[1])) == 1

    def test_no_votes_picks_any_player(self, three_player_room: Room, make_rng: RngFactory) -> None:
        """Test no votes picks any player."""
        to_voting(three_player_room, make_rng())
        assert three_player_room.finish_voting(make_rng(indices=[2])) == 2

    def test_stale_indices_are_ignored(self, three_player_room: Room, make_rng: RngFactory) -> None:
        """Test stale indices are ignored."""
        to_voting(three_player_room, make_rng())
        three_player_room.cast_vote(2, 0)
        three_player_room.cast_vote(1, 2)
        three_player_room.remove_player("carol")

        assert three_player_room.tally() == {}
        assert three_player_room.all_voted() is False
        three_player_room.cast_vote(0, 1)
        assert three_player_room.all_voted() is True
        assert three_player_room.tally() == {1: 1}


class TestReset:
    """Tests for returning to the lobby."""

    def test_reset_keeps_roster_and_host(self, three_player_room: Room, make_rng: RngFactory) -> None:
        """Test reset keeps roster and host."""
        to_voting(three_player_room, make_rng())
        three_player_room.cast_vote(0, 1)
        three_player_room.finish_voting(make_rng())

        three_player_room.reset_round()

        assert three_player_room.phase == Phase.WAITING
        assert three_player_room.host_id == "alice"
        assert len(three_player_room.players) == 3
        assert three_player_room.prompt_pair is None
        assert three_player_room.imposter_index is None
        assert three_player_room.eliminated_player_index is None
        assert three_player_room.votes == {}
        assert three_player_room.viewed == set()
