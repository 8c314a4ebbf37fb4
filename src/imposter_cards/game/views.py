"""Client-facing projections of room state.

The snapshot is rebuilt on every call. The imposter index and the prompt pair
only appear once the room reaches results; before that a client learns its own
prompt only by asking for it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from imposter_cards.game.models import NO_ANSWER
from imposter_cards.game.types import Phase

if TYPE_CHECKING:
    from imposter_cards.game.models import Player, Room

ANSWER_PHASES = frozenset({Phase.DISCUSSION, Phase.VOTING, Phase.RESULTS})


def serialize_player(player: Player) -> dict[str, Any]:
    """Serialize a player without progress flags."""
    return {
        "id": player.id,
        "name": player.name,
        "isHost": player.is_host,
        "isConnected": player.is_connected,
    }


def serialize_answers(room: Room) -> list[dict[str, Any]]:
    """List every current player's answer, with the placeholder where missing."""
    return [
        {
            "name": player.name,
            "answer": room.answers.get(index, NO_ANSWER),
            "playerIndex": index,
        }
        for index, player in enumerate(room.players)
    ]


def serialize_room(room: Room) -> dict[str, Any]:
    """Build the sanitized snapshot broadcast after every change.

    Args:
        room: The room.

    Returns:
        Snapshot with per-player progress flags and aggregate counts.
    """
    size = len(room.players)
    answered = {index for index in room.answers if 0 <= index < size}
    voted = {index for index in room.votes if 0 <= index < size}

    players = [
        {
            **serialize_player(player),
            "hasViewedCard": player.id in room.viewed,
            "hasAnswered": index in answered,
            "hasVoted": index in voted,
        }
        for index, player in enumerate(room.players)
    ]

    snapshot: dict[str, Any] = {
        "code": room.code,
        "hostId": room.host_id,
        "players": players,
        "phase": room.phase.value,
        "category": room.category,
        "currentPlayerIndex": room.current_player_index,
        "currentVoterIndex": room.current_voter_index,
        "votes": {str(voter): target for voter, target in room.votes.items()},
        "eliminatedPlayerIndex": room.eliminated_player_index,
        "hasPrompt": room.prompt_pair is not None,
        "timerEndTime": room.timer.end_time_ms if room.timer else None,
        "timerType": room.timer.timer_type.value if room.timer else None,
        "settings": {
            "answerTime": room.settings.answer_time_seconds,
            "votingTime": room.settings.voting_time_seconds,
            "answeringEnabled": room.settings.answering_enabled,
        },
        "viewedCount": sum(1 for player in room.players if player.id in room.viewed),
        "answeredCount": len(answered),
        "votedCount": len(voted),
    }

    if room.phase in ANSWER_PHASES:
        snapshot["answers"] = serialize_answers(room)

    if room.phase == Phase.RESULTS:
        snapshot["imposterIndex"] = room.imposter_index
        snapshot["promptPair"] = room.prompt_pair.to_dict() if room.prompt_pair else None

    return snapshot
