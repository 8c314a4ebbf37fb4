"""Type definitions for the imposter round lifecycle."""

from __future__ import annotations

from collections.abc import Sequence
from enum import StrEnum
from typing import Protocol, TypeVar

T = TypeVar("T")


class Phase(StrEnum):
    """Current stage of a room.

    The round progresses through these phases in order:
    WAITING -> DEAL -> ANSWERING -> DISCUSSION -> VOTING -> RESULTS -> WAITING
    ANSWERING is skipped when the room runs the minimal loop.
    """

    WAITING = "waiting"  # Lobby, players may join
    DEAL = "deal"  # Each player privately views their card
    ANSWERING = "answering"  # Players answer their prompt, timed
    DISCUSSION = "discussion"  # Review answers, host opens voting
    VOTING = "voting"  # Players vote out a suspect, timed
    RESULTS = "results"  # Imposter and prompts revealed


class TimerType(StrEnum):
    """Phase a countdown belongs to."""

    ANSWERING = "answering"
    VOTING = "voting"


class PromptCategory(StrEnum):
    """Built-in prompt categories."""

    GENERAL = "general"
    DEEP = "deep"
    SOCIAL = "social"
    FUN = "fun"
    FOOD = "food"
    ENTERTAINMENT = "entertainment"
    SPICY = "spicy"
    RANDOM = "random"  # Draws from every category


class RandomSource(Protocol):
    """Source of randomness used for imposter selection and tie-breaks.

    ``random.Random`` satisfies this protocol; tests substitute a
    deterministic implementation.
    """

    def randrange(self, stop: int, /) -> int: ...

    def choice(self, seq: Sequence[T], /) -> T: ...

    def random(self) -> float: ...
