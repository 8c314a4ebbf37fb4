"""Game rules for imposter rounds.

This package contains the room state machine, prompt pairs, countdown timers,
and the sanitized views sent to clients.
"""

from __future__ import annotations

__all__ = [
    "Phase",
    "Player",
    "PromptBank",
    "PromptCategory",
    "PromptPair",
    "PromptSource",
    "RandomSource",
    "Room",
    "RoomSettings",
    "ScheduledTimer",
    "TimerScheduler",
    "TimerType",
    "serialize_room",
]

from imposter_cards.game.models import Player, PromptPair, Room, RoomSettings
from imposter_cards.game.prompts import PromptBank, PromptSource
from imposter_cards.game.timers import ScheduledTimer, TimerScheduler
from imposter_cards.game.types import Phase, PromptCategory, RandomSource, TimerType
from imposter_cards.game.views import serialize_room
