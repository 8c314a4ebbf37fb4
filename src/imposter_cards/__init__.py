"""Imposter Cards: a realtime party-game server built on Litestar.

Players join a room with a 4-digit code. Each round every player receives a
prompt card; exactly one player, the imposter, gets a subtly different prompt.
Players answer, discuss, and vote on who they think the imposter is.

Key Components:
    - Game: Room state machine, PromptBank, TimerScheduler, sanitized views
    - Services: RoomRegistry (room map, operations, countdown wiring, TTL sweep)
    - Realtime: RoomWebSocketHandler, ConnectionManager, wire messages
    - Web: lobby REST routes and health probes
    - Plugin: ImposterPlugin for Litestar integration

Quick Start:
    >>> from litestar import Litestar
    >>> from imposter_cards import ImposterPlugin, ImposterConfig
    >>>
    >>> app = Litestar(plugins=[ImposterPlugin(ImposterConfig())])
"""

from __future__ import annotations

__version__ = "0.1.0"

from imposter_cards.exceptions import ImposterError, RoomNotFoundError
from imposter_cards.game import Phase, PromptBank, PromptPair, Room, RoomSettings, TimerScheduler
from imposter_cards.plugin import ImposterConfig, ImposterPlugin
from imposter_cards.realtime import ConnectionManager, MessageType, RoomWebSocketHandler
from imposter_cards.services import RoomRegistry

__all__ = [
    "ConnectionManager",
    "ImposterConfig",
    "ImposterError",
    "ImposterPlugin",
    "MessageType",
    "Phase",
    "PromptBank",
    "PromptPair",
    "Room",
    "RoomNotFoundError",
    "RoomRegistry",
    "RoomSettings",
    "RoomWebSocketHandler",
    "TimerScheduler",
    "__version__",
]
