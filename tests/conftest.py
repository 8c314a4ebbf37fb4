"""Pytest configuration and fixtures for imposter-cards tests."""

from __future__ import annotations

import random
from collections.abc import Sequence
from typing import TypeVar

import pytest
from litestar import Litestar
from litestar.testing import TestClient

from imposter_cards.app import create_app
from imposter_cards.core.settings import AppSettings
from imposter_cards.game.models import Player, Room
from imposter_cards.game.prompts import PromptBank
from imposter_cards.game.timers import TimerScheduler
from imposter_cards.services.game import RoomRegistry

T = TypeVar("T")

TEST_PROMPTS = {
    "general": [("What's your favorite season?", "What's your least favorite season?")],
    "food": [
        ("What's your favorite pizza topping?", "What topping should never go on pizza?"),
        ("What would your last meal be?", "What did you eat for breakfast today?"),
    ],
    "spicy": [("What's your biggest red flag?", "What's your biggest pet peeve?")],
}


class ScriptedRandom:
    """Deterministic random source.

    ``randrange`` and ``choice`` consume queued indices and fall back to 0;
    ``random`` consumes queued floats and falls back to 0.99.
    """

    def __init__(self, indices: Sequence[int] = (), randoms: Sequence[float] = ()) -> None:
        self.indices = list(indices)
        self.randoms = list(randoms)

    def _next_index(self) -> int:
        return self.indices.pop(0) if self.indices else 0

    def randrange(self, stop: int) -> int:
        return self._next_index() % stop

    def choice(self, seq: Sequence[T]) -> T:
        return seq[self._next_index() % len(seq)]

    def random(self) -> float:
        return self.randoms.pop(0) if self.randoms else 0.99


class FakeClock:
    """Wall clock that only moves when told to."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def anyio_backend() -> str:
    """Use asyncio as the async backend."""
    return "asyncio"


# Randomness and time


@pytest.fixture
def rng() -> ScriptedRandom:
    """Random source whose picks default to index 0."""
    return ScriptedRandom()


@pytest.fixture
def make_rng() -> type[ScriptedRandom]:
    """Factory for scripted random sources: ``make_rng(indices=[...])``."""
    return ScriptedRandom


@pytest.fixture
def clock() -> FakeClock:
    """Controllable clock for countdown arithmetic."""
    return FakeClock()


# Core fixtures


@pytest.fixture
def prompt_bank() -> PromptBank:
    """Small prompt bank that never applies modifiers."""
    return PromptBank(prompts=TEST_PROMPTS, rng=random.Random(7), modifier_chance=0.0)


@pytest.fixture
def timers(clock: FakeClock) -> TimerScheduler:
    """Timer scheduler on the fake clock."""
    return TimerScheduler(clock=clock)


@pytest.fixture
def registry(prompt_bank: PromptBank, timers: TimerScheduler, rng: ScriptedRandom) -> RoomRegistry:
    """Fresh registry with deterministic picks."""
    return RoomRegistry(prompt_bank, timers=timers, rng=rng, code_rng=random.Random(42))


@pytest.fixture
def lobby(registry: RoomRegistry) -> Room:
    """Registry room with Alice (host), Bob, and Carol waiting."""
    room = registry.create_room("alice", "Alice")
    registry.join_room(room.code, "bob", "Bob")
    registry.join_room(room.code, "carol", "Carol")
    return room


@pytest.fixture
def three_player_room() -> Room:
    """Bare room (no registry) with three players."""
    room = Room(code="1234")
    for player_id, name in (("alice", "Alice"), ("bob", "Bob"), ("carol", "Carol")):
        room.add_player(Player(id=player_id, name=name))
    return room


# App and client fixtures


@pytest.fixture
def app_registry(prompt_bank: PromptBank) -> RoomRegistry:
    """Registry used by the app under test: real clock, deterministic picks."""
    return RoomRegistry(prompt_bank, rng=ScriptedRandom(), code_rng=random.Random(42))


@pytest.fixture
def app(app_registry: RoomRegistry) -> Litestar:
    """Create the application without the background sweeper."""
    return create_app(AppSettings(cleanup_interval_seconds=0), registry=app_registry)


@pytest.fixture
def client(app: Litestar) -> TestClient[Litestar]:
    """Create a test client for the app."""
    return TestClient(app=app)
