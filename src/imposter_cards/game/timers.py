"""Per-room countdown timers.

Each room has at most one armed countdown. A countdown is an asyncio task that
sleeps for the phase duration and then awaits the expiry callback. Arming a
room that already has a countdown cancels the previous one first, and
cancelling is always safe, even when nothing is armed.
"""

from __future__ import annotations

import asyncio
import math
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from imposter_cards.game.types import TimerType

logger = structlog.get_logger(__name__)


@dataclass(eq=False)
class ScheduledTimer:
    """A single armed countdown.

    Instances are compared by identity: a room remembers the exact timer it
    armed, and an expiry that does not match is stale.

    Attributes:
        room_code: Room the countdown belongs to.
        timer_type: Phase the countdown belongs to.
        expires_at: Absolute expiry as a POSIX timestamp in seconds.
    """

    room_code: str
    timer_type: TimerType
    expires_at: float
    task: asyncio.Task[None] | None = field(default=None, repr=False)

    @property
    def end_time_ms(self) -> int:
        """Expiry in epoch milliseconds, as clients expect it."""
        return int(self.expires_at * 1000)


class TimerScheduler:
    """Schedules one cancellable countdown per room code.

    Args:
        clock: Returns the current POSIX time in seconds. Injected in tests.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._timers: dict[str, ScheduledTimer] = {}
        self._clock = clock

    def arm(
        self,
        room_code: str,
        timer_type: TimerType,
        duration_seconds: float,
        on_expire: Callable[[ScheduledTimer], Awaitable[None]],
    ) -> ScheduledTimer:
        """Arm a countdown for a room, replacing any existing one.

        Must be called from a running event loop.

        Args:
            room_code: Room to arm.
            timer_type: Phase the countdown belongs to.
            duration_seconds: Seconds until expiry.
            on_expire: Awaited once with the timer when it fires.

        Returns:
            The armed timer.
        """
        self.cancel(room_code)

        timer = ScheduledTimer(
            room_code=room_code,
            timer_type=timer_type,
            expires_at=self._clock() + duration_seconds,
        )
        timer.task = asyncio.create_task(self._run(timer, duration_seconds, on_expire))
        self._timers[room_code] = timer

        logger.debug(
            "Timer armed",
            room_code=room_code,
            timer_type=timer_type.value,
            duration=duration_seconds,
        )
        return timer

    def cancel(self, room_code: str) -> bool:
        """Cancel the room's countdown.

        Args:
            room_code: Room to cancel.

        Returns:
            True if a countdown was armed, False otherwise.
        """
        timer = self._timers.pop(room_code, None)
        if timer is None:
            return False

        if timer.task is not None and not timer.task.done():
            timer.task.cancel()

        logger.debug("Timer cancelled", room_code=room_code, timer_type=timer.timer_type.value)
        return True

    async def cancel_all(self) -> None:
        """Cancel every armed countdown and wait for the tasks to finish (used on shutdown)."""
        tasks = [timer.task for timer in self._timers.values() if timer.task is not None]
        for room_code in list(self._timers):
            self.cancel(room_code)
        await asyncio.gather(*tasks, return_exceptions=True)

    def get(self, room_code: str) -> ScheduledTimer | None:
        """Get the room's armed countdown, if any."""
        return self._timers.get(room_code)

    def remaining_seconds(self, room_code: str) -> int | None:
        """Whole seconds until the room's countdown fires.

        Args:
            room_code: Room to query.

        Returns:
            Seconds remaining rounded up (never negative), or None if nothing is armed.
        """
        timer = self._timers.get(room_code)
        if timer is None:
            return None
        return max(0, math.ceil(timer.expires_at - self._clock()))

    @property
    def active_count(self) -> int:
        """Number of armed countdowns."""
        return len(self._timers)

    async def _run(
        self,
        timer: ScheduledTimer,
        duration_seconds: float,
        on_expire: Callable[[ScheduledTimer], Awaitable[None]],
    ) -> None:
        """Sleep until expiry, then hand the timer to the callback.

        The timer is unregistered before the callback runs, so a cancel issued
        while the callback is in flight cannot interrupt it.
        """
        try:
            await asyncio.sleep(duration_seconds)
        except asyncio.CancelledError:
            return

        if self._timers.get(timer.room_code) is not timer:
            return
        del self._timers[timer.room_code]

        logger.debug("Timer expired", room_code=timer.room_code, timer_type=timer.timer_type.value)

        try:
            await on_expire(timer)
        except Exception:
            logger.exception(
                "Timer expiry handler failed",
                room_code=timer.room_code,
                timer_type=timer.timer_type.value,
            )
