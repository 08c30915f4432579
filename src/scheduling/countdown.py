"""Hub slot countdown: time left on a held capacity slot.

Remaining minutes are always recomputed from the wall clock against the
stored absolute expiry instant, never accumulated from tick deltas, so a
paused or delayed ticker cannot drift.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import math
from collections.abc import Awaitable, Callable
from datetime import datetime

from src.models.common import utc_now

logger = logging.getLogger(__name__)

# Slowest allowed tick: the countdown resolves to at least once a minute.
MAX_TICK_SECONDS = 60.0


def minutes_remaining(expires_at: datetime, now: datetime) -> int:
    """Whole minutes until ``expires_at``, rounded down and floored at 0."""
    return max(0, math.floor((expires_at - now).total_seconds() / 60))


class SlotCountdown:
    """Countdown against one absolute expiry instant."""

    def __init__(
        self,
        expires_at: datetime,
        *,
        clock: Callable[[], datetime] = utc_now,
        tick_seconds: float = MAX_TICK_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if expires_at.tzinfo is None:
            msg = "Slot expiry must be timezone-aware."
            raise ValueError(msg)
        if not 0 < tick_seconds <= MAX_TICK_SECONDS:
            msg = f"tick_seconds must be in (0, {MAX_TICK_SECONDS}]."
            raise ValueError(msg)
        self.expires_at = expires_at
        self._clock = clock
        self._tick_seconds = tick_seconds
        self._sleep = sleep

    def remaining(self, now: datetime | None = None) -> int:
        return minutes_remaining(self.expires_at, now or self._clock())

    def is_expired(self, now: datetime | None = None) -> bool:
        return self.remaining(now) == 0

    def is_expiring(self, threshold_minutes: int, now: datetime | None = None) -> bool:
        """True while the hold is still live but within the warning threshold."""
        left = self.remaining(now)
        return 0 < left <= threshold_minutes

    async def run(
        self, on_tick: Callable[[int], Awaitable[None] | None]
    ) -> int:
        """Emit remaining minutes every tick until the slot expires.

        Emitted values never increase, even if the wall clock steps back.
        Returns 0 once the expiry has been emitted. Cancel the task to stop
        early.
        """
        last: int | None = None
        while True:
            left = self.remaining()
            if last is not None:
                left = min(left, last)
            last = left

            result = on_tick(left)
            if inspect.isawaitable(result):
                await result

            if left == 0:
                logger.info("Hub slot hold expired at %s", self.expires_at.isoformat())
                return 0
            await self._sleep(self._tick_seconds)
