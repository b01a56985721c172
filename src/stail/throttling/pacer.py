from __future__ import annotations

import asyncio
import time
from collections.abc import Callable


class Pacer:
    """Deadline- and stop-aware sleeping.

    Every suspension of the poll loop (idle backoff, throughput cooldown,
    rate limiting) goes through `pause`, so a stop request or the run deadline
    ends it early.

    Parameters
    ----------
    deadline : float | None
        Absolute time on `clock` after which the run is over; None = never.
    clock : Callable[[], float]
        Monotonic time source.
    """

    def __init__(
        self,
        *,
        deadline: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.deadline = deadline
        self.clock = clock
        self._stop = asyncio.Event()

    def stop(self) -> None:
        """Request a cooperative stop; pending and future pauses return at once."""
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def remaining(self) -> float | None:
        """Seconds left before the deadline (never negative), or None without one."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - self.clock())

    def expired(self) -> bool:
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def should_exit(self) -> bool:
        return self.stopped or self.expired()

    async def pause(self, seconds: float) -> None:
        """Sleep up to `seconds`, bounded by the deadline and a stop request."""
        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        if seconds <= 0 or self.stopped:
            return
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
