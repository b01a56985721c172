"""Per-shard byte-rate limiting.

`TokenBucket` refills at a fixed rate up to one second of burst. An
acquisition is always granted but may leave the bucket in debt; the caller
then waits until the debt is repaid, which keeps the long-run average at or
under the rate even for batches larger than the bucket.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class TokenBucket:
    """Byte token bucket with debt.

    Parameters
    ----------
    rate : float
        Refill rate in bytes per second.
    capacity : float | None
        Maximum stored tokens; defaults to one second of refill.
    clock : Callable[[], float]
        Monotonic time source.
    """

    def __init__(
        self,
        rate: float,
        *,
        capacity: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if rate <= 0:
            raise ValueError("rate must be > 0")
        self.rate = float(rate)
        self.capacity = float(capacity if capacity is not None else rate)
        self._clock = clock
        self._tokens = self.capacity
        self._updated = clock()

    @property
    def tokens(self) -> float:
        return self._tokens

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._updated)
        self._tokens = min(self.capacity, self._tokens + elapsed * self.rate)
        self._updated = now

    def reserve(self, amount: int) -> float:
        """Take `amount` tokens; return the seconds to wait before the next pull."""
        self._refill()
        self._tokens -= amount
        if self._tokens >= 0:
            return 0.0
        return -self._tokens / self.rate


class ShardRateLimiter:
    """One independent `TokenBucket` per shard, created on first use.

    `sleep` is the suspension used when a bucket is in debt (usually
    `Pacer.pause`, so the wait honours the deadline and stop requests).
    """

    def __init__(
        self,
        bytes_per_second: float,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.bytes_per_second = bytes_per_second
        self._sleep = sleep
        self._clock = clock
        self._buckets: dict[str, TokenBucket] = {}

    def bucket(self, shard_id: str) -> TokenBucket:
        b = self._buckets.get(shard_id)
        if b is None:
            b = TokenBucket(self.bytes_per_second, clock=self._clock)
            self._buckets[shard_id] = b
        return b

    def forget(self, shard_id: str) -> None:
        """Drop the bucket of a shard that will not be read again."""
        self._buckets.pop(shard_id, None)

    async def acquire(self, shard_id: str, byte_count: int) -> None:
        wait = self.bucket(shard_id).reserve(byte_count)
        if wait > 0:
            logger.debug("throttling %s for %.2fs (%d bytes)", shard_id, wait, byte_count)
            await self._sleep(wait)
