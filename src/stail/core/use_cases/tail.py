from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from stail.core.config import CooldownScope
from stail.core.errors import TailError
from stail.core.interfaces import IRateLimiter, IRecordSink, IStreamClient
from stail.core.models import (
    Closed,
    Cursor,
    CursorRequest,
    Delivered,
    Expired,
    PullFailed,
    Shard,
    StreamRecord,
    ThroughputExceeded,
    total_bytes,
)
from stail.shards.catalog import find_successors, list_shards
from stail.shards.cursors import acquire_cursor, recovery_request
from stail.throttling.pacer import Pacer

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Domain configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PollConfig:
    """
    Domain-level configuration for the poll loop.

    Free of infrastructure concerns (no region, credentials or output streams).
    """

    stream: str
    batch_size: int
    idle_backoff_s: float
    throughput_cooldown_s: float
    cooldown_scope: CooldownScope = "shard"
    max_consecutive_failures: int = 5


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------


@dataclass(kw_only=True)
class TailStats:
    """
    Aggregated counters for one tail run.

    Mutated by the shard workers as they pull, deliver and recover.
    """

    cycles: int = 0
    pulls: int = 0
    records: int = 0
    bytes: int = 0
    empty_pulls: int = 0
    throttled: int = 0
    expired: int = 0
    shards_closed: int = 0
    shards_adopted: int = 0
    cursor_failures: int = 0
    pull_failures: int = 0


# ---------------------------------------------------------------------------
# Per-shard state
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class ShardWorker:
    """
    Everything the loop knows about one shard.

    `cursor` is None while the shard waits for an iterator; `seed` is the
    positioning used to mint the next one.
    """

    shard: Shard
    seed: CursorRequest
    cursor: Cursor | None = None
    last_sequence_number: str | None = None
    consecutive_failures: int = 0

    @property
    def shard_id(self) -> str:
        return self.shard.shard_id


# ---------------------------------------------------------------------------
# Domain service – TailService
# ---------------------------------------------------------------------------


class TailService:
    """
    Poll loop over every open shard of a stream.

    Each cycle first adopts the successors of shards that closed during the
    previous cycle, then pulls one batch from every active shard
    concurrently. The service depends only on the collaborator interfaces.
    """

    def __init__(
        self,
        *,
        client: IStreamClient,
        sink: IRecordSink,
        rate_limiter: IRateLimiter,
        config: PollConfig,
        pacer: Pacer | None = None,
    ) -> None:
        self._client = client
        self._sink = sink
        self._rate_limiter = rate_limiter
        self._config = config
        self.pacer = pacer or Pacer()
        self.stats = TailStats()

        # topology state shared by all shard paths; guarded by _topology_lock
        self._active: dict[str, ShardWorker] = {}
        self._resharded: set[str] = set()
        self._retired: set[str] = set()
        self._topology_lock = asyncio.Lock()

        self._cooldown_until = 0.0

    @property
    def active_shard_ids(self) -> list[str]:
        return list(self._active)

    def worker(self, shard_id: str) -> ShardWorker | None:
        return self._active.get(shard_id)

    def stop(self) -> None:
        self.pacer.stop()

    async def run(self, shards: Sequence[Shard], initial: CursorRequest) -> TailStats:
        """
        Tail `shards` until the pacer's deadline passes, a stop is requested,
        or no open shard remains.

        Parameters
        ----------
        shards : Sequence[Shard]
            Shards discovered at start-up.
        initial : CursorRequest
            Positioning for the start-up shards (LATEST or AT_TIMESTAMP).
        """
        async with self._topology_lock:
            for shard in shards:
                self._active.setdefault(shard.shard_id, ShardWorker(shard=shard, seed=initial))
            workers = list(self._active.values())

        if not self.pacer.should_exit():
            await asyncio.gather(*(self._seed_cursor(w) for w in workers))

        while not self.pacer.should_exit():
            await self._adopt_successors()

            workers = list(self._active.values())
            if not workers:
                logger.warning("no open shards left on %s", self._config.stream)
                break

            await asyncio.gather(*(self._poll_shard(w) for w in workers))
            self.stats.cycles += 1

        return self.stats

    # -- cycle steps --------------------------------------------------------

    async def _adopt_successors(self) -> None:
        """Seed shards born from the shards that closed since the last cycle."""
        async with self._topology_lock:
            if not self._resharded:
                return
            closed = set(self._resharded)
            shards = await list_shards(self._client, self._config.stream)

            adopted: list[ShardWorker] = []
            for shard in find_successors(shards, closed):
                if shard.shard_id in self._active or shard.shard_id in self._retired:
                    continue
                # no pull history yet, so read the new shard from the beginning
                worker = ShardWorker(shard=shard, seed=CursorRequest.oldest())
                self._active[shard.shard_id] = worker
                adopted.append(worker)
            self._resharded.clear()

        for worker in adopted:
            logger.info(
                "adopting shard %s (parent=%s, adjacent parent=%s)",
                worker.shard_id,
                worker.shard.parent_shard_id,
                worker.shard.adjacent_parent_shard_id,
            )
        orphaned = closed - {
            parent
            for w in adopted
            for parent in (w.shard.parent_shard_id, w.shard.adjacent_parent_shard_id)
            if parent
        }
        for shard_id in sorted(orphaned):
            logger.info("shard %s closed without a new successor; dropping it", shard_id)

        self.stats.shards_adopted += len(adopted)
        await asyncio.gather(*(self._seed_cursor(w) for w in adopted))

    async def _poll_shard(self, worker: ShardWorker) -> None:
        """Visit one shard: mint a cursor if needed, pull one batch, react."""
        await self._wait_for_cooldown()

        cursor = worker.cursor or await self._seed_cursor(worker)
        if cursor is None:
            # no iterator this cycle; the same request is retried on the next visit
            await self.pacer.pause(self._config.idle_backoff_s)
            return

        result = await self._client.get_records(cursor.token, limit=self._config.batch_size)
        self.stats.pulls += 1

        match result:
            case Delivered(records=records, next_token=next_token, millis_behind=millis_behind):
                worker.consecutive_failures = 0
                if millis_behind:
                    logger.debug("%s is %d ms behind the tip", worker.shard_id, millis_behind)
                await self._deliver(worker, records)
                worker.cursor = Cursor(shard_id=worker.shard_id, token=next_token)
                if not records:
                    # nothing on the shard yet, wait a bit for something to appear
                    self.stats.empty_pulls += 1
                    await self.pacer.pause(self._config.idle_backoff_s)

            case Closed(records=records):
                worker.consecutive_failures = 0
                await self._deliver(worker, records)
                await self._retire(worker)

            case ThroughputExceeded(message=message):
                self.stats.throttled += 1
                logger.warning("tripped the max throughput on %s. Backing off: %s", worker.shard_id, message)
                # worker.cursor stays as is: the token was not consumed
                await self._cool_down()

            case Expired(message=message):
                self.stats.expired += 1
                logger.debug("iterator expired on %s: %s", worker.shard_id, message)
                if worker.last_sequence_number is None:
                    logger.warning(
                        "no previously known sequence number for %s. Moving to LATEST",
                        worker.shard_id,
                    )
                worker.cursor = None
                worker.seed = recovery_request(worker.last_sequence_number)
                await self._seed_cursor(worker)

            case PullFailed(error=error):
                self.stats.pull_failures += 1
                self._record_failure(worker, "get_records", error)
                await self.pacer.pause(self._config.idle_backoff_s)

    # -- helpers ------------------------------------------------------------

    async def _seed_cursor(self, worker: ShardWorker) -> Cursor | None:
        """Mint a cursor from the worker's seed.

        A failure is logged and counted, never raised: the worker keeps its
        seed and the next visit retries it with the same arguments.
        """
        try:
            cursor = await acquire_cursor(
                self._client,
                self._config.stream,
                worker.shard_id,
                worker.seed,
            )
        except Exception as e:
            self.stats.cursor_failures += 1
            logger.error(
                "get_shard_iterator(%s) failed on %s, retrying next cycle: %s",
                worker.seed.position.value,
                worker.shard_id,
                e,
            )
            return None
        if cursor.request is not None:
            logger.debug("positioned %s at %s", worker.shard_id, cursor.request.position.value)
        worker.cursor = cursor
        return cursor

    async def _deliver(self, worker: ShardWorker, records: list[StreamRecord]) -> None:
        if not records:
            return
        self._sink.deliver(records)
        worker.last_sequence_number = records[-1].sequence_number

        n_bytes = total_bytes(records)
        self.stats.records += len(records)
        self.stats.bytes += n_bytes
        # optionally wait if we have hit the limit for this shard
        await self._rate_limiter.acquire(worker.shard_id, n_bytes)

    async def _retire(self, worker: ShardWorker) -> None:
        async with self._topology_lock:
            self._active.pop(worker.shard_id, None)
            self._resharded.add(worker.shard_id)
            self._retired.add(worker.shard_id)
        worker.cursor = None
        self._rate_limiter.forget(worker.shard_id)
        self.stats.shards_closed += 1
        logger.info("shard %s has closed", worker.shard_id)

    async def _cool_down(self) -> None:
        seconds = self._config.throughput_cooldown_s
        if self._config.cooldown_scope == "global":
            self._cooldown_until = max(self._cooldown_until, self.pacer.clock() + seconds)
        await self.pacer.pause(seconds)

    async def _wait_for_cooldown(self) -> None:
        if self._config.cooldown_scope != "global":
            return
        wait = self._cooldown_until - self.pacer.clock()
        if wait > 0:
            await self.pacer.pause(wait)

    def _record_failure(self, worker: ShardWorker, action: str, error: Exception) -> None:
        worker.consecutive_failures += 1
        logger.error(
            "%s failed on %s (%d/%d): %s",
            action,
            worker.shard_id,
            worker.consecutive_failures,
            self._config.max_consecutive_failures,
            error,
        )
        if worker.consecutive_failures >= self._config.max_consecutive_failures:
            raise TailError(
                f"giving up on shard {worker.shard_id} after "
                f"{worker.consecutive_failures} consecutive failures"
            ) from error
