"""Tail orchestrator: discover shards → poll loop → sink.

`tail_stream(...)` is the application-layer entry point:
- Depends ONLY on interfaces (IStreamClient, IRecordSink, IRateLimiter).
- Does NOT build boto3 sessions, sinks or signal handlers.
- Does NOT manage client lifecycle (closing is the caller's job).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from stail.core.config import TailConfig
from stail.core.interfaces import IRateLimiter, IRecordSink, IStreamClient
from stail.core.use_cases.tail import PollConfig, TailService, TailStats
from stail.shards.catalog import list_shards
from stail.shards.cursors import start_request
from stail.throttling.pacer import Pacer
from stail.throttling.rate_limiter import ShardRateLimiter

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Output DTO
# ---------------------------------------------------------------------------


@dataclass(kw_only=True)
class TailOutput:
    """High-level output of a tail run."""
    stats: TailStats
    shards_discovered: int
    interrupted: bool


def poll_config_from(config: TailConfig) -> PollConfig:
    return PollConfig(
        stream=config.stream,
        batch_size=config.batch_size,
        idle_backoff_s=config.idle_backoff_s,
        throughput_cooldown_s=config.throughput_cooldown_s,
        cooldown_scope=config.cooldown_scope,
        max_consecutive_failures=config.max_consecutive_failures,
    )


async def tail_stream(
    *,
    config: TailConfig,
    client: IStreamClient,
    sink: IRecordSink,
    pacer: Pacer,
    rate_limiter: IRateLimiter | None = None,
    now: datetime | None = None,
) -> TailOutput:
    """Pure application-layer orchestrator.

    This function:
    - Resolves the initial cursor positioning from `config.start`.
    - Lists the stream's shards (errors propagate, no partial catalog).
    - Runs `TailService` until the pacer's deadline or a stop request.

    Parameters
    ----------
    pacer : Pacer
        Owns the run deadline and the stop signal.
    rate_limiter : IRateLimiter | None
        Defaults to a `ShardRateLimiter` at `config.max_shard_throughput`
        sleeping through `pacer`.
    now : datetime | None
        Wall-clock reference for `config.start`; defaults to the current UTC time.
    """
    # 1) Initial positioning, computed once for every start-up shard
    initial = start_request(config.start, now or datetime.now(timezone.utc))

    # 2) Shard catalog
    shards = await list_shards(client, config.stream)
    logger.info(
        "tailing %s: %d shard(s) from %s",
        config.stream,
        len(shards),
        initial.position.value,
    )

    # 3) Poll loop
    if rate_limiter is None:
        rate_limiter = ShardRateLimiter(config.max_shard_throughput, sleep=pacer.pause)

    service = TailService(
        client=client,
        sink=sink,
        rate_limiter=rate_limiter,
        config=poll_config_from(config),
        pacer=pacer,
    )
    stats = await service.run(shards, initial)

    return TailOutput(
        stats=stats,
        shards_discovered=len(shards),
        interrupted=pacer.stopped,
    )
