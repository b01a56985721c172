from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Literal

CooldownScope = Literal["shard", "global"]

# max number of records fetched from a shard in one request
BATCH_SIZE = 10_000
# 2MB/s/shard is the service limit, so stay well under it
MAX_SHARD_THROUGHPUT = 1024 * 1000


@dataclass(frozen=True)
class TailConfig:
    """Configuration for one tail run (CLI / API level)."""

    stream: str
    region: str = "us-west-2"
    role: str | None = None
    profile: str | None = None
    duration: timedelta | None = None  # None = tail forever
    start: timedelta | None = None  # None = begin at the newest record
    json_output: bool = False
    batch_size: int = BATCH_SIZE
    max_shard_throughput: int = MAX_SHARD_THROUGHPUT
    idle_backoff_s: float = 1.0
    throughput_cooldown_s: float = 6.0
    cooldown_scope: CooldownScope = "shard"
    max_consecutive_failures: int = 5
    timeout_s: int = 20
