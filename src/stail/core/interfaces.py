from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from stail.core.models import CursorRequest, PullResult, ShardPage, StreamRecord


# ---------------------------------------------------------------------------
# IStreamClient
# ---------------------------------------------------------------------------

@runtime_checkable
class IStreamClient(Protocol):
    """
    Abstract request/response client for a sharded stream.

    Domain expectations:
    - It returns domain models (ShardPage, PullResult), never raw payloads.
    - `get_records` reports the expected failure modes as PullResult variants
      instead of raising.
    - It holds no per-shard state.
    """

    async def describe_shards(
        self,
        stream: str,
        *,
        exclusive_start_shard_id: str | None = None,
    ) -> ShardPage:
        """
        Return one page of shards, starting after `exclusive_start_shard_id`.

        Raises on any transport/service error.
        """
        ...

    async def get_shard_iterator(
        self,
        stream: str,
        shard_id: str,
        request: CursorRequest,
    ) -> str:
        """
        Mint a new iterator token positioned per `request`.

        Raises on any transport/service error.
        """
        ...

    async def get_records(self, token: str, *, limit: int) -> PullResult:
        """
        Pull up to `limit` records with `token`.

        Implementations:
        - Kinesis (boto3) adapter
        - Scripted in-memory client for testing
        """
        ...

    async def aclose(self) -> None:
        """Release any underlying connections."""
        ...


# ---------------------------------------------------------------------------
# IRecordSink
# ---------------------------------------------------------------------------

@runtime_checkable
class IRecordSink(Protocol):
    """
    Consumer of delivered batches.

    Domain expectations:
    - Records of one shard arrive in service order.
    - The sink must not keep references to the records after the call.
    """

    def deliver(self, records: Sequence[StreamRecord]) -> None:
        ...


# ---------------------------------------------------------------------------
# IRateLimiter
# ---------------------------------------------------------------------------

@runtime_checkable
class IRateLimiter(Protocol):
    """
    Per-shard throughput gate.

    `acquire` may suspend the caller until the shard's long-run average is
    back under the ceiling. Buckets are independent per shard.
    """

    async def acquire(self, shard_id: str, byte_count: int) -> None:
        ...

    def forget(self, shard_id: str) -> None:
        """Drop the state kept for a shard that will not be read again."""
        ...
