"""Shard discovery.

Functions
---------
- list_shards: page through the catalog until the service reports no more shards.
- find_successors: pick the shards born from a set of closed shards.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable

from stail.core.interfaces import IStreamClient
from stail.core.models import Shard

logger = logging.getLogger(__name__)


async def list_shards(client: IStreamClient, stream: str) -> list[Shard]:
    """Return every shard of `stream`, in service order, without duplicates.

    Each follow-up call starts after the last shard id of the previous page.
    Errors propagate; there is no partial result.
    """
    shards: list[Shard] = []
    seen: set[str] = set()
    exclusive_start: str | None = None
    pages = 0
    while True:
        page = await client.describe_shards(stream, exclusive_start_shard_id=exclusive_start)
        pages += 1
        for shard in page.shards:
            if shard.shard_id in seen:
                continue
            seen.add(shard.shard_id)
            shards.append(shard)
        if not page.has_more or not page.shards:
            break
        exclusive_start = page.shards[-1].shard_id

    logger.debug("listed %d shards of %s in %d page(s)", len(shards), stream, pages)
    return shards


def find_successors(shards: Iterable[Shard], closed_ids: Collection[str]) -> list[Shard]:
    """Shards split or merged from any of `closed_ids`."""
    if not closed_ids:
        return []
    return [s for s in shards if s.descends_from(closed_ids)]
