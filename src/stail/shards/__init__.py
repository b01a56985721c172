"""Shard discovery and cursor acquisition.

This package provides:
- list_shards / find_successors: paginated catalog and reshard lineage
- acquire_cursor and one helper per iterator position
"""

from stail.shards.catalog import find_successors, list_shards
from stail.shards.cursors import (
    acquire_cursor,
    at_sequence_number,
    at_timestamp,
    newest,
    oldest,
    recovery_request,
    start_request,
)

__all__ = [
    "find_successors",
    "list_shards",
    "acquire_cursor",
    "at_sequence_number",
    "at_timestamp",
    "newest",
    "oldest",
    "recovery_request",
    "start_request",
]
