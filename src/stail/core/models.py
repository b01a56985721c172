"""Core data models for shards, cursors, records and pull outcomes.

This module defines:
- `Shard`: one partition of the stream plus its split/merge lineage.
- `CursorRequest` / `Cursor`: how a shard iterator is positioned, and the
  opaque token the service handed back for it.
- `StreamRecord`: one record pulled from a shard.
- `ShardPage`: a single page of the shard catalog.
- `PullResult`: tagged outcome of one `get_records` call
  (`Delivered | Closed | ThroughputExceeded | Expired | PullFailed`).

Design notes
------------
- Shards compare and hash by id only; lineage fields are informational.
- `IteratorPosition` values are the service's `ShardIteratorType` names so
  adapters can pass them through unchanged.
- A closed shard may still return its final records, so `Closed` carries them.
"""

from __future__ import annotations

import enum
from collections.abc import Collection
from dataclasses import dataclass, field
from datetime import datetime


# === Stream topology ===


@dataclass(slots=True, frozen=True)
class Shard:
    """A shard as reported by the catalog, minimally normalized."""

    shard_id: str
    parent_shard_id: str | None = field(default=None, compare=False)
    adjacent_parent_shard_id: str | None = field(default=None, compare=False)

    def descends_from(self, shard_ids: Collection[str]) -> bool:
        """True if this shard was split (parent) or merged (adjacent parent) from one of `shard_ids`."""
        if self.parent_shard_id and self.parent_shard_id in shard_ids:
            return True
        return bool(self.adjacent_parent_shard_id and self.adjacent_parent_shard_id in shard_ids)


@dataclass(slots=True, frozen=True)
class ShardPage:
    """One page of a paginated shard listing."""

    shards: list[Shard]
    has_more: bool


# === Cursors ===


class IteratorPosition(str, enum.Enum):
    """Where a freshly minted shard iterator points."""

    LATEST = "LATEST"
    AT_TIMESTAMP = "AT_TIMESTAMP"
    AT_SEQUENCE_NUMBER = "AT_SEQUENCE_NUMBER"
    TRIM_HORIZON = "TRIM_HORIZON"


@dataclass(slots=True, frozen=True)
class CursorRequest:
    """Positioning instructions for a new shard iterator."""

    position: IteratorPosition
    timestamp: datetime | None = None
    sequence_number: str | None = None

    @staticmethod
    def latest() -> CursorRequest:
        return CursorRequest(IteratorPosition.LATEST)

    @staticmethod
    def at_timestamp(timestamp: datetime) -> CursorRequest:
        return CursorRequest(IteratorPosition.AT_TIMESTAMP, timestamp=timestamp)

    @staticmethod
    def at_sequence_number(sequence_number: str) -> CursorRequest:
        return CursorRequest(IteratorPosition.AT_SEQUENCE_NUMBER, sequence_number=sequence_number)

    @staticmethod
    def oldest() -> CursorRequest:
        return CursorRequest(IteratorPosition.TRIM_HORIZON)


@dataclass(slots=True, frozen=True)
class Cursor:
    """Opaque, single-use position into one shard.

    `request` is the positioning the token was minted from, or None when the
    token is the continuation returned by a previous pull.
    """

    shard_id: str
    token: str
    request: CursorRequest | None = None


# === Records ===


@dataclass(slots=True, frozen=True)
class StreamRecord:
    """A record as pulled from a shard."""

    sequence_number: str
    data: bytes
    partition_key: str = ""
    arrival_timestamp: datetime | None = None

    @property
    def size(self) -> int:
        return len(self.data)


def total_bytes(records: Collection[StreamRecord]) -> int:
    """Sum of payload sizes for a batch."""
    return sum(r.size for r in records)


# === Pull outcomes ===


@dataclass(slots=True, frozen=True)
class Delivered:
    """Pull succeeded and the shard is still open."""

    records: list[StreamRecord]
    next_token: str
    millis_behind: int | None = None


@dataclass(slots=True, frozen=True)
class Closed:
    """Pull succeeded but no next token came back: the shard has closed."""

    records: list[StreamRecord] = field(default_factory=list)


@dataclass(slots=True, frozen=True)
class ThroughputExceeded:
    """The shard's read quota was exceeded; the token was not consumed."""

    message: str = ""


@dataclass(slots=True, frozen=True)
class Expired:
    """The token is too old to be used."""

    message: str = ""


@dataclass(slots=True, frozen=True)
class PullFailed:
    """Any other transport or service error."""

    error: Exception


PullResult = Delivered | Closed | ThroughputExceeded | Expired | PullFailed
