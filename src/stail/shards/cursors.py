"""Cursor (shard iterator) acquisition, one helper per positioning mode.

- `newest`: right after the most recent record at call time.
- `at_timestamp`: first record at or after an absolute time.
- `at_sequence_number`: the record with a known sequence number (expiry recovery).
- `oldest`: the oldest retained record (seeding shards born from a reshard).

All helpers propagate client errors; the caller decides how to retry.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from stail.core.interfaces import IStreamClient
from stail.core.models import Cursor, CursorRequest, IteratorPosition


async def _mint(client: IStreamClient, stream: str, shard_id: str, request: CursorRequest) -> Cursor:
    token = await client.get_shard_iterator(stream, shard_id, request)
    return Cursor(shard_id=shard_id, token=token, request=request)


async def newest(client: IStreamClient, stream: str, shard_id: str) -> Cursor:
    return await _mint(client, stream, shard_id, CursorRequest.latest())


async def at_timestamp(client: IStreamClient, stream: str, shard_id: str, timestamp: datetime) -> Cursor:
    return await _mint(client, stream, shard_id, CursorRequest.at_timestamp(timestamp))


async def at_sequence_number(client: IStreamClient, stream: str, shard_id: str, sequence_number: str) -> Cursor:
    return await _mint(client, stream, shard_id, CursorRequest.at_sequence_number(sequence_number))


async def oldest(client: IStreamClient, stream: str, shard_id: str) -> Cursor:
    return await _mint(client, stream, shard_id, CursorRequest.oldest())


async def acquire_cursor(
    client: IStreamClient,
    stream: str,
    shard_id: str,
    request: CursorRequest,
) -> Cursor:
    """Mint a cursor for `shard_id` through the helper matching `request.position`."""
    match request.position:
        case IteratorPosition.LATEST:
            return await newest(client, stream, shard_id)
        case IteratorPosition.AT_TIMESTAMP:
            if request.timestamp is None:
                raise ValueError("AT_TIMESTAMP requires a timestamp")
            return await at_timestamp(client, stream, shard_id, request.timestamp)
        case IteratorPosition.AT_SEQUENCE_NUMBER:
            if not request.sequence_number:
                raise ValueError("AT_SEQUENCE_NUMBER requires a sequence number")
            return await at_sequence_number(client, stream, shard_id, request.sequence_number)
        case IteratorPosition.TRIM_HORIZON:
            return await oldest(client, stream, shard_id)
    raise ValueError(f"unsupported iterator position: {request.position!r}")


def start_request(start: timedelta | None, now: datetime) -> CursorRequest:
    """Initial positioning: `start` before `now` if given, else the newest record."""
    if start is None:
        return CursorRequest.latest()
    return CursorRequest.at_timestamp(now - start)


def recovery_request(last_sequence_number: str | None) -> CursorRequest:
    """Positioning after an expired cursor."""
    if last_sequence_number is None:
        return CursorRequest.latest()
    return CursorRequest.at_sequence_number(last_sequence_number)
