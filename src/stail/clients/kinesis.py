"""Kinesis Data Streams client built on boto3.

This module provides:
- `build_session`: boto3 session from a named profile and/or an assumed role
- `KinesisClient`: async adapter implementing `IStreamClient`

Blocking boto3 calls run in worker threads. `get_records` maps the two
expected service errors onto `ThroughputExceeded` / `Expired` and a missing
next iterator onto `Closed`; every other failure becomes `PullFailed`.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from stail.core.config import TailConfig
from stail.core.models import (
    Closed,
    CursorRequest,
    Delivered,
    Expired,
    IteratorPosition,
    PullFailed,
    PullResult,
    Shard,
    ShardPage,
    StreamRecord,
    ThroughputExceeded,
)

logger = logging.getLogger(__name__)

THROUGHPUT_EXCEEDED = "ProvisionedThroughputExceededException"
EXPIRED_ITERATOR = "ExpiredIteratorException"
ROLE_SESSION_NAME = "stail"


def build_session(region: str, *, profile: str | None = None, role: str | None = None) -> boto3.Session:
    """Return a boto3 session for `region`, optionally assuming `role`."""
    session = boto3.Session(profile_name=profile, region_name=region)
    if not role:
        return session

    # TODO: refresh the assumed-role credentials for tails that outlive the STS session duration
    sts = session.client("sts")
    creds = sts.assume_role(RoleArn=role, RoleSessionName=ROLE_SESSION_NAME)["Credentials"]
    logger.info("assumed role %s", role)
    return boto3.Session(
        aws_access_key_id=creds["AccessKeyId"],
        aws_secret_access_key=creds["SecretAccessKey"],
        aws_session_token=creds["SessionToken"],
        region_name=region,
    )


def shard_from_api(raw: dict[str, Any]) -> Shard:
    return Shard(
        shard_id=raw["ShardId"],
        parent_shard_id=raw.get("ParentShardId"),
        adjacent_parent_shard_id=raw.get("AdjacentParentShardId"),
    )


def record_from_api(raw: dict[str, Any]) -> StreamRecord:
    return StreamRecord(
        sequence_number=raw["SequenceNumber"],
        data=bytes(raw["Data"]),
        partition_key=raw.get("PartitionKey", ""),
        arrival_timestamp=raw.get("ApproximateArrivalTimestamp"),
    )


def iterator_params(stream: str, shard_id: str, request: CursorRequest) -> dict[str, Any]:
    """Keyword arguments for `get_shard_iterator`."""
    params: dict[str, Any] = {
        "StreamName": stream,
        "ShardId": shard_id,
        "ShardIteratorType": request.position.value,
    }
    if request.position is IteratorPosition.AT_TIMESTAMP:
        if request.timestamp is None:
            raise ValueError("AT_TIMESTAMP requires a timestamp")
        params["Timestamp"] = request.timestamp
    elif request.position is IteratorPosition.AT_SEQUENCE_NUMBER:
        if not request.sequence_number:
            raise ValueError("AT_SEQUENCE_NUMBER requires a sequence number")
        params["StartingSequenceNumber"] = request.sequence_number
    return params


class KinesisClient:
    """Minimal async Kinesis client.

    Parameters
    ----------
    client : Any
        A boto3 `kinesis` client.
    """

    def __init__(self, client: Any) -> None:
        self.client = client

    @classmethod
    def from_config(cls, config: TailConfig) -> KinesisClient:
        session = build_session(config.region, profile=config.profile, role=config.role)
        client = session.client(
            "kinesis",
            config=Config(
                connect_timeout=config.timeout_s,
                read_timeout=config.timeout_s,
                retries={"max_attempts": 3, "mode": "standard"},
            ),
        )
        return cls(client)

    async def describe_shards(
        self,
        stream: str,
        *,
        exclusive_start_shard_id: str | None = None,
    ) -> ShardPage:
        """Return one page of the stream's shards."""
        params: dict[str, Any] = {"StreamName": stream}
        if exclusive_start_shard_id:
            params["ExclusiveStartShardId"] = exclusive_start_shard_id
        resp = await asyncio.to_thread(self.client.describe_stream, **params)
        desc = resp["StreamDescription"]
        return ShardPage(
            shards=[shard_from_api(s) for s in desc.get("Shards", [])],
            has_more=bool(desc.get("HasMoreShards")),
        )

    async def get_shard_iterator(self, stream: str, shard_id: str, request: CursorRequest) -> str:
        """Mint an iterator token for one shard."""
        params = iterator_params(stream, shard_id, request)
        resp = await asyncio.to_thread(self.client.get_shard_iterator, **params)
        return resp["ShardIterator"]

    async def get_records(self, token: str, *, limit: int) -> PullResult:
        """Pull up to `limit` records and classify the outcome."""
        try:
            resp = await asyncio.to_thread(self.client.get_records, ShardIterator=token, Limit=limit)
        except ClientError as e:
            err = e.response.get("Error", {})
            code = err.get("Code")
            if code == THROUGHPUT_EXCEEDED:
                return ThroughputExceeded(message=err.get("Message", ""))
            if code == EXPIRED_ITERATOR:
                return Expired(message=err.get("Message", ""))
            return PullFailed(error=e)
        except BotoCoreError as e:
            return PullFailed(error=e)

        records = [record_from_api(r) for r in resp.get("Records", [])]
        next_token = resp.get("NextShardIterator")
        if not next_token:
            return Closed(records=records)
        return Delivered(
            records=records,
            next_token=next_token,
            millis_behind=resp.get("MillisBehindLatest"),
        )

    async def aclose(self) -> None:
        """Close the underlying boto3 client."""
        await asyncio.to_thread(self.client.close)
