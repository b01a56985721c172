from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import boto3
import pytest
from botocore.stub import Stubber

from stail.clients.kinesis import KinesisClient, build_session, iterator_params
from stail.core.models import (
    Closed,
    CursorRequest,
    Delivered,
    Expired,
    IteratorPosition,
    PullFailed,
    Shard,
    ThroughputExceeded,
)

ARRIVAL = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def boto_client():
    return boto3.client(
        "kinesis",
        region_name="us-west-2",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


@pytest.fixture
def stubber(boto_client):
    with Stubber(boto_client) as stub:
        yield stub
        stub.assert_no_pending_responses()


@pytest.fixture
def client(boto_client, stubber) -> KinesisClient:
    return KinesisClient(boto_client)


def _api_shard(shard_id: str, **parents: str) -> dict:
    return {
        "ShardId": shard_id,
        "HashKeyRange": {"StartingHashKey": "0", "EndingHashKey": "340282366920938463463374607431768211455"},
        "SequenceNumberRange": {"StartingSequenceNumber": "49590338271490256608559692538361571095921575989136588898"},
        **parents,
    }


def _stream_description(shards: list[dict], has_more: bool) -> dict:
    return {
        "StreamDescription": {
            "StreamName": "orders",
            "StreamARN": "arn:aws:kinesis:us-west-2:123456789012:stream/orders",
            "StreamStatus": "ACTIVE",
            "Shards": shards,
            "HasMoreShards": has_more,
            "RetentionPeriodHours": 24,
            "StreamCreationTimestamp": ARRIVAL,
            "EnhancedMonitoring": [],
        }
    }


@pytest.mark.asyncio
async def test_describe_shards_maps_lineage(client: KinesisClient, stubber: Stubber) -> None:
    stubber.add_response(
        "describe_stream",
        _stream_description(
            [_api_shard("shardId-2", ParentShardId="shardId-0", AdjacentParentShardId="shardId-1")],
            has_more=True,
        ),
        {"StreamName": "orders", "ExclusiveStartShardId": "shardId-1"},
    )

    page = await client.describe_shards("orders", exclusive_start_shard_id="shardId-1")

    assert page.has_more
    assert page.shards == [Shard("shardId-2")]
    assert page.shards[0].parent_shard_id == "shardId-0"
    assert page.shards[0].adjacent_parent_shard_id == "shardId-1"


@pytest.mark.asyncio
async def test_get_shard_iterator_at_sequence_number(client: KinesisClient, stubber: Stubber) -> None:
    stubber.add_response(
        "get_shard_iterator",
        {"ShardIterator": "AAAA"},
        {
            "StreamName": "orders",
            "ShardId": "shardId-0",
            "ShardIteratorType": "AT_SEQUENCE_NUMBER",
            "StartingSequenceNumber": "4960",
        },
    )

    token = await client.get_shard_iterator("orders", "shardId-0", CursorRequest.at_sequence_number("4960"))

    assert token == "AAAA"


@pytest.mark.asyncio
async def test_get_shard_iterator_at_timestamp(client: KinesisClient, stubber: Stubber) -> None:
    stubber.add_response(
        "get_shard_iterator",
        {"ShardIterator": "BBBB"},
        {
            "StreamName": "orders",
            "ShardId": "shardId-0",
            "ShardIteratorType": "AT_TIMESTAMP",
            "Timestamp": ARRIVAL,
        },
    )

    assert await client.get_shard_iterator("orders", "shardId-0", CursorRequest.at_timestamp(ARRIVAL)) == "BBBB"


def test_iterator_params_require_their_argument() -> None:
    with pytest.raises(ValueError):
        iterator_params("orders", "shardId-0", CursorRequest(position=IteratorPosition.AT_TIMESTAMP))
    with pytest.raises(ValueError):
        iterator_params(
            "orders",
            "shardId-0",
            CursorRequest(position=IteratorPosition.AT_SEQUENCE_NUMBER),
        )
    assert iterator_params("orders", "shardId-0", CursorRequest.oldest()) == {
        "StreamName": "orders",
        "ShardId": "shardId-0",
        "ShardIteratorType": "TRIM_HORIZON",
    }


@pytest.mark.asyncio
async def test_get_records_delivered(client: KinesisClient, stubber: Stubber) -> None:
    stubber.add_response(
        "get_records",
        {
            "Records": [
                {
                    "SequenceNumber": "1",
                    "Data": b'{"a":1}',
                    "PartitionKey": "pk",
                    "ApproximateArrivalTimestamp": ARRIVAL,
                }
            ],
            "NextShardIterator": "next",
            "MillisBehindLatest": 0,
        },
        {"ShardIterator": "tok", "Limit": 10},
    )

    result = await client.get_records("tok", limit=10)

    assert isinstance(result, Delivered)
    assert result.next_token == "next"
    assert result.millis_behind == 0
    assert result.records[0].data == b'{"a":1}'
    assert result.records[0].arrival_timestamp == ARRIVAL


@pytest.mark.asyncio
async def test_get_records_without_next_iterator_is_closed(client: KinesisClient, stubber: Stubber) -> None:
    stubber.add_response(
        "get_records",
        {"Records": [{"SequenceNumber": "9", "Data": b"x", "PartitionKey": "pk"}]},
        {"ShardIterator": "tok", "Limit": 10},
    )

    result = await client.get_records("tok", limit=10)

    assert isinstance(result, Closed)
    assert [r.sequence_number for r in result.records] == ["9"]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("code", "expected"),
    [
        ("ProvisionedThroughputExceededException", ThroughputExceeded),
        ("ExpiredIteratorException", Expired),
        ("AccessDeniedException", PullFailed),
    ],
)
async def test_get_records_classifies_service_errors(
    client: KinesisClient, stubber: Stubber, code: str, expected: type
) -> None:
    stubber.add_client_error("get_records", service_error_code=code, service_message="nope", http_status_code=400)

    result = await client.get_records("tok", limit=10)

    assert isinstance(result, expected)


@pytest.mark.asyncio
async def test_aclose_closes_the_boto_client() -> None:
    boto = MagicMock()

    await KinesisClient(boto).aclose()

    boto.close.assert_called_once_with()


def test_build_session_assumes_role() -> None:
    with patch("stail.clients.kinesis.boto3.Session") as session_cls:
        base = session_cls.return_value
        base.client.return_value.assume_role.return_value = {
            "Credentials": {"AccessKeyId": "AK", "SecretAccessKey": "SK", "SessionToken": "ST"}
        }

        build_session("eu-west-1", profile="dev", role="arn:aws:iam::123456789012:role/reader")

    base.client.assert_called_once_with("sts")
    base.client.return_value.assume_role.assert_called_once_with(
        RoleArn="arn:aws:iam::123456789012:role/reader", RoleSessionName="stail"
    )
    assert session_cls.call_args_list[0].kwargs == {"profile_name": "dev", "region_name": "eu-west-1"}
    assert session_cls.call_args_list[1].kwargs == {
        "aws_access_key_id": "AK",
        "aws_secret_access_key": "SK",
        "aws_session_token": "ST",
        "region_name": "eu-west-1",
    }


def test_build_session_without_role_uses_profile() -> None:
    with patch("stail.clients.kinesis.boto3.Session") as session_cls:
        session = build_session("us-west-2", profile="dev")

    assert session is session_cls.return_value
    session_cls.assert_called_once_with(profile_name="dev", region_name="us-west-2")
