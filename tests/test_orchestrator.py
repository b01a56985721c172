from datetime import datetime, timedelta, timezone

import pytest

from fakes import InstantPacer, RecordingLimiter, RecordingSink, ScriptedStreamClient, rec
from stail.core.config import TailConfig
from stail.core.interfaces import IRateLimiter
from stail.core.models import CursorRequest, Delivered, Shard
from stail.orchestration.orchestrator import poll_config_from, tail_stream
from stail.throttling.rate_limiter import ShardRateLimiter

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_expired_deadline_lists_shards_but_never_pulls() -> None:
    client = ScriptedStreamClient([Shard("s1"), Shard("s2")])
    pacer = InstantPacer(deadline=0.0)

    output = await tail_stream(
        config=TailConfig(stream="orders", duration=timedelta(0)),
        client=client,
        sink=RecordingSink(),
        pacer=pacer,
        rate_limiter=RecordingLimiter(),
        now=NOW,
    )

    assert output.shards_discovered == 2
    assert output.stats.cycles == 0
    assert output.interrupted is False
    assert client.iterator_calls == []
    assert client.pulls == []


@pytest.mark.asyncio
async def test_start_offset_positions_every_shard_at_timestamp() -> None:
    client = ScriptedStreamClient(
        [Shard("s1"), Shard("s2")],
        {"s1": [Delivered(records=[rec("1", b"a")], next_token="s1-next")]},
    )
    pacer = InstantPacer()
    client.on_exhausted = pacer.stop
    sink = RecordingSink()

    output = await tail_stream(
        config=TailConfig(stream="orders", start=timedelta(minutes=15)),
        client=client,
        sink=sink,
        pacer=pacer,
        rate_limiter=RecordingLimiter(),
        now=NOW,
    )

    expected = CursorRequest.at_timestamp(NOW - timedelta(minutes=15))
    assert [req for _, req in client.iterator_calls] == [expected, expected]
    assert sink.data == b"a"
    assert output.interrupted is True
    assert output.stats.cycles == 1


@pytest.mark.asyncio
async def test_default_limiter_sleeps_through_the_pacer() -> None:
    big = b"x" * 150
    client = ScriptedStreamClient(
        [Shard("s1")],
        {"s1": [Delivered(records=[rec("1", big)], next_token="n1")]},
    )
    pacer = InstantPacer()
    client.on_exhausted = pacer.stop

    await tail_stream(
        config=TailConfig(stream="orders", max_shard_throughput=100),
        client=client,
        sink=RecordingSink(),
        pacer=pacer,
        now=NOW,
    )

    assert pacer.pauses == [pytest.approx(0.5, abs=0.05)]


def test_poll_config_carries_loop_settings() -> None:
    config = TailConfig(stream="orders", batch_size=50, cooldown_scope="global", max_consecutive_failures=2)

    poll = poll_config_from(config)

    assert poll.stream == "orders"
    assert poll.batch_size == 50
    assert poll.cooldown_scope == "global"
    assert poll.max_consecutive_failures == 2
    assert poll.throughput_cooldown_s == config.throughput_cooldown_s


def test_rate_limiter_is_an_interface_implementation() -> None:
    assert isinstance(ShardRateLimiter(100), IRateLimiter)
