import pytest

from fakes import InstantPacer, RecordingLimiter, RecordingSink, ScriptedStreamClient
from stail.core.models import Shard


@pytest.fixture
def pacer():
    return InstantPacer()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def limiter():
    return RecordingLimiter()


@pytest.fixture
def one_shard_client(pacer):
    client = ScriptedStreamClient([Shard("shard-0")])
    client.on_exhausted = pacer.stop
    return client
