from __future__ import annotations

from .core.config import TailConfig
from .core.errors import TailError
from .core.models import Cursor, CursorRequest, IteratorPosition, Shard, StreamRecord
from .core.use_cases.tail import PollConfig, TailService, TailStats
from .orchestration.orchestrator import TailOutput, tail_stream
from .sinks import JsonLinesSink, RawSink, make_sink
from .throttling import Pacer, ShardRateLimiter

__all__ = [
    "TailConfig",
    "TailError",
    "Cursor",
    "CursorRequest",
    "IteratorPosition",
    "Shard",
    "StreamRecord",
    "PollConfig",
    "TailService",
    "TailStats",
    "TailOutput",
    "tail_stream",
    "JsonLinesSink",
    "RawSink",
    "make_sink",
    "Pacer",
    "ShardRateLimiter",
]
