"""Core data models, configuration, and collaborator interfaces.

This package provides:
- Data models (Shard, Cursor, CursorRequest, StreamRecord, PullResult variants)
- Configuration (TailConfig)
- Collaborator protocols (IStreamClient, IRecordSink, IRateLimiter)
"""

from stail.core.config import TailConfig
from stail.core.interfaces import IRateLimiter, IRecordSink, IStreamClient
from stail.core.models import (
    Closed,
    Cursor,
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

__all__ = [
    "TailConfig",
    "IRateLimiter",
    "IRecordSink",
    "IStreamClient",
    "Closed",
    "Cursor",
    "CursorRequest",
    "Delivered",
    "Expired",
    "IteratorPosition",
    "PullFailed",
    "PullResult",
    "Shard",
    "ShardPage",
    "StreamRecord",
    "ThroughputExceeded",
]
