"""Suspension and throughput control for the poll loop.

This package provides:
- Pacer: deadline- and stop-aware pauses
- TokenBucket / ShardRateLimiter: per-shard byte-rate ceiling
"""

from stail.throttling.pacer import Pacer
from stail.throttling.rate_limiter import ShardRateLimiter, TokenBucket

__all__ = [
    "Pacer",
    "ShardRateLimiter",
    "TokenBucket",
]
