"""Orchestration for tailing a stream end to end.

This package provides:
- Main orchestrator (tail_stream) wiring catalog, poll loop and sink
- Duration utilities (ISO-8601 parsing, run deadline)
"""

from stail.orchestration.orchestrator import TailOutput, tail_stream
from stail.orchestration.utils import deadline_after, parse_iso_duration

__all__ = [
    "TailOutput",
    "tail_stream",
    "deadline_after",
    "parse_iso_duration",
]
