"""Output sinks for delivered batches.

This package provides:
- RawSink: payload bytes passed through unmodified
- JsonLinesSink: compact JSON, one record per line
- make_sink: start-up selection between the two
"""

from stail.core.interfaces import IRecordSink
from stail.sinks.json_lines import JsonLinesSink, compact_json
from stail.sinks.raw import RawSink


def make_sink(json_output: bool) -> IRecordSink:
    """Factory for the output sink."""
    if json_output:
        return JsonLinesSink()
    return RawSink()


__all__ = [
    "JsonLinesSink",
    "RawSink",
    "compact_json",
    "make_sink",
]
