from __future__ import annotations

import json
import logging
import sys
from collections.abc import Sequence
from typing import Any, TextIO

from stail.core.models import StreamRecord

logger = logging.getLogger(__name__)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name}")


def compact_json(value: Any) -> str:
    """Serialize as a compact single-line JSON document."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False, allow_nan=False)


class JsonLinesSink:
    """Re-serialize each JSON payload compactly, one record per line.

    Records that are not valid JSON (or not decodable text, or that use the
    non-standard `NaN` / `Infinity` constants) are logged and skipped; they
    never abort the batch.
    """

    def __init__(self, out: TextIO | None = None) -> None:
        self.out = out if out is not None else sys.stdout
        self.skipped = 0

    def deliver(self, records: Sequence[StreamRecord]) -> None:
        for record in records:
            try:
                line = compact_json(json.loads(record.data, parse_constant=_reject_constant))
            except ValueError as e:
                # JSONDecodeError and UnicodeDecodeError both land here
                self.skipped += 1
                logger.warning("skipping record %s: not valid JSON (%s)", record.sequence_number, e)
                continue
            self.out.write(line + "\n")
        self.out.flush()
