from __future__ import annotations

import sys
from collections.abc import Sequence
from typing import BinaryIO

from stail.core.models import StreamRecord


class RawSink:
    """Write record payloads unmodified, back to back, to a binary stream."""

    def __init__(self, out: BinaryIO | None = None) -> None:
        self.out = out if out is not None else sys.stdout.buffer

    def deliver(self, records: Sequence[StreamRecord]) -> None:
        for record in records:
            self.out.write(record.data)
        self.out.flush()
