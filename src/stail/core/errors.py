from __future__ import annotations


class TailError(RuntimeError):
    """Unrecoverable failure while tailing a stream."""
