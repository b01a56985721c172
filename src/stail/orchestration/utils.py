"""Duration and deadline helpers for the tail run.

Functions
---------
- parse_iso_duration: ISO-8601 `PnDTnHnMn.nS` duration → timedelta.
- deadline_after: absolute monotonic deadline for an optional duration.
"""

from __future__ import annotations

import re
import time
from collections.abc import Callable
from datetime import timedelta

_NUMBER = r"[-+]?\d+(?:[.,]\d+)?"

# Same subset as java.time.Duration: days, hours, minutes, (fractional) seconds
_ISO_DURATION = re.compile(
    rf"""
    ^(?P<sign>[-+])?P
    (?:(?P<days>{_NUMBER})D)?
    (?:T
        (?:(?P<hours>{_NUMBER})H)?
        (?:(?P<minutes>{_NUMBER})M)?
        (?:(?P<seconds>{_NUMBER})S)?
    )?$
    """,
    re.IGNORECASE | re.VERBOSE,
)


def parse_iso_duration(text: str) -> timedelta:
    """Parse an ISO-8601 duration such as `PT15M`, `P1DT2H` or `PT0.5S`.

    Parameters
    ----------
    text : str
        Duration text.

    Returns
    -------
    timedelta
        Parsed duration (may be negative when signed).

    Raises
    ------
    ValueError
        If `text` is not a supported ISO-8601 duration.
    """
    value = (text or "").strip()
    m = _ISO_DURATION.match(value)
    if m is None or value.upper().endswith(("P", "T")):
        raise ValueError(f"invalid ISO-8601 duration: {text!r}")

    parts = {k: v for k, v in m.groupdict().items() if k != "sign" and v is not None}
    if not parts:
        raise ValueError(f"invalid ISO-8601 duration: {text!r}")

    total = timedelta(
        **{unit: float(amount.replace(",", ".")) for unit, amount in parts.items()}
    )
    return -total if m.group("sign") == "-" else total


def deadline_after(
    duration: timedelta | None,
    clock: Callable[[], float] = time.monotonic,
) -> float | None:
    """Absolute time on `clock` when a run of `duration` ends; None runs forever."""
    if duration is None:
        return None
    return clock() + duration.total_seconds()
