# Copyright 2026 DriftSpan Contributors
# SPDX-License-Identifier: Apache-2.0

"""High-resolution timestamp arithmetic.

An HrTime is a ``(seconds, nanos)`` pair where ``nanos`` is always kept in
``[0, 1_000_000_000)``. All arithmetic goes through ``nanos_to_hrtime`` so
overflow and borrow between the two fields is handled in one place. Negative
values floor towards minus infinity, which means a negative duration always
has ``seconds < 0``.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Any, NamedTuple

logger = logging.getLogger("driftspan")

NANOS_PER_SECOND = 1_000_000_000
NANOS_PER_MILLI = 1_000_000
NANOS_PER_MICRO = 1_000


class HrTime(NamedTuple):
    """Normalized ``(seconds, nanos)`` timestamp or duration."""

    seconds: int
    nanos: int


ZERO = HrTime(0, 0)

INVALID_ISO = "Invalid Date"


def nanos_to_hrtime(total_nanos: int) -> HrTime:
    """Split an integer nanosecond count into a normalized HrTime."""
    seconds, nanos = divmod(int(total_nanos), NANOS_PER_SECOND)
    return HrTime(seconds, nanos)


def millis_to_hrtime(millis: float) -> HrTime:
    """Convert (possibly fractional) milliseconds into an HrTime.

    Whole seconds are split off before scaling so large epoch values keep
    their sub-millisecond part instead of losing it to float rounding.
    """
    seconds = int(millis // 1000)
    nanos = round((millis - seconds * 1000) * NANOS_PER_MILLI)
    return nanos_to_hrtime(seconds * NANOS_PER_SECOND + nanos)


def is_hrtime(value: Any) -> bool:
    """True for any 2-sequence of finite real numbers (bools excluded)."""
    if not isinstance(value, (tuple, list)) or len(value) != 2:
        return False
    return all(
        isinstance(part, (int, float)) and not isinstance(part, bool) and math.isfinite(part)
        for part in value
    )


def as_hrtime(value: Any) -> HrTime:
    """Normalize a ``(seconds, nanos)`` pair, carrying any out-of-range nanos."""
    seconds, nanos = value
    whole = int(seconds)
    fraction = round((seconds - whole) * NANOS_PER_SECOND)
    return nanos_to_hrtime(whole * NANOS_PER_SECOND + fraction + round(nanos))


def hrtime_to_nanos(time: HrTime) -> int:
    return time[0] * NANOS_PER_SECOND + time[1]


def hrtime_add(time1: HrTime, time2: HrTime) -> HrTime:
    """Add two HrTimes, carrying nanosecond overflow into seconds."""
    return nanos_to_hrtime(hrtime_to_nanos(time1) + hrtime_to_nanos(time2))


def hrtime_duration(start: HrTime, end: HrTime) -> HrTime:
    """Return ``end - start``. The result is negative (seconds < 0) if end precedes start."""
    return nanos_to_hrtime(hrtime_to_nanos(end) - hrtime_to_nanos(start))


def hrtime_to_millis(time: HrTime) -> float:
    return time[0] * 1000 + time[1] / NANOS_PER_MILLI


def hrtime_to_micros(time: HrTime) -> int:
    """Convert to integer microseconds (rounded), the unit used by exporters."""
    return time[0] * 1_000_000 + round(time[1] / NANOS_PER_MICRO)


def millis_to_iso(millis: float) -> str:
    """Format epoch milliseconds as ``YYYY-MM-DDTHH:MM:SS.mmmZ``.

    Instants outside the range ``datetime`` can represent are rendered as
    ``INVALID_ISO`` with a warning.
    """
    try:
        dt = datetime.fromtimestamp(millis / 1000, tz=timezone.utc)
    except (ValueError, OverflowError, OSError):
        logger.warning("Cannot format %r ms as a date, out of range", millis)
        return INVALID_ISO
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")
