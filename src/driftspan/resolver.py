# Copyright 2026 DriftSpan Contributors
# SPDX-License-Identifier: Apache-2.0

"""SpanTimeResolver: turns caller time inputs into canonical span timestamps.

Each span gets its own resolver. At construction the resolver samples the
clock once and freezes three values for the span's lifetime:

- ``provided_start``: whether the caller supplied a start time
- ``monotonic_start``: the monotonic reading at creation
- ``performance_offset``: ``wall - (monotonic + origin)``, the skew between
  the wall clock and the origin-adjusted monotonic clock at that instant

Spans with a clock-derived start measure every later instant as
``start + monotonic elapsed``, so moving the clock origin mid-span (NTP
correction, injected drift) does not change their duration. Spans whose start
was provided by the caller defer entirely to caller-supplied times.

A number smaller than the clock origin cannot be an epoch timestamp taken
while this process was running, so it is treated as monotonic-relative. This
is a heuristic: a genuine wall-clock value older than the origin would be
misread the same way.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Any, Sequence, Union

from driftspan._internal.clock import ClockSource
from driftspan._internal.hrtime import (
    NANOS_PER_MICRO,
    NANOS_PER_MILLI,
    HrTime,
    as_hrtime,
    hrtime_add,
    hrtime_duration,
    is_hrtime,
    millis_to_hrtime,
    nanos_to_hrtime,
)

logger = logging.getLogger("driftspan")

TimeInput = Union[int, float, HrTime, Sequence[float], datetime]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def is_time_input(value: Any) -> bool:
    """True for finite numbers, datetimes and ``(seconds, nanos)`` pairs."""
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return math.isfinite(value)
    if isinstance(value, datetime):
        return True
    return is_hrtime(value)


class SpanTimeResolver:
    """Resolves the start time of one span and every instant after it.

    Anything passed to ``Tracer(resolver_factory=...)`` must be callable as
    ``factory(clock, start_input)`` and return an object with ``start_time``,
    ``provided_start`` and ``resolve(time_input)``.

    Args:
        clock: Clock used for every reading.
        start_input: Optional caller-supplied start time. Malformed values are
            ignored as if nothing had been supplied.
    """

    __slots__ = (
        "_clock",
        "start_time",
        "provided_start",
        "monotonic_start",
        "performance_offset",
    )

    def __init__(self, clock: ClockSource, start_input: Any = None) -> None:
        self._clock = clock

        if start_input is not None and not is_time_input(start_input):
            logger.debug("Ignoring malformed start time input: %r", start_input)
            start_input = None

        wall, monotonic, origin = clock.sample()
        self.provided_start: bool = start_input is not None
        self.monotonic_start: float = monotonic
        self.performance_offset: float = wall - (monotonic + origin)

        if start_input is None:
            self.start_time: HrTime = millis_to_hrtime(wall)
            return

        # below the origin: a monotonic value, shift it onto the wall timeline
        if isinstance(start_input, (int, float)) and start_input < origin:
            start_input = start_input + self.performance_offset
        self.start_time = self.to_hrtime(start_input)

    def to_hrtime(self, time_input: TimeInput) -> HrTime:
        """Convert a well-formed TimeInput into a normalized HrTime."""
        if isinstance(time_input, datetime):
            if time_input.tzinfo is None:
                time_input = time_input.astimezone(timezone.utc)
            micros = (time_input - _EPOCH) // timedelta(microseconds=1)
            return nanos_to_hrtime(micros * NANOS_PER_MICRO)
        if isinstance(time_input, (int, float)):
            origin = self._clock.origin()
            if time_input < origin:
                return millis_to_hrtime(origin + time_input)
            return millis_to_hrtime(time_input)
        return as_hrtime(time_input)

    def resolve(self, time_input: Any = None) -> HrTime:
        """Resolve an event or end time for this span.

        Args:
            time_input: Optional caller-supplied time. Malformed values are
                treated as absent.

        Returns:
            The canonical HrTime for the instant.
        """
        provided = None
        if time_input is not None:
            if is_time_input(time_input):
                provided = self.to_hrtime(time_input)
            else:
                logger.debug("Ignoring malformed time input: %r", time_input)

        if self.provided_start:
            if provided is not None:
                if hrtime_duration(self.start_time, provided).seconds < 0:
                    logger.warning(
                        "Time input %s precedes provided span start %s",
                        tuple(provided),
                        tuple(self.start_time),
                    )
                return provided
            return millis_to_hrtime(self._clock.wall_now())

        if provided is not None:
            if hrtime_duration(self.start_time, provided).seconds < 0:
                logger.warning(
                    "Time input %s precedes span start %s, applying clock offset of %.3fms",
                    tuple(provided),
                    tuple(self.start_time),
                    self.performance_offset,
                )
                offset = nanos_to_hrtime(round(self.performance_offset * NANOS_PER_MILLI))
                return hrtime_add(provided, offset)
            return provided

        elapsed_ms = self._clock.monotonic_now() - self.monotonic_start
        return hrtime_add(self.start_time, nanos_to_hrtime(round(elapsed_ms * NANOS_PER_MILLI)))

    def __repr__(self) -> str:
        return (
            f"SpanTimeResolver(start={tuple(self.start_time)}, provided={self.provided_start}, "
            f"offset={self.performance_offset:.3f}ms)"
        )
