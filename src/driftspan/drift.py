# Copyright 2026 DriftSpan Contributors
# SPDX-License-Identifier: Apache-2.0

"""DriftSimulator: inject skew between the wall clock and the monotonic timeline.

The simulator remembers the clock's origin at construction as a fixed basis.
Setting a drift of ``d`` milliseconds moves the origin to ``basis - d``; the
wall clock and the monotonic clock themselves are untouched. Spans whose
durations follow the monotonic clock should be unaffected, which is what the
periodic readout makes visible: the wall-clock time and the origin-adjusted
time drift apart by exactly the injected amount.

Usage:
    simulator = DriftSimulator(clock, drift=21_600_000)
    simulator.set_drift("-500")            # value from an input control
    await simulator.run_readout(print)     # runs until cancelled
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Callable, NamedTuple

from driftspan._internal.clock import ClockSource, get_clock
from driftspan._internal.hrtime import millis_to_iso
from driftspan.config import get_config

logger = logging.getLogger("driftspan")

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


class DriftReadout(NamedTuple):
    """One readout: wall-clock and origin-adjusted times as ISO-8601 strings."""

    wall_iso: str
    origin_iso: str
    divergence_ms: float


def parse_drift(value: str) -> int | None:
    """Parse the leading integer of ``value`` the way an input field would.

    Returns None if the string does not start with an integer.
    """
    match = _LEADING_INT.match(value)
    if match is None:
        return None
    return int(match.group(1))


def _checked_interval(value: int | None, fallback: int) -> int:
    """Return ``value``, or ``fallback`` when it is None or not positive."""
    if value is None:
        return fallback
    if value <= 0:
        logger.warning("Readout interval must be positive, got %rms; using %dms", value, fallback)
        return fallback
    return value


class DriftSimulator:
    """Operator control that rewrites ``clock.origin()`` as ``basis - drift``.

    Args:
        clock: Clock whose origin is adjusted. Defaults to the process clock.
        drift: Initial drift in milliseconds. Defaults to DRIFTSPAN_DRIFT.
        readout_interval_ms: Default readout period. Defaults to
            DRIFTSPAN_READOUT_INTERVAL.
    """

    def __init__(
        self,
        clock: ClockSource | None = None,
        drift: int | None = None,
        readout_interval_ms: int | None = None,
    ) -> None:
        config = get_config()
        self._clock = clock or get_clock()
        self._basis = self._clock.origin()
        self._interval_ms = _checked_interval(readout_interval_ms, config.readout_interval_ms)
        self._drift = 0
        self.set_drift(config.drift_ms if drift is None else drift)

    @property
    def clock(self) -> ClockSource:
        return self._clock

    @property
    def basis(self) -> float:
        """Origin of the clock when the simulator was created."""
        return self._basis

    @property
    def drift(self) -> int:
        return self._drift

    def set_drift(self, value: int | str) -> int:
        """Apply a new drift and return the drift now in effect.

        Strings are parsed by their leading integer; a string without one is
        rejected with a warning and the current drift is kept.
        """
        if isinstance(value, str):
            parsed = parse_drift(value)
            if parsed is None:
                logger.warning("Ignoring drift value that is not an integer: %r", value)
                return self._drift
            value = parsed

        self._drift = int(value)
        self._clock.set_origin(self._basis - self._drift)
        logger.info("Drift set to %dms (origin=%.3f)", self._drift, self._clock.origin())
        return self._drift

    def readout(self) -> DriftReadout:
        """Return the current wall-clock and origin-adjusted times."""
        wall, monotonic, origin = self._clock.sample()
        adjusted = origin + monotonic
        return DriftReadout(millis_to_iso(wall), millis_to_iso(adjusted), wall - adjusted)

    async def run_readout(
        self,
        sink: Callable[[DriftReadout], None],
        interval_ms: int | None = None,
        count: int | None = None,
    ) -> None:
        """Emit a readout every ``interval_ms`` on the running event loop.

        Runs until cancelled, or until ``count`` readouts have been emitted.
        """
        interval_s = _checked_interval(interval_ms, self._interval_ms) / 1000
        emitted = 0
        while count is None or emitted < count:
            if emitted:
                await asyncio.sleep(interval_s)
            sink(self.readout())
            emitted += 1

    def __repr__(self) -> str:
        return f"DriftSimulator(drift={self._drift}, basis={self._basis!r})"
