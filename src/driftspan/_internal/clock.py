# Copyright 2026 DriftSpan Contributors
# SPDX-License-Identifier: Apache-2.0

"""Clock sources used for span timing.

Every clock exposes three readings, all in milliseconds:
- wall_now(): epoch wall-clock time, subject to NTP jumps and injected skew
- monotonic_now(): time since the clock's own zero point, never decreases
- origin(): the epoch time that corresponds to monotonic zero

``origin() + monotonic_now()`` is the origin-adjusted timeline. It matches the
wall clock until someone moves the origin (the DriftSimulator) or the wall
clock jumps. ``set_origin`` is the only way the origin changes.

Clocks are passed explicitly to the resolver and the drift simulator so tests
can substitute a ManualClock with fully controlled readings.
"""

from __future__ import annotations

import abc
import time
from typing import NamedTuple


class ClockSample(NamedTuple):
    """All three clock readings taken at one logical instant."""

    wall_ms: float
    monotonic_ms: float
    origin_ms: float


class ClockSource(abc.ABC):
    """Abstract clock with a settable origin."""

    @abc.abstractmethod
    def wall_now(self) -> float:
        """Return wall-clock epoch milliseconds."""

    @abc.abstractmethod
    def monotonic_now(self) -> float:
        """Return milliseconds elapsed since this clock's zero point."""

    @abc.abstractmethod
    def origin(self) -> float:
        """Return the epoch milliseconds corresponding to monotonic zero."""

    @abc.abstractmethod
    def set_origin(self, value: float) -> None:
        """Move the origin. Only the drift simulator is expected to call this."""

    def sample(self) -> ClockSample:
        return ClockSample(self.wall_now(), self.monotonic_now(), self.origin())


class SystemClock(ClockSource):
    """Clock backed by ``time.time_ns`` and ``time.monotonic_ns``.

    The monotonic zero point is the moment the clock is constructed, and the
    origin starts out as the wall time at that moment.
    """

    __slots__ = ("_mono_zero_ns", "_origin_ms")

    def __init__(self) -> None:
        self._mono_zero_ns = time.monotonic_ns()
        self._origin_ms = time.time_ns() / 1_000_000

    def wall_now(self) -> float:
        return time.time_ns() / 1_000_000

    def monotonic_now(self) -> float:
        return (time.monotonic_ns() - self._mono_zero_ns) / 1_000_000

    def origin(self) -> float:
        return self._origin_ms

    def set_origin(self, value: float) -> None:
        self._origin_ms = value

    def __repr__(self) -> str:
        return f"SystemClock(origin={self._origin_ms!r})"


class ManualClock(ClockSource):
    """Deterministic clock whose readings only change when told to.

    Args:
        origin_ms: Epoch milliseconds at monotonic zero.
        monotonic_ms: Initial monotonic reading.
        wall_ms: Initial wall reading. Defaults to ``origin_ms + monotonic_ms``
            (no skew between the two timelines).
    """

    __slots__ = ("_wall_ms", "_monotonic_ms", "_origin_ms")

    def __init__(
        self,
        origin_ms: float = 1_700_000_000_000,
        monotonic_ms: float = 0,
        wall_ms: float | None = None,
    ) -> None:
        self._origin_ms = origin_ms
        self._monotonic_ms = monotonic_ms
        self._wall_ms = origin_ms + monotonic_ms if wall_ms is None else wall_ms

    def wall_now(self) -> float:
        return self._wall_ms

    def monotonic_now(self) -> float:
        return self._monotonic_ms

    def origin(self) -> float:
        return self._origin_ms

    def set_origin(self, value: float) -> None:
        self._origin_ms = value

    def advance(self, ms: float) -> None:
        """Let ``ms`` milliseconds pass on both the wall and monotonic clocks."""
        if ms < 0:
            raise ValueError("monotonic time cannot go backwards")
        self._monotonic_ms += ms
        self._wall_ms += ms

    def jump_wall(self, ms: float) -> None:
        """Step only the wall clock, as an NTP correction would."""
        self._wall_ms += ms

    def __repr__(self) -> str:
        return (
            f"ManualClock(wall={self._wall_ms!r}, monotonic={self._monotonic_ms!r}, "
            f"origin={self._origin_ms!r})"
        )


# ── Module-level singleton ────────────────────────────────────────────

_clock: ClockSource | None = None


def get_clock() -> ClockSource:
    """Return the process-wide default clock (a SystemClock, created lazily)."""
    global _clock
    if _clock is None:
        _clock = SystemClock()
    return _clock


def reset_clock() -> None:
    """Drop the default clock. Primarily useful for testing."""
    global _clock
    _clock = None
