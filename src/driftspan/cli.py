# Copyright 2026 DriftSpan Contributors
# SPDX-License-Identifier: Apache-2.0

"""Command-line drift harness.

Commands:
    readout   Print wall-clock vs origin-adjusted time on an interval while a
              drift is applied.
    demo      Run spans against the real system clock, changing the drift
              while a span is in flight.
    simulate  Run the same scenarios on a ManualClock so the output is
              deterministic.

Usage:
    driftspan readout --drift 21600000 --count 5
    driftspan demo --drift 21600000 --wait 500
    driftspan simulate --json
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time
from datetime import datetime, timedelta, timezone
from typing import Sequence

from driftspan._internal.clock import ClockSource, ManualClock, SystemClock
from driftspan._internal.hrtime import hrtime_to_millis
from driftspan.config import get_config
from driftspan.drift import DriftReadout, DriftSimulator
from driftspan.exporter import ConsoleSpanExporter, InMemorySpanExporter, SimpleSpanProcessor
from driftspan.models import SpanModel
from driftspan.tracer import Tracer

DEFAULT_DRIFT_MS = 21_600_000  # 6 hours


def _print_readout(readout: DriftReadout) -> None:
    print(
        f"wall={readout.wall_iso}  origin+monotonic={readout.origin_iso}  "
        f"divergence={readout.divergence_ms:.0f}ms"
    )


def _print_summary(span: SpanModel) -> None:
    print(
        f"{span.name:<28} start={hrtime_to_millis(span.start_time):.3f} "
        f"end={hrtime_to_millis(span.end_time):.3f} "
        f"duration={hrtime_to_millis(span.duration):.3f}ms events={len(span.events)}"
    )


def _build_tracer(clock: ClockSource, as_json: bool) -> tuple[Tracer, InMemorySpanExporter | None]:
    if as_json:
        return Tracer(clock=clock, processor=SimpleSpanProcessor(ConsoleSpanExporter())), None
    exporter = InMemorySpanExporter()
    return Tracer(clock=clock, processor=SimpleSpanProcessor(exporter)), exporter


def cmd_readout(args: argparse.Namespace) -> int:
    simulator = DriftSimulator(SystemClock(), drift=args.drift)
    try:
        asyncio.run(simulator.run_readout(_print_readout, args.interval, args.count))
    except KeyboardInterrupt:
        pass
    return 0


def cmd_demo(args: argparse.Namespace) -> int:
    clock = SystemClock()
    simulator = DriftSimulator(clock, drift=0)
    tracer, exporter = _build_tracer(clock, args.json)

    span = tracer.start_span("clock-derived span")
    time.sleep(args.wait / 2000)
    simulator.set_drift(args.drift)
    span.add_event("drift applied", {"drift.ms": args.drift})
    time.sleep(args.wait / 2000)
    span.end()

    # datetimes, not epoch ms: numbers older than the clock origin read as monotonic
    now = datetime.now(timezone.utc)
    week_ago = tracer.start_span("manual span a week ago", start_time=now - timedelta(days=7))
    week_ago.end(now - timedelta(days=6))

    _print_readout(simulator.readout())
    if exporter is not None:
        for finished in exporter.get_finished_spans():
            _print_summary(finished)
    return 0


def cmd_simulate(args: argparse.Namespace) -> int:
    clock = ManualClock(origin_ms=1_700_000_000_000, monotonic_ms=1000)
    simulator = DriftSimulator(clock, drift=0)
    tracer, exporter = _build_tracer(clock, args.json)

    span = tracer.start_span("clock-derived span")
    simulator.set_drift(args.drift)
    clock.advance(args.elapsed)
    span.end()

    # a monotonic reading passed as the start time is shifted onto the wall timeline
    perf = tracer.start_span("monotonic start input", start_time=clock.monotonic_now())
    clock.advance(args.elapsed)
    perf.end()

    explicit = tracer.start_span("explicit times", start_time=clock.wall_now() - 2000)
    explicit.end(clock.wall_now() - 1000)

    backwards = tracer.start_span("end before start", start_time=clock.wall_now() - 1000)
    backwards.end(clock.wall_now() - 2000)

    _print_readout(simulator.readout())
    if exporter is not None:
        for finished in exporter.get_finished_spans():
            _print_summary(finished)
    return 0


def build_parser() -> argparse.ArgumentParser:
    config = get_config()
    parser = argparse.ArgumentParser(prog="driftspan", description="DriftSpan drift harness")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    readout = sub.add_parser("readout", help="Periodic wall vs origin-adjusted readout")
    readout.add_argument("--drift", type=int, default=DEFAULT_DRIFT_MS, help="Drift in ms")
    readout.add_argument(
        "--interval", type=int, default=config.readout_interval_ms, help="Readout period in ms"
    )
    readout.add_argument("--count", type=int, default=None, help="Stop after N readouts")
    readout.set_defaults(func=cmd_readout)

    demo = sub.add_parser("demo", help="Spans on the system clock with drift applied mid-span")
    demo.add_argument("--drift", type=int, default=DEFAULT_DRIFT_MS, help="Drift in ms")
    demo.add_argument("--wait", type=int, default=500, help="Span length in ms")
    demo.add_argument("--json", action="store_true", help="Dump full span JSON")
    demo.set_defaults(func=cmd_demo)

    simulate = sub.add_parser("simulate", help="Deterministic scenarios on a manual clock")
    simulate.add_argument("--drift", type=int, default=DEFAULT_DRIFT_MS, help="Drift in ms")
    simulate.add_argument("--elapsed", type=int, default=500, help="Monotonic ms per span")
    simulate.add_argument("--json", action="store_true", help="Dump full span JSON")
    simulate.set_defaults(func=cmd_simulate)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            stream=sys.stderr,
            format="[driftspan] %(levelname)s %(name)s: %(message)s",
        )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
