# Copyright 2026 DriftSpan Contributors
# SPDX-License-Identifier: Apache-2.0

"""DriftSpan: span timing that survives wall-clock drift.

Resolves span start, event and end times from wall-clock milliseconds,
monotonic-relative values or nothing at all, and keeps durations honest when
the wall clock and the monotonic clock disagree.

Quick Start:
    import driftspan

    driftspan.init(service_name="checkout", debug=True)
    tracer = driftspan.Tracer.get_tracer()

    with tracer.start_as_current_span("load.cart") as span:
        span.add_event("cache.miss")

Public API:
    - init: Configure the library and reset its singletons
    - Tracer / Span: span creation and lifecycle
    - SpanTimeResolver: the time-resolution strategy used by every span
    - ClockSource / SystemClock / ManualClock: injectable clocks
    - DriftSimulator: operator-controlled clock skew for testing corrections
"""

from __future__ import annotations

__version__ = "0.1.0"
__all__ = [
    "init",
    "Tracer",
    "Span",
    "NonRecordingSpan",
    "SpanTimeResolver",
    "ClockSource",
    "SystemClock",
    "ManualClock",
    "DriftSimulator",
    "HrTime",
    "__version__",
]

import logging
import os

from driftspan._internal.clock import ClockSource, ManualClock, SystemClock, reset_clock
from driftspan._internal.hrtime import HrTime
from driftspan.config import get_config, reset_config
from driftspan.drift import DriftSimulator
from driftspan.exporter import reset_processor
from driftspan.resolver import SpanTimeResolver
from driftspan.tracer import NonRecordingSpan, Span, Tracer


def init(
    *,
    enabled: bool | None = None,
    service_name: str | None = None,
    event_count_limit: int | None = None,
    exporter: str | None = None,
    drift_ms: int | None = None,
    debug: bool | None = None,
) -> None:
    """Initialize DriftSpan with custom configuration.

    Any provided arguments override the corresponding DRIFTSPAN_* environment
    variables. Call this before starting spans.

    Args:
        enabled: Enable/disable span recording (overrides DRIFTSPAN_ENABLED).
        service_name: Service name for spans (overrides DRIFTSPAN_SERVICE_NAME).
        event_count_limit: Events kept per span (overrides DRIFTSPAN_EVENT_COUNT_LIMIT).
        exporter: "console", "memory" or "none" (overrides DRIFTSPAN_EXPORTER).
        drift_ms: Initial simulator drift (overrides DRIFTSPAN_DRIFT).
        debug: Enable debug logging (overrides DRIFTSPAN_DEBUG).
    """
    if enabled is not None:
        os.environ["DRIFTSPAN_ENABLED"] = str(enabled).lower()
    if service_name is not None:
        os.environ["DRIFTSPAN_SERVICE_NAME"] = service_name
    if event_count_limit is not None:
        os.environ["DRIFTSPAN_EVENT_COUNT_LIMIT"] = str(event_count_limit)
    if exporter is not None:
        os.environ["DRIFTSPAN_EXPORTER"] = exporter
    if drift_ms is not None:
        os.environ["DRIFTSPAN_DRIFT"] = str(drift_ms)
    if debug is not None:
        os.environ["DRIFTSPAN_DEBUG"] = str(debug).lower()

    # Reset singletons so they pick up new env vars
    reset_config()
    reset_processor()
    reset_clock()
    Tracer.reset()

    # Configure logging
    config = get_config()
    log_level = logging.DEBUG if config.debug else getattr(logging, config.log_level, logging.INFO)
    logging.getLogger("driftspan").setLevel(log_level)

    if config.debug:
        driftspan_logger = logging.getLogger("driftspan")
        if not driftspan_logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(
                logging.Formatter("[driftspan] %(levelname)s %(name)s: %(message)s")
            )
            driftspan_logger.addHandler(handler)
