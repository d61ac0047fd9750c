# Copyright 2026 DriftSpan Contributors
# SPDX-License-Identifier: Apache-2.0

"""Span processors and exporters for finished spans.

When a span ends it is frozen into a SpanModel and passed to the tracer's
span processor. The SimpleSpanProcessor exports each span immediately and
synchronously; there is no batching thread because all span work happens on
one logical thread.

Exporters:
    - ConsoleSpanExporter: writes a JSON dump of each span plus readable
      ISO-8601 start/end times to a text stream
    - InMemorySpanExporter: keeps the most recent finished spans in a
      RingBuffer, mainly for tests and the CLI harness

Exporter failures are logged and never reach the code that ended the span.
"""

from __future__ import annotations

import enum
import json
import logging
import sys
from typing import IO, Sequence

from driftspan._internal.buffer import RingBuffer
from driftspan._internal.hrtime import hrtime_to_millis, millis_to_iso
from driftspan.config import get_config
from driftspan.models import SpanModel

logger = logging.getLogger("driftspan")


class ExportResult(enum.Enum):
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"


class SpanExporter:
    """Base exporter. Subclasses override ``export``."""

    def export(self, spans: Sequence[SpanModel]) -> ExportResult:
        raise NotImplementedError

    def shutdown(self) -> None:
        """Release any resources held by the exporter."""


class ConsoleSpanExporter(SpanExporter):
    """Writes each finished span as indented JSON to a stream (stdout by default)."""

    def __init__(self, stream: IO[str] | None = None) -> None:
        self._stream = stream

    def export(self, spans: Sequence[SpanModel]) -> ExportResult:
        stream = self._stream or sys.stdout
        for span in spans:
            info = span.to_export_dict()
            stream.write(
                f"{span.name} {info['id']} "
                f"start={millis_to_iso(hrtime_to_millis(span.start_time))} "
                f"end={millis_to_iso(hrtime_to_millis(span.end_time))} "
                f"duration={span.duration_us}us\n"
            )
            for event in span.events:
                stream.write(
                    f"  event {event.name} at {millis_to_iso(hrtime_to_millis(event.time))}\n"
                )
            stream.write(json.dumps(info, indent=2, default=str))
            stream.write("\n")
        stream.flush()
        return ExportResult.SUCCESS


class InMemorySpanExporter(SpanExporter):
    """Keeps up to ``capacity`` finished spans, dropping the oldest beyond that."""

    def __init__(self, capacity: int | None = 2048) -> None:
        self._spans: RingBuffer[SpanModel] = RingBuffer(capacity=capacity)
        self._stopped = False

    def export(self, spans: Sequence[SpanModel]) -> ExportResult:
        if self._stopped:
            return ExportResult.FAILURE
        for span in spans:
            self._spans.add(span)
        return ExportResult.SUCCESS

    def get_finished_spans(self) -> list[SpanModel]:
        return self._spans.items()

    def clear(self) -> None:
        self._spans.clear()

    def shutdown(self) -> None:
        self._stopped = True

    @property
    def dropped_count(self) -> int:
        return self._spans.dropped_count


class SpanProcessor:
    """Receives every finished span. The base implementation discards them."""

    def on_end(self, span: SpanModel) -> None:
        pass

    def shutdown(self) -> None:
        pass


class SimpleSpanProcessor(SpanProcessor):
    """Exports each span as soon as it ends.

    Args:
        exporter: Destination for finished spans.
    """

    def __init__(self, exporter: SpanExporter) -> None:
        self._exporter = exporter
        self._exported_count = 0
        self._failed_count = 0

    @property
    def exporter(self) -> SpanExporter:
        return self._exporter

    def on_end(self, span: SpanModel) -> None:
        try:
            result = self._exporter.export([span])
        except Exception:
            logger.debug("Exporter raised while exporting span %s", span.span_id, exc_info=True)
            self._failed_count += 1
            return

        if result is ExportResult.SUCCESS:
            self._exported_count += 1
        else:
            self._failed_count += 1
            logger.debug("Export of span %s failed", span.span_id)

    def shutdown(self) -> None:
        self._exporter.shutdown()
        logger.debug(
            "Processor shutdown: exported=%d, failed=%d",
            self._exported_count,
            self._failed_count,
        )

    @property
    def stats(self) -> dict[str, int]:
        return {"exported": self._exported_count, "failed": self._failed_count}

    def __repr__(self) -> str:
        return f"SimpleSpanProcessor(exporter={type(self._exporter).__name__})"


# ── Module-level singleton ────────────────────────────────────────────

_processor: SpanProcessor | None = None


def get_processor() -> SpanProcessor:
    """Return the global span processor, built from config on first use.

    The exporter is chosen by DRIFTSPAN_EXPORTER: "console", "memory", or
    "none" (a processor that discards spans).
    """
    global _processor
    if _processor is not None:
        return _processor

    config = get_config()
    if config.exporter == "memory":
        _processor = SimpleSpanProcessor(InMemorySpanExporter(config.max_finished_spans))
    elif config.exporter == "none":
        _processor = SpanProcessor()
    else:
        _processor = SimpleSpanProcessor(ConsoleSpanExporter())
    return _processor


def reset_processor() -> None:
    """Shut down and drop the global processor. Primarily for testing."""
    global _processor
    if _processor is not None:
        _processor.shutdown()
    _processor = None
