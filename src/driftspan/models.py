# Copyright 2026 DriftSpan Contributors
# SPDX-License-Identifier: Apache-2.0

"""Pydantic v2 data models for finished spans and their events.

A live ``Span`` (see tracer.py) is a mutable object owned by the code that
started it. When it ends it is frozen into a ``SpanModel``, which is the only
shape exporters ever see. Timestamps are kept as HrTime pairs; the export
dictionary scales them to integer microseconds.
"""

from __future__ import annotations

import enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from driftspan._internal.hrtime import ZERO, HrTime, hrtime_to_micros


class SpanKind(str, enum.Enum):
    """Role of the span in the traced operation."""

    INTERNAL = "INTERNAL"
    SERVER = "SERVER"
    CLIENT = "CLIENT"
    PRODUCER = "PRODUCER"
    CONSUMER = "CONSUMER"


class SpanStatus(str, enum.Enum):
    """Status of a completed span."""

    UNSET = "UNSET"
    OK = "OK"
    ERROR = "ERROR"


class SpanState(str, enum.Enum):
    """Lifecycle state. CREATED only exists while the span is being constructed."""

    CREATED = "CREATED"
    RECORDING = "RECORDING"
    ENDED = "ENDED"


class SpanEvent(BaseModel):
    """A timestamped occurrence recorded while a span was recording."""

    model_config = ConfigDict(frozen=True)

    name: str
    time: HrTime
    attributes: dict[str, Any] = Field(default_factory=dict)

    def to_export_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "time": hrtime_to_micros(self.time),
            "attributes": dict(self.attributes),
        }


class SpanModel(BaseModel):
    """Immutable record of a finished span, handed to span processors."""

    model_config = ConfigDict(frozen=True)

    trace_id: str
    span_id: str
    parent_span_id: Optional[str] = None
    name: str
    kind: SpanKind = SpanKind.INTERNAL
    status: SpanStatus = SpanStatus.UNSET
    status_message: Optional[str] = None
    start_time: HrTime
    end_time: HrTime
    duration: HrTime = ZERO
    attributes: dict[str, Any] = Field(default_factory=dict)
    events: tuple[SpanEvent, ...] = ()
    dropped_events_count: int = 0
    service_name: str = "default"

    @property
    def timestamp(self) -> int:
        """Start time in microseconds since epoch."""
        return hrtime_to_micros(self.start_time)

    @property
    def duration_us(self) -> int:
        return hrtime_to_micros(self.duration)

    def to_export_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-friendly dict with microsecond timestamps."""
        return {
            "traceId": self.trace_id,
            "parentId": self.parent_span_id,
            "name": self.name,
            "id": self.span_id,
            "kind": self.kind.value,
            "timestamp": self.timestamp,
            "duration": self.duration_us,
            "attributes": dict(self.attributes),
            "status": {"code": self.status.value, "message": self.status_message},
            "events": [event.to_export_dict() for event in self.events],
            "droppedEventsCount": self.dropped_events_count,
            "serviceName": self.service_name,
        }
