# Copyright 2026 DriftSpan Contributors
# SPDX-License-Identifier: Apache-2.0

"""Tracer and Span: span creation and the span lifecycle.

A Span moves through CREATED -> RECORDING -> ENDED. CREATED only lasts for
the duration of the constructor: as soon as the SpanTimeResolver has fixed
the start time and monotonic baseline the span is RECORDING. ``end()`` moves
it to ENDED exactly once; afterwards every mutation is ignored and the span
has been handed to the span processor as an immutable SpanModel.

No method on a span raises because of bad timing input. Ordering problems are
clamped, capacity problems evict or drop, and each case is logged on the
"driftspan" logger.

Usage:
    tracer = Tracer.get_tracer()
    span = tracer.start_span("fetch", start_time=time.time() * 1000)
    span.add_event("response.headers")
    span.end()
"""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from typing import Any, Callable, Generator, Mapping

from driftspan._internal.buffer import RingBuffer
from driftspan._internal.clock import ClockSource, get_clock
from driftspan._internal.hrtime import ZERO, HrTime, hrtime_duration, hrtime_to_millis
from driftspan.config import DriftSpanConfig, get_config
from driftspan.context import get_current_span, span_context
from driftspan.exporter import SpanProcessor, get_processor
from driftspan.models import SpanEvent, SpanKind, SpanModel, SpanState, SpanStatus
from driftspan.resolver import SpanTimeResolver, is_time_input
from driftspan.sanitizer import sanitize_attributes

logger = logging.getLogger("driftspan")

Sampler = Callable[[str, str, Mapping[str, Any]], bool]
ResolverFactory = Callable[[ClockSource, Any], SpanTimeResolver]


def generate_trace_id() -> str:
    return uuid.uuid4().hex


def generate_span_id() -> str:
    return uuid.uuid4().hex[:16]


class Span:
    """A single traced operation with a start, an end and timestamped events.

    Spans are normally created through ``Tracer.start_span``. The span owns
    its resolver, attributes and events exclusively until it ends.

    Args:
        name: Operation name.
        clock: Clock used for every timing decision. Defaults to the process clock.
        processor: Receives the finished SpanModel on ``end()``.
        start_time: Optional caller-supplied start time (see resolver.TimeInput).
        event_count_limit: Maximum retained events. None is unlimited, 0 drops all.
        resolver_factory: Builds the span's time resolver from (clock, start_time).
    """

    __slots__ = (
        "trace_id",
        "span_id",
        "parent_span_id",
        "name",
        "kind",
        "status",
        "status_message",
        "service_name",
        "attributes",
        "start_time",
        "end_time",
        "duration",
        "state",
        "_resolver",
        "_events",
        "_processor",
        "_attribute_value_length_limit",
    )

    def __init__(
        self,
        name: str,
        *,
        clock: ClockSource | None = None,
        processor: SpanProcessor | None = None,
        trace_id: str | None = None,
        span_id: str | None = None,
        parent_span_id: str | None = None,
        kind: SpanKind = SpanKind.INTERNAL,
        start_time: Any = None,
        attributes: Mapping[str, Any] | None = None,
        event_count_limit: int | None = None,
        attribute_value_length_limit: int | None = None,
        service_name: str = "default",
        resolver_factory: ResolverFactory = SpanTimeResolver,
    ) -> None:
        self.state: SpanState = SpanState.CREATED

        # Identity
        self.trace_id: str = trace_id or generate_trace_id()
        self.span_id: str = span_id or generate_span_id()
        self.parent_span_id: str | None = parent_span_id
        self.name: str = name
        self.kind: SpanKind = kind
        self.service_name: str = service_name

        # Data
        self._attribute_value_length_limit = attribute_value_length_limit
        self.attributes: dict[str, Any] = sanitize_attributes(
            attributes, attribute_value_length_limit
        )
        self._events: RingBuffer[SpanEvent] = RingBuffer(capacity=event_count_limit)
        self.status: SpanStatus = SpanStatus.UNSET
        self.status_message: str | None = None
        self._processor = processor

        # Timing
        self._resolver = resolver_factory(clock or get_clock(), start_time)
        self.start_time: HrTime = self._resolver.start_time
        self.end_time: HrTime | None = None
        self.duration: HrTime = ZERO

        self.state = SpanState.RECORDING
        logger.debug(
            "%s input start_time=%r span start_time=%s (%.3fms)",
            self.span_id,
            start_time,
            tuple(self.start_time),
            hrtime_to_millis(self.start_time),
        )

    @property
    def provided_start(self) -> bool:
        """Whether the start time came from the caller rather than the clock."""
        return self._resolver.provided_start

    @property
    def events(self) -> list[SpanEvent]:
        return self._events.items()

    @property
    def dropped_events_count(self) -> int:
        return self._events.dropped_count

    @property
    def is_recording(self) -> bool:
        return self.state is SpanState.RECORDING

    @property
    def is_ended(self) -> bool:
        return self.state is SpanState.ENDED

    def set_attribute(self, key: str, value: Any) -> Span:
        """Set one attribute. Invalid keys or values are dropped with a warning."""
        return self.set_attributes({key: value})

    def set_attributes(self, attributes: Mapping[str, Any]) -> Span:
        if not self.is_recording:
            logger.warning("Attempting to set attributes on ended span %s", self.span_id)
            return self
        self.attributes.update(
            sanitize_attributes(attributes, self._attribute_value_length_limit)
        )
        return self

    def set_status(self, status: SpanStatus, message: str | None = None) -> Span:
        if not self.is_recording:
            logger.warning("Attempting to set status on ended span %s", self.span_id)
            return self
        self.status = status
        self.status_message = message
        return self

    def add_event(
        self,
        name: str,
        attributes_or_time: Any = None,
        time: Any = None,
    ) -> Span:
        """Record a timestamped event.

        The second argument may be either the event attributes or, as a
        shorthand, the event time. When it is a time input and ``time`` is not,
        it is used as the time.

        Args:
            name: Event name.
            attributes_or_time: Attribute mapping, or a time input.
            time: Optional event time; resolved against the span's start.
        """
        if not self.is_recording:
            logger.debug("Ignoring event %r on span %s that is not recording", name, self.span_id)
            return self
        if self._events.capacity == 0:
            logger.warning("No events allowed.")
            return self
        if self._events.is_full:
            logger.warning("Dropping extra events.")

        attributes = attributes_or_time
        if is_time_input(attributes_or_time):
            if not is_time_input(time):
                time = attributes_or_time
            attributes = None
        elif attributes is not None and not isinstance(attributes, Mapping):
            logger.debug("Ignoring non-mapping event attributes: %r", attributes)
            attributes = None

        self._events.add(
            SpanEvent(
                name=name,
                time=self._resolver.resolve(time),
                attributes=sanitize_attributes(attributes, self._attribute_value_length_limit),
            )
        )
        return self

    def record_exception(self, exc: BaseException, time: Any = None) -> Span:
        """Set ERROR status and add an ``exception`` event describing ``exc``."""
        self.set_status(SpanStatus.ERROR, str(exc))
        return self.add_event(
            "exception",
            {
                "exception.type": type(exc).__name__,
                "exception.message": str(exc),
            },
            time,
        )

    def end(self, end_time: Any = None) -> None:
        """End the span, clamp its duration to >= 0, and hand it to the processor.

        Only the first call has any effect.

        Args:
            end_time: Optional caller-supplied end time.
        """
        if self.state is SpanState.ENDED:
            logger.error("You can only call end() on a span once.")
            return

        resolved = self._resolver.resolve(end_time)
        duration = hrtime_duration(self.start_time, resolved)
        if duration.seconds < 0:
            logger.warning(
                "Inconsistent start and end time, startTime > endTime. "
                "Setting span duration to 0ms. start=%s end=%s",
                tuple(self.start_time),
                tuple(resolved),
            )
            resolved = self.start_time
            duration = ZERO

        self.end_time = resolved
        self.duration = duration
        self.state = SpanState.ENDED
        logger.debug(
            "%s input end_time=%r span end_time=%s duration=%s (%.3fms)",
            self.span_id,
            end_time,
            tuple(self.end_time),
            tuple(self.duration),
            hrtime_to_millis(self.duration),
        )

        if self._processor is None:
            return
        try:
            self._processor.on_end(self.to_model())
        except Exception:
            logger.debug("Failed to hand span %s to processor", self.span_id, exc_info=True)

    def to_model(self) -> SpanModel:
        """Freeze this span into an immutable SpanModel."""
        return SpanModel(
            trace_id=self.trace_id,
            span_id=self.span_id,
            parent_span_id=self.parent_span_id,
            name=self.name,
            kind=self.kind,
            status=self.status,
            status_message=self.status_message,
            start_time=self.start_time,
            end_time=self.end_time or self.start_time,
            duration=self.duration,
            attributes=dict(self.attributes),
            events=tuple(self._events.items()),
            dropped_events_count=self.dropped_events_count,
            service_name=self.service_name,
        )

    def __enter__(self) -> Span:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc is not None and self.is_recording:
            self.record_exception(exc)
        if not self.is_ended:
            self.end()

    def __repr__(self) -> str:
        return (
            f"Span(name={self.name!r}, trace_id={self.trace_id[:8]}..., "
            f"span_id={self.span_id[:8]}..., state={self.state.value})"
        )


class NonRecordingSpan:
    """Span stand-in returned when a span is not sampled or tracing is disabled.

    Carries identifiers so child spans stay in the same trace, and ignores
    every mutation.
    """

    __slots__ = ("trace_id", "span_id", "parent_span_id", "name")

    def __init__(
        self,
        name: str,
        trace_id: str,
        span_id: str,
        parent_span_id: str | None = None,
    ) -> None:
        self.name = name
        self.trace_id = trace_id
        self.span_id = span_id
        self.parent_span_id = parent_span_id

    is_recording = False
    is_ended = False

    def set_attribute(self, key: str, value: Any) -> NonRecordingSpan:
        return self

    def set_attributes(self, attributes: Mapping[str, Any]) -> NonRecordingSpan:
        return self

    def set_status(self, status: SpanStatus, message: str | None = None) -> NonRecordingSpan:
        return self

    def add_event(self, name: str, attributes_or_time: Any = None, time: Any = None) -> NonRecordingSpan:
        return self

    def record_exception(self, exc: BaseException, time: Any = None) -> NonRecordingSpan:
        return self

    def end(self, end_time: Any = None) -> None:
        pass

    def __enter__(self) -> NonRecordingSpan:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        pass

    def __repr__(self) -> str:
        return f"NonRecordingSpan(name={self.name!r}, span_id={self.span_id[:8]}...)"


class Tracer:
    """Creates spans, wiring in identifiers, sampling and the time resolver.

    Access the process-wide tracer via Tracer.get_tracer(), or construct one
    with an explicit clock and processor for tests and tools.

    Args:
        clock: Clock for all spans. Defaults to the process clock.
        processor: Span processor. Defaults to the configured global processor.
        config: Configuration. Defaults to the global config.
        sampler: ``sampler(trace_id, name, attributes) -> bool``; False means
            the span is not recorded. Defaults to recording everything.
        resolver_factory: Time resolver strategy for new spans.
    """

    _instance: Tracer | None = None

    def __init__(
        self,
        clock: ClockSource | None = None,
        processor: SpanProcessor | None = None,
        config: DriftSpanConfig | None = None,
        sampler: Sampler | None = None,
        resolver_factory: ResolverFactory = SpanTimeResolver,
    ) -> None:
        self._config = config or get_config()
        self._clock = clock
        self._processor = processor
        self._sampler = sampler
        self._resolver_factory = resolver_factory

    @classmethod
    def get_tracer(cls) -> Tracer:
        """Return the singleton Tracer instance."""
        if cls._instance is None:
            cls._instance = Tracer()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton. Primarily for testing."""
        cls._instance = None

    @property
    def clock(self) -> ClockSource:
        return self._clock or get_clock()

    @property
    def processor(self) -> SpanProcessor:
        return self._processor or get_processor()

    def start_span(
        self,
        name: str,
        start_time: Any = None,
        attributes: Mapping[str, Any] | None = None,
        kind: SpanKind = SpanKind.INTERNAL,
        parent: Span | NonRecordingSpan | None = None,
        root: bool = False,
    ) -> Span | NonRecordingSpan:
        """Create and return a new span.

        Args:
            name: Operation name.
            start_time: Optional start time input.
            attributes: Initial attributes (sanitized).
            kind: Span kind.
            parent: Explicit parent. If None, the current context span is used.
            root: Start a new trace even if a parent is active.

        Returns:
            A recording Span, or a NonRecordingSpan when tracing is disabled or
            the sampler declines the span.
        """
        if root:
            parent = None
        elif parent is None:
            parent = get_current_span()

        if parent is not None:
            trace_id = parent.trace_id
            parent_span_id: str | None = parent.span_id
        else:
            trace_id = generate_trace_id()
            parent_span_id = None
        span_id = generate_span_id()

        if not self._config.enabled:
            logger.debug("Tracing disabled, returning non-recording span for %r", name)
            return NonRecordingSpan(name, trace_id, span_id, parent_span_id)

        attrs = sanitize_attributes(attributes, self._config.attribute_value_length_limit)
        if self._sampler is not None and not self._sampler(trace_id, name, attrs):
            logger.debug("Recording is off, propagating context in a non-recording span")
            return NonRecordingSpan(name, trace_id, span_id, parent_span_id)

        return Span(
            name,
            clock=self.clock,
            processor=self.processor,
            trace_id=trace_id,
            span_id=span_id,
            parent_span_id=parent_span_id,
            kind=kind,
            start_time=start_time,
            attributes=attrs,
            event_count_limit=self._config.event_count_limit,
            attribute_value_length_limit=self._config.attribute_value_length_limit,
            service_name=self._config.service_name,
            resolver_factory=self._resolver_factory,
        )

    @contextmanager
    def start_as_current_span(
        self, name: str, **kwargs: Any
    ) -> Generator[Span | NonRecordingSpan, None, None]:
        """Start a span, make it current for the block, and end it on exit.

        An exception escaping the block is recorded on the span and re-raised.
        """
        span = self.start_span(name, **kwargs)
        with span_context(span):
            try:
                yield span
            except Exception as exc:
                span.record_exception(exc)
                raise
            finally:
                span.end()
