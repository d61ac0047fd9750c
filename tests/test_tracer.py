# Copyright 2026 DriftSpan Contributors
# SPDX-License-Identifier: Apache-2.0

"""Tests for Tracer and the Span lifecycle."""

import pytest

from driftspan._internal.clock import ManualClock
from driftspan._internal.hrtime import ZERO, HrTime, millis_to_hrtime
from driftspan.config import DriftSpanConfig
from driftspan.context import get_current_span, span_context
from driftspan.drift import DriftSimulator
from driftspan.exporter import SimpleSpanProcessor, SpanProcessor
from driftspan.models import SpanKind, SpanState, SpanStatus
from driftspan.resolver import SpanTimeResolver
from driftspan.tracer import NonRecordingSpan, Span, Tracer

ORIGIN_MS = 1_700_000_000_000


def test_tracer_singleton():
    """Test that Tracer is a singleton."""
    t1 = Tracer.get_tracer()
    t2 = Tracer.get_tracer()
    assert t1 is t2


def test_span_creation(tracer):
    span = tracer.start_span("test.operation")

    assert span.name == "test.operation"
    assert len(span.trace_id) == 32
    assert len(span.span_id) == 16
    assert span.status == SpanStatus.UNSET
    assert span.state is SpanState.RECORDING
    assert span.is_recording
    assert not span.is_ended


def test_clock_derived_start(tracer):
    """Origin 1.7e12, monotonic 1000, no drift: start is origin + 1000."""
    span = tracer.start_span("test")
    assert span.start_time == millis_to_hrtime(1_700_000_001_000)
    assert span.provided_start is False


def test_duration_unaffected_by_drift_change(tracer, clock):
    """Six hours of drift injected mid-span leaves a 500ms duration alone."""
    simulator = DriftSimulator(clock, drift=0)
    span = tracer.start_span("test")

    simulator.set_drift(21_600_000)
    clock.advance(500)
    span.end()

    assert span.duration == HrTime(0, 500_000_000)


@pytest.fixture
def uptime_tracer(exporter):
    """Tracer on a clock that has been running for 10s, so recent wall times stay above the origin."""
    clock = ManualClock(origin_ms=ORIGIN_MS, monotonic_ms=10_000)
    return Tracer(clock=clock, processor=SimpleSpanProcessor(exporter)), clock


def test_end_before_start_is_clamped(uptime_tracer, caplog):
    tracer, clock = uptime_tracer
    now = clock.wall_now()
    span = tracer.start_span("test", start_time=now - 1000)

    with caplog.at_level("WARNING", logger="driftspan"):
        span.end(now - 2000)

    assert span.start_time == millis_to_hrtime(ORIGIN_MS + 9000)
    assert span.end_time == span.start_time
    assert span.duration == ZERO
    assert "Inconsistent start and end time" in caplog.text


def test_explicit_start_and_end_in_the_past(uptime_tracer):
    tracer, clock = uptime_tracer
    now = clock.wall_now()
    span = tracer.start_span("test", start_time=now - 2000)
    span.end(now - 1000)

    assert span.provided_start is True
    assert span.start_time == millis_to_hrtime(ORIGIN_MS + 8000)
    assert span.end_time == millis_to_hrtime(ORIGIN_MS + 9000)
    assert span.duration == HrTime(1, 0)


def test_recent_wall_time_below_origin_reads_as_monotonic(tracer, clock):
    """Wall times older than the origin are misread as monotonic-relative values."""
    clock.jump_wall(300)
    span = tracer.start_span("test", start_time=clock.wall_now() - 2000)

    assert span.start_time == millis_to_hrtime(ORIGIN_MS + (ORIGIN_MS - 700) + 300)


@pytest.mark.parametrize(
    "bad_time",
    [(float("nan"), 0), (float("inf"), 0), (0, float("-inf")), [1, float("nan")]],
)
def test_non_finite_pairs_are_treated_as_absent(tracer, clock, bad_time):
    span = tracer.start_span("test", start_time=bad_time)
    assert span.provided_start is False
    assert span.start_time == millis_to_hrtime(ORIGIN_MS + 1000)

    clock.advance(50)
    span.add_event("shorthand", bad_time)
    span.add_event("explicit", {"k": 1}, bad_time)
    clock.advance(50)
    span.end(bad_time)

    assert [e.time for e in span.events] == [millis_to_hrtime(ORIGIN_MS + 1050)] * 2
    assert span.events[0].attributes == {}
    assert span.duration == HrTime(0, 100_000_000)


def test_event_limit_keeps_most_recent(make_tracer, caplog):
    span = make_tracer(event_count_limit=2).start_span("test")

    with caplog.at_level("WARNING", logger="driftspan"):
        span.add_event("A")
        span.add_event("B")
        span.add_event("C")

    assert [e.name for e in span.events] == ["B", "C"]
    assert span.dropped_events_count == 1
    assert "Dropping extra events." in caplog.text


def test_event_limit_zero_drops_everything(make_tracer, caplog):
    span = make_tracer(event_count_limit=0).start_span("test")

    with caplog.at_level("WARNING", logger="driftspan"):
        span.add_event("A")

    assert span.events == []
    assert "No events allowed." in caplog.text


def test_event_list_never_exceeds_bound(make_tracer):
    span = make_tracer(event_count_limit=5).start_span("test")
    for i in range(20):
        span.add_event(f"e{i}")
        assert len(span.events) <= 5
    assert [e.name for e in span.events] == [f"e{i}" for i in range(15, 20)]


def test_second_end_is_noop(tracer, clock, exporter, caplog):
    span = tracer.start_span("test")
    clock.advance(100)
    span.end()
    first_end, first_duration = span.end_time, span.duration

    clock.advance(900)
    with caplog.at_level("ERROR", logger="driftspan"):
        span.end()

    assert span.end_time == first_end
    assert span.duration == first_duration == HrTime(0, 100_000_000)
    assert "You can only call end() on a span once." in caplog.text
    assert len(exporter.get_finished_spans()) == 1
    assert exporter.get_finished_spans()[0].duration == first_duration


def test_add_event_times(tracer, clock):
    span = tracer.start_span("test")
    clock.advance(40)
    span.add_event("first", {"detail": "info"})
    span.add_event("second", ORIGIN_MS + 5000)
    span.add_event("third", {"k": 1}, ORIGIN_MS + 6000)

    first, second, third = span.events
    assert first.time == millis_to_hrtime(1_700_000_001_040)
    assert first.attributes == {"detail": "info"}
    assert second.time == millis_to_hrtime(ORIGIN_MS + 5000)
    assert second.attributes == {}
    assert third.time == millis_to_hrtime(ORIGIN_MS + 6000)
    assert third.attributes == {"k": 1}


def test_add_event_after_end_is_ignored(tracer):
    span = tracer.start_span("test")
    span.end()
    span.add_event("late")
    assert span.events == []


def test_set_attribute_sanitizes(tracer):
    span = tracer.start_span("test", attributes={"initial": True, "bad": object()})
    span.set_attribute("key1", "value1")
    span.set_attribute("key2", 123)
    span.set_attribute("", "dropped")

    assert span.attributes == {"initial": True, "key1": "value1", "key2": 123}


def test_mutation_after_end_ignored(tracer, caplog):
    span = tracer.start_span("test")
    span.end()

    with caplog.at_level("WARNING", logger="driftspan"):
        span.set_attribute("late", "value")
        span.set_status(SpanStatus.ERROR)

    assert "late" not in span.attributes
    assert span.status == SpanStatus.UNSET
    assert "ended span" in caplog.text


def test_record_exception(tracer):
    span = tracer.start_span("test")

    try:
        raise ValueError("test error")
    except ValueError as e:
        span.record_exception(e)

    assert span.status == SpanStatus.ERROR
    assert span.status_message == "test error"
    assert span.events[0].name == "exception"
    assert span.events[0].attributes["exception.type"] == "ValueError"


def test_end_hands_model_to_processor(tracer, clock, exporter):
    span = tracer.start_span("test.span", kind=SpanKind.CLIENT, attributes={"http.method": "GET"})
    clock.advance(250)
    span.add_event("sent")
    span.end()

    [model] = exporter.get_finished_spans()
    assert model.span_id == span.span_id
    assert model.kind is SpanKind.CLIENT
    assert model.start_time == span.start_time
    assert model.end_time == span.end_time
    assert model.duration_us == 250_000
    assert model.attributes == {"http.method": "GET"}
    assert [e.name for e in model.events] == ["sent"]


def test_processor_failure_does_not_propagate(clock):
    class BrokenProcessor(SpanProcessor):
        def on_end(self, span):
            raise RuntimeError("boom")

    tracer = Tracer(clock=clock, processor=BrokenProcessor(), config=DriftSpanConfig())
    span = tracer.start_span("test")
    span.end()
    assert span.is_ended


def test_span_without_processor(clock):
    span = Span("standalone", clock=clock)
    clock.advance(10)
    span.end()
    assert span.duration == HrTime(0, 10_000_000)


def test_custom_resolver_factory(clock):
    class FixedResolver(SpanTimeResolver):
        def resolve(self, time_input=None):
            return HrTime(self.start_time.seconds + 1, self.start_time.nanos)

    tracer = Tracer(
        clock=clock,
        processor=SpanProcessor(),
        config=DriftSpanConfig(),
        resolver_factory=FixedResolver,
    )
    span = tracer.start_span("test")
    span.end()
    assert span.duration == HrTime(1, 0)


def test_sampler_declines(clock):
    seen = []

    def sampler(trace_id, name, attributes):
        seen.append((trace_id, name, attributes))
        return False

    tracer = Tracer(clock=clock, processor=SpanProcessor(), config=DriftSpanConfig(), sampler=sampler)
    span = tracer.start_span("test", attributes={"a": 1})

    assert isinstance(span, NonRecordingSpan)
    assert not span.is_recording
    assert seen[0][1:] == ("test", {"a": 1})
    span.add_event("ignored")
    span.end()


def test_disabled_returns_non_recording(make_tracer):
    span = make_tracer(enabled=False).start_span("test")
    assert isinstance(span, NonRecordingSpan)


def test_parent_child_linking(tracer):
    parent = tracer.start_span("parent")
    with span_context(parent):
        child = tracer.start_span("child")
        root = tracer.start_span("root", root=True)

    assert child.parent_span_id == parent.span_id
    assert child.trace_id == parent.trace_id
    assert root.parent_span_id is None
    assert root.trace_id != parent.trace_id


def test_start_as_current_span(tracer, exporter):
    with tracer.start_as_current_span("outer") as outer:
        assert get_current_span() is outer
        with tracer.start_as_current_span("inner") as inner:
            assert inner.parent_span_id == outer.span_id

    assert get_current_span() is None
    assert [s.name for s in exporter.get_finished_spans()] == ["inner", "outer"]


def test_start_as_current_span_records_exception(tracer, exporter):
    with pytest.raises(KeyError):
        with tracer.start_as_current_span("failing"):
            raise KeyError("missing")

    [model] = exporter.get_finished_spans()
    assert model.status == SpanStatus.ERROR
    assert model.events[0].name == "exception"


def test_span_context_manager(tracer):
    with tracer.start_span("test") as span:
        pass
    assert span.is_ended


@pytest.mark.parametrize(
    "start_input,end_input",
    [
        (None, ORIGIN_MS),
        (None, 5),
        (ORIGIN_MS + 5000, ORIGIN_MS),
        ((1_700_000_010, 0), (1_700_000_000, 999_999_999)),
        (None, None),
    ],
)
def test_duration_never_negative(tracer, clock, start_input, end_input):
    clock.jump_wall(3000)
    span = tracer.start_span("test", start_time=start_input)
    span.end(end_input)
    assert span.duration.seconds >= 0
    assert 0 <= span.duration.nanos < 1_000_000_000
    assert 0 <= span.end_time.nanos < 1_000_000_000
