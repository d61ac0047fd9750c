# Copyright 2026 DriftSpan Contributors
# SPDX-License-Identifier: Apache-2.0

"""In-process current-span tracking.

Uses ``contextvars`` to keep a per-task stack of active spans so that spans
started inside ``span_context(parent)`` pick up the parent's trace id and
span id. Nothing here crosses a process boundary.

Usage:
    with span_context(span):
        child = tracer.start_span("child")  # child.parent_span_id == span.span_id
"""

from __future__ import annotations

import contextvars
from contextlib import contextmanager
from typing import TYPE_CHECKING, Generator

if TYPE_CHECKING:
    from driftspan.tracer import Span

_span_stack_var: contextvars.ContextVar[tuple[Span, ...]] = contextvars.ContextVar(
    "driftspan_span_stack", default=()
)


def get_current_span() -> Span | None:
    """Return the currently active span, or None if no span is active."""
    stack = _span_stack_var.get()
    return stack[-1] if stack else None


def get_current_trace_id() -> str | None:
    """Return the trace id of the active span, or None."""
    current = get_current_span()
    return current.trace_id if current else None


@contextmanager
def span_context(span: Span) -> Generator[Span, None, None]:
    """Make ``span`` the current span for the duration of the block.

    Args:
        span: The span to make current.

    Yields:
        The same span, for convenience.
    """
    token = _span_stack_var.set(_span_stack_var.get() + (span,))
    try:
        yield span
    finally:
        _span_stack_var.reset(token)


def clear_context() -> None:
    """Reset the span stack. Primarily for testing."""
    _span_stack_var.set(())
