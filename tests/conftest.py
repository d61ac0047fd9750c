# Copyright 2026 DriftSpan Contributors
# SPDX-License-Identifier: Apache-2.0

"""Shared pytest fixtures for DriftSpan tests."""

import logging
import os

import pytest

from driftspan._internal.clock import ManualClock, reset_clock
from driftspan.config import DriftSpanConfig, reset_config
from driftspan.context import clear_context
from driftspan.exporter import InMemorySpanExporter, SimpleSpanProcessor, reset_processor
from driftspan.tracer import Tracer

ORIGIN_MS = 1_700_000_000_000


def _clear_env():
    for key in list(os.environ.keys()):
        if key.startswith("DRIFTSPAN_"):
            del os.environ[key]


def _reset_logger():
    driftspan_logger = logging.getLogger("driftspan")
    driftspan_logger.setLevel(logging.NOTSET)
    for handler in list(driftspan_logger.handlers):
        driftspan_logger.removeHandler(handler)


@pytest.fixture(autouse=True)
def reset_sdk():
    """Reset all singletons and DRIFTSPAN_* variables around each test."""
    clear_context()
    Tracer.reset()
    reset_config()
    reset_processor()
    reset_clock()
    _clear_env()
    yield
    clear_context()
    Tracer.reset()
    reset_config()
    reset_processor()
    reset_clock()
    _clear_env()
    _reset_logger()


@pytest.fixture
def clock():
    """Manual clock: origin 1_700_000_000_000ms, monotonic 1000ms, no skew."""
    return ManualClock(origin_ms=ORIGIN_MS, monotonic_ms=1000)


@pytest.fixture
def exporter():
    return InMemorySpanExporter()


@pytest.fixture
def make_tracer(clock, exporter):
    """Factory for tracers bound to the manual clock and in-memory exporter."""

    def _make(**config_overrides):
        return Tracer(
            clock=clock,
            processor=SimpleSpanProcessor(exporter),
            config=DriftSpanConfig(**config_overrides),
        )

    return _make


@pytest.fixture
def tracer(make_tracer):
    return make_tracer()


@pytest.fixture
def env_config():
    """Set up test environment variables."""
    os.environ.update({
        "DRIFTSPAN_SERVICE_NAME": "test-service",
        "DRIFTSPAN_EVENT_COUNT_LIMIT": "3",
        "DRIFTSPAN_DRIFT": "250",
        "DRIFTSPAN_READOUT_INTERVAL": "10",
        "DRIFTSPAN_EXPORTER": "memory",
    })
    reset_config()
    yield
    _clear_env()
    reset_config()
