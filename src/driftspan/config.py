# Copyright 2026 DriftSpan Contributors
# SPDX-License-Identifier: Apache-2.0

"""DriftSpan configuration loaded from environment variables.

All configuration is read from DRIFTSPAN_* environment variables with sensible defaults.
The config singleton is initialized once and reused until reset_config() is called.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

EXPORTERS = ("console", "memory", "none")


def _env(key: str, default: str = "") -> str:
    """Read an environment variable with a default."""
    return os.environ.get(key, default)


def _env_bool(key: str, default: bool = True) -> bool:
    """Read a boolean environment variable."""
    val = os.environ.get(key)
    if val is None:
        return default
    return val.lower() in ("true", "1", "yes")


def _env_int(key: str, default: int = 0) -> int:
    """Read an integer environment variable."""
    val = os.environ.get(key)
    if val is None:
        return default
    try:
        return int(val)
    except ValueError:
        return default


def _env_limit(key: str) -> int | None:
    """Read a non-negative limit. Unset, empty or invalid values mean "no limit"."""
    val = os.environ.get(key)
    if not val:
        return None
    try:
        limit = int(val)
    except ValueError:
        return None
    return limit if limit >= 0 else None


@dataclass(frozen=True)
class DriftSpanConfig:
    """Immutable configuration read from environment variables.

    Attributes:
        enabled: Master switch. When off, the tracer hands out non-recording spans.
        service_name: Logical service name tagged on every exported span.
        event_count_limit: Maximum events kept per span (None = unlimited, 0 = none).
        attribute_value_length_limit: Maximum length of string attribute values.
        drift_ms: Initial drift applied by the DriftSimulator.
        readout_interval_ms: Period of the drift readout.
        exporter: Default exporter: "console", "memory" or "none".
        max_finished_spans: Capacity of the in-memory exporter.
        log_level: Python logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        debug: Enable verbose stderr logging for library internals.
    """

    enabled: bool = True
    service_name: str = "default"
    event_count_limit: int | None = None
    attribute_value_length_limit: int | None = None
    drift_ms: int = 0
    readout_interval_ms: int = 1000
    exporter: str = "console"
    max_finished_spans: int = 2048
    log_level: str = "INFO"
    debug: bool = False

    @classmethod
    def from_env(cls) -> DriftSpanConfig:
        """Create a config by reading DRIFTSPAN_* environment variables.

        Environment Variables:
            DRIFTSPAN_ENABLED: Default "true".
            DRIFTSPAN_SERVICE_NAME: Default "default".
            DRIFTSPAN_EVENT_COUNT_LIMIT: Default unset (unlimited).
            DRIFTSPAN_ATTRIBUTE_VALUE_LENGTH_LIMIT: Default unset (unlimited).
            DRIFTSPAN_DRIFT: Default 0. Milliseconds.
            DRIFTSPAN_READOUT_INTERVAL: Default 1000. Milliseconds.
            DRIFTSPAN_EXPORTER: Default "console".
            DRIFTSPAN_MAX_FINISHED_SPANS: Default 2048.
            DRIFTSPAN_LOG_LEVEL: Default "INFO".
            DRIFTSPAN_DEBUG: Default "false".
        """
        exporter = _env("DRIFTSPAN_EXPORTER", "console").lower()
        if exporter not in EXPORTERS:
            exporter = "console"
        interval = _env_int("DRIFTSPAN_READOUT_INTERVAL", 1000)
        return cls(
            enabled=_env_bool("DRIFTSPAN_ENABLED", True),
            service_name=_env("DRIFTSPAN_SERVICE_NAME", "default"),
            event_count_limit=_env_limit("DRIFTSPAN_EVENT_COUNT_LIMIT"),
            attribute_value_length_limit=_env_limit("DRIFTSPAN_ATTRIBUTE_VALUE_LENGTH_LIMIT"),
            drift_ms=_env_int("DRIFTSPAN_DRIFT", 0),
            readout_interval_ms=interval if interval > 0 else 1000,
            exporter=exporter,
            max_finished_spans=_env_int("DRIFTSPAN_MAX_FINISHED_SPANS", 2048),
            log_level=_env("DRIFTSPAN_LOG_LEVEL", "INFO").upper(),
            debug=_env_bool("DRIFTSPAN_DEBUG", False),
        )


# ---------------------------------------------------------------------------
# Module-level singleton
# ---------------------------------------------------------------------------

_config: DriftSpanConfig | None = None


def get_config() -> DriftSpanConfig:
    """Return the global DriftSpanConfig singleton (lazy-initialized from env)."""
    global _config
    if _config is None:
        _config = DriftSpanConfig.from_env()
    return _config


def reset_config() -> None:
    """Reset the global config singleton. Primarily useful for testing."""
    global _config
    _config = None
