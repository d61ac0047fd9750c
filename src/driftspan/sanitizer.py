# Copyright 2026 DriftSpan Contributors
# SPDX-License-Identifier: Apache-2.0

"""Attribute sanitizer applied to span and event attributes.

Only primitive values survive: str, bool, int, float, or a homogeneous
list/tuple of one of those (None entries allowed). Entries with an empty or
non-string key, or an unsupported value, are dropped with a warning. String
values are truncated to the configured length limit.

Usage:
    from driftspan.sanitizer import sanitize_attributes

    clean = sanitize_attributes({"http.status": 200, "bad": object()})
    # {"http.status": 200}
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

logger = logging.getLogger("driftspan")

_PRIMITIVES = (str, bool, int, float)


def _truncate(value: Any, limit: int | None) -> Any:
    if limit is not None and isinstance(value, str) and len(value) > limit:
        return value[:limit]
    return value


def is_attribute_value(value: Any) -> bool:
    """True if value is a primitive or a homogeneous sequence of primitives."""
    if isinstance(value, _PRIMITIVES):
        return True
    if not isinstance(value, (list, tuple)):
        return False

    element_type: type | None = None
    for element in value:
        if element is None:
            continue
        if not isinstance(element, _PRIMITIVES):
            return False
        if element_type is None:
            element_type = type(element)
        elif type(element) is not element_type:
            return False
    return True


def sanitize_attributes(
    attributes: Mapping[str, Any] | None,
    value_length_limit: int | None = None,
) -> dict[str, Any]:
    """Return a new dict holding only the valid attribute entries.

    Args:
        attributes: Raw attributes (may be None).
        value_length_limit: Maximum length of string values, or None.

    Returns:
        Sanitized copy. Sequence values are copied into lists.
    """
    if not attributes:
        return {}

    result: dict[str, Any] = {}
    for key, value in attributes.items():
        if not isinstance(key, str) or not key:
            logger.warning("Invalid attribute key: %r", key)
            continue
        if not is_attribute_value(value):
            logger.warning("Invalid attribute value set for key: %s", key)
            continue
        if isinstance(value, (list, tuple)):
            result[key] = [_truncate(v, value_length_limit) for v in value]
        else:
            result[key] = _truncate(value, value_length_limit)
    return result
