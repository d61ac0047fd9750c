# Copyright 2026 DriftSpan Contributors
# SPDX-License-Identifier: Apache-2.0

"""Tests for attribute sanitization."""

from driftspan.sanitizer import is_attribute_value, sanitize_attributes


def test_primitives_kept():
    attrs = {"s": "text", "b": False, "i": 3, "f": 1.5}
    assert sanitize_attributes(attrs) == attrs


def test_homogeneous_sequences_kept():
    result = sanitize_attributes({"list": [1, 2, None], "tuple": ("a", "b")})
    assert result == {"list": [1, 2, None], "tuple": ["a", "b"]}


def test_invalid_values_dropped(caplog):
    with caplog.at_level("WARNING", logger="driftspan"):
        result = sanitize_attributes({"ok": 1, "obj": object(), "mixed": [1, "a"], "none": None})

    assert result == {"ok": 1}
    assert "Invalid attribute value set for key: obj" in caplog.text


def test_invalid_keys_dropped():
    assert sanitize_attributes({"": 1, 5: "x", "k": "v"}) == {"k": "v"}


def test_empty_input():
    assert sanitize_attributes(None) == {}
    assert sanitize_attributes({}) == {}


def test_value_length_limit():
    result = sanitize_attributes({"s": "abcdef", "l": ["abcdef", "ab"], "i": 123456}, 3)
    assert result == {"s": "abc", "l": ["abc", "ab"], "i": 123456}


def test_input_not_modified():
    attrs = {"l": ("a",)}
    sanitize_attributes(attrs)
    assert attrs == {"l": ("a",)}


def test_is_attribute_value():
    assert is_attribute_value([])
    assert is_attribute_value([None, None])
    assert not is_attribute_value({"a": 1})
    assert not is_attribute_value([True, 1])
