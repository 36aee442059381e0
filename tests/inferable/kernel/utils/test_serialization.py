"""Tests for JSON-safety checks."""

from __future__ import annotations

import datetime

from inferable.kernel.utils.serialization import is_json_serializable


def test_plain_values_are_serializable() -> None:
    assert is_json_serializable({"text": "hi", "n": [1, 2.5, None, True]})


def test_non_json_values_are_rejected() -> None:
    assert not is_json_serializable(datetime.date(2024, 1, 1))
    assert not is_json_serializable({1: "int key"})
    assert not is_json_serializable({"fn": print})
