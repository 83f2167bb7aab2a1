"""
Deep subset containment used by every ``*_contains`` assertion.

For each key of the expected mapping:

- a nested mapping is matched recursively against the actual value, which must
  itself be a mapping (or an object exposing the keys as attributes);
- anything else, lists included, is compared by equality of the whole value.

A missing key and a key holding None are reported differently, but both fail.
"""
from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from typing import Any

_MISSING = object()

_SCALARS = (str, bytes, bytearray, int, float, complex, bool, list, tuple, set, frozenset)


def _is_object_like(value: Any) -> bool:
    if value is None or isinstance(value, _SCALARS):
        return False
    return isinstance(value, Mapping) or dataclasses.is_dataclass(value) or hasattr(value, "__dict__")


def _lookup(actual: Any, key: Any) -> Any:
    if isinstance(actual, Mapping):
        return actual[key] if key in actual else _MISSING
    if isinstance(key, str):
        return getattr(actual, key, _MISSING)
    return _MISSING


def _equal(actual: Any, expected: Any) -> bool:
    # bool is an int subclass; True must not match 1.
    if isinstance(actual, bool) != isinstance(expected, bool):
        return False
    return actual == expected


def find_mismatch(actual: Any, expected: Any, path: str = "") -> str | None:
    """Describe the first containment failure, or return None if contained."""
    label = path or "value"

    if not isinstance(expected, Mapping):
        if _equal(actual, expected):
            return None
        return f"{label} is {actual!r}, expected {expected!r}"

    if not _is_object_like(actual):
        return f"{label} is {actual!r}, expected an object containing {dict(expected)!r}"

    for key, expected_value in expected.items():
        child = f"{path}.{key}" if path else str(key)
        actual_value = _lookup(actual, key)
        if actual_value is _MISSING:
            return f"missing key '{child}'"
        if actual_value is None and expected_value is not None:
            return f"'{child}' is None, expected {expected_value!r}"
        if isinstance(expected_value, Mapping):
            reason = find_mismatch(actual_value, expected_value, child)
            if reason is not None:
                return reason
        elif not _equal(actual_value, expected_value):
            return f"'{child}' is {actual_value!r}, expected {expected_value!r}"
    return None


def contains_subset(actual: Any, expected: Any) -> bool:
    """True when every key in ``expected`` is present in ``actual`` with an equal value."""
    return find_mismatch(actual, expected) is None
