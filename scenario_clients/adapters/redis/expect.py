from __future__ import annotations

from collections.abc import Container, Mapping, Sized
from typing import Any

from scenario_clients.shared.expect import E, ValueExpectation, expectation_for

from .results import RedisResult


@expectation_for(RedisResult)
class RedisExpectation(ValueExpectation):
    """
    Value assertions plus size checks.  For ``redis:count`` results the size is
    the integer reply itself; for arrays and hashes it is their length.
    """

    subject = "command"

    def _size(self) -> int:
        value = self._value()
        if value is None:
            return 0
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, Sized):
            return len(value)
        self._fail(f"Expected a countable value, got {value!r}")
        return 0

    def has_content(self: E) -> E:
        value = self._value()
        if value is None or (isinstance(value, Sized) and len(value) == 0):
            self._fail(f"Expected a value, but value is {value!r}")
        return self

    def count(self: E, expected: int) -> E:
        actual = self._size()
        if actual != expected:
            self._fail(f"Expected count {expected}, got {actual}")
        return self

    def count_at_least(self: E, minimum: int) -> E:
        actual = self._size()
        if actual < minimum:
            self._fail(f"Expected count >= {minimum}, got {actual}")
        return self

    def count_at_most(self: E, maximum: int) -> E:
        actual = self._size()
        if actual > maximum:
            self._fail(f"Expected count <= {maximum}, got {actual}")
        return self

    def contains(self: E, item: Any) -> E:
        value = self._value()
        members = value.keys() if isinstance(value, Mapping) else value
        if not isinstance(members, Container) or isinstance(members, (str, bytes)) or item not in members:
            self._fail(f"Expected {value!r} to contain {item!r}")
        return self
