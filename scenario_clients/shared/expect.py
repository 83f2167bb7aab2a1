"""
Fluent assertion engine.

An expectation wraps exactly one result.  Every assertion re-reads the wrapped
result and either returns the same chain or raises ExpectationError with the
expected and actual values::

    expect(result).ok().rows(2).row_contains({"name": "Alice"}).duration_less_than(50)

Adapters register their expectation class for their result types with
``expectation_for``; ``expect()`` picks the most specific registration.
"""
from __future__ import annotations

from collections.abc import Sized
from typing import Any, Callable, TypeVar

from scenario_clients.shared.containment import find_mismatch
from scenario_clients.shared.errors import ErrorKind
from scenario_clients.shared.result import ClientResult, Outcome

E = TypeVar("E", bound="ResultExpectation")

_REGISTRY: dict[type, type["ResultExpectation"]] = {}


class ExpectationError(AssertionError):
    """Raised when an assertion in an expectation chain does not hold."""


def expectation_for(*result_types: type[ClientResult]) -> Callable[[type[E]], type[E]]:
    def register(cls: type[E]) -> type[E]:
        for result_type in result_types:
            _REGISTRY[result_type] = cls
        return cls

    return register


def expect(result: ClientResult) -> Any:
    """Return the expectation chain registered for ``type(result)``."""
    for klass in type(result).__mro__:
        if klass in _REGISTRY:
            return _REGISTRY[klass](result)
    return ResultExpectation(result)


class ResultExpectation:
    """Assertions available on every result kind."""

    subject = "operation"

    def __init__(self, result: ClientResult) -> None:
        self._result = result

    @property
    def result(self) -> ClientResult:
        return self._result

    def _fail(self, message: str) -> None:
        raise ExpectationError(message)

    def _describe_outcome(self) -> str:
        if self._result.error is not None:
            return f"{self._result.outcome.value} ({self._result.error.kind.value}: {self._result.error.message})"
        return self._result.outcome.value

    def _require_payload(self, what: str) -> None:
        if self._result.error is not None:
            self._fail(f"Expected {what}, but the {self.subject} failed: {self._result.error.message}")

    def ok(self: E) -> E:
        if not self._result.ok:
            self._fail(f"Expected {self.subject} to succeed, got {self._describe_outcome()}")
        return self

    def not_ok(self: E) -> E:
        if self._result.ok:
            self._fail(f"Expected {self.subject} to fail, but it succeeded")
        return self

    def check_failed(self: E) -> E:
        if self._result.outcome is not Outcome.check_failed:
            self._fail(f"Expected {self.subject} check to fail, got {self._describe_outcome()}")
        return self

    def error_kind(self: E, kind: ErrorKind | str) -> E:
        expected = ErrorKind(kind)
        error = self._result.error
        if error is None:
            self._fail(f"Expected {expected.value} error, but {self.subject} has no error")
        elif error.kind is not expected:
            self._fail(f"Expected {expected.value} error, got {error.kind.value}")
        return self

    def duration_less_than(self: E, ms: float) -> E:
        if self._result.duration >= ms:
            self._fail(f"Expected duration < {ms}ms, got {self._result.duration:.2f}ms")
        return self


class CollectionMixin:
    """Cardinality assertions over a collection-shaped payload."""

    noun = "items"

    def _items(self) -> Sized:
        raise NotImplementedError

    def _collection(self) -> Sized:
        self._require_payload(self.noun)  # type: ignore[attr-defined]
        items = self._items()
        return items if items is not None else ()

    def count(self: E, expected: int) -> E:
        actual = len(self._collection())
        if actual != expected:
            self._fail(f"Expected {expected} {self.noun}, got {actual}")
        return self

    def count_at_least(self: E, minimum: int) -> E:
        actual = len(self._collection())
        if actual < minimum:
            self._fail(f"Expected at least {minimum} {self.noun}, got {actual}")
        return self

    def count_at_most(self: E, maximum: int) -> E:
        actual = len(self._collection())
        if actual > maximum:
            self._fail(f"Expected at most {maximum} {self.noun}, got {actual}")
        return self

    def has_content(self: E) -> E:
        if len(self._collection()) == 0:
            self._fail(f"Expected {self.noun} to be present, got none")
        return self

    def no_content(self: E) -> E:
        actual = len(self._collection())
        if actual > 0:
            self._fail(f"Expected no {self.noun}, got {actual}")
        return self

    def _any_contains(self: E, items: Any, subset: Any, what: str) -> E:
        reasons = []
        for item in items:
            reason = find_mismatch(item, subset)
            if reason is None:
                return self
            reasons.append(reason)
        closest = f" (first mismatch: {reasons[0]})" if reasons else ""
        self._fail(f"No {what} contains {subset!r}{closest}")
        return self


class ValueExpectation(ResultExpectation):
    """Assertions for results carrying a single ``value`` (get-style results)."""

    subject = "operation"

    def _value(self) -> Any:
        self._require_payload("a value")
        return getattr(self._result, "value", None)

    def has_content(self: E) -> E:
        if self._value() is None:
            self._fail("Expected a value, but value is None")
        return self

    def no_content(self: E) -> E:
        value = self._value()
        if value is not None:
            self._fail(f"Expected no value, got {value!r}")
        return self

    def value(self: E, expected: Any) -> E:
        actual = self._value()
        if actual != expected:
            self._fail(f"Expected value {expected!r}, got {actual!r}")
        return self

    def value_contains(self: E, subset: Any) -> E:
        actual = self._value()
        reason = find_mismatch(actual, subset)
        if reason is not None:
            self._fail(f"Value does not contain expected subset: {reason}")
        return self

    def value_match(self: E, matcher: Callable[[Any], Any]) -> E:
        matcher(self._value())
        return self
