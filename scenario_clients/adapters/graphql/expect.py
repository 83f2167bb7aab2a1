from __future__ import annotations

from typing import Any, Callable, Mapping

from scenario_clients.shared.containment import find_mismatch
from scenario_clients.shared.expect import E, ResultExpectation, expectation_for

from .results import GraphqlResult


@expectation_for(GraphqlResult)
class GraphqlExpectation(ResultExpectation):
    subject = "query"

    def _errors(self) -> list[dict[str, Any]]:
        return self._result.errors or []

    def data_contains(self: E, subset: Any) -> E:
        reason = find_mismatch(self._result.data, subset)
        if reason is not None:
            self._fail(f"Data does not contain expected subset: {reason}")
        return self

    def data_match(self: E, matcher: Callable[[Any], Any]) -> E:
        matcher(self._result.data)
        return self

    def has_errors(self: E) -> E:
        if not self._errors():
            self._fail("Expected GraphQL errors, got none")
        return self

    def no_errors(self: E) -> E:
        errors = self._errors()
        if errors:
            self._fail(f"Expected no GraphQL errors, got {len(errors)}: {errors[0].get('message')}")
        return self

    def error_count(self: E, expected: int) -> E:
        actual = len(self._errors())
        if actual != expected:
            self._fail(f"Expected {expected} errors, got {actual}")
        return self

    def error_contains(self: E, expected: str | Mapping[str, Any]) -> E:
        """A message substring, or a subset that one error object must contain."""
        errors = self._errors()
        if isinstance(expected, str):
            if not any(expected in str(error.get("message", "")) for error in errors):
                self._fail(f"Expected an error message containing {expected!r}")
            return self
        return self._first_containing(errors, expected)

    def _first_containing(self: E, errors: list[dict[str, Any]], subset: Mapping[str, Any]) -> E:
        for error in errors:
            if find_mismatch(error, subset) is None:
                return self
        self._fail(f"No error contains {dict(subset)!r}")
        return self
