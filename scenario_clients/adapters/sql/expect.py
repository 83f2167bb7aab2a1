from __future__ import annotations

from typing import Any, Callable

from scenario_clients.shared.containment import find_mismatch
from scenario_clients.shared.expect import CollectionMixin, E, ResultExpectation, expectation_for

from .results import SqlQueryResult


@expectation_for(SqlQueryResult)
class SqlQueryExpectation(CollectionMixin, ResultExpectation):
    subject = "query"
    noun = "rows"

    def _items(self) -> Any:
        return self._result.rows

    def rows(self: E, expected: int) -> E:
        return self.count(expected)

    def rows_at_least(self: E, minimum: int) -> E:
        return self.count_at_least(minimum)

    def rows_at_most(self: E, maximum: int) -> E:
        return self.count_at_most(maximum)

    def _row_count(self) -> int:
        self._require_payload("row_count")
        return self._result.row_count or 0

    def row_count(self: E, expected: int) -> E:
        actual = self._row_count()
        if actual != expected:
            self._fail(f"Expected row_count {expected}, got {actual}")
        return self

    def row_count_at_least(self: E, minimum: int) -> E:
        actual = self._row_count()
        if actual < minimum:
            self._fail(f"Expected row_count >= {minimum}, got {actual}")
        return self

    def row_count_at_most(self: E, maximum: int) -> E:
        actual = self._row_count()
        if actual > maximum:
            self._fail(f"Expected row_count <= {maximum}, got {actual}")
        return self

    def row_contains(self: E, subset: dict[str, Any]) -> E:
        return self._any_contains(self._collection(), subset, "row")

    def row_match(self: E, matcher: Callable[[Any], Any]) -> E:
        matcher(self._collection())
        return self

    def map_contains(self: E, fn: Callable[[dict[str, Any]], Any], subset: Any) -> E:
        self._collection()
        mapped = self._result.map(fn)
        for item in mapped:
            if find_mismatch(item, subset) is None:
                return self
        self._fail(f"No mapped row contains {subset!r}")
        return self

    def map_match(self: E, fn: Callable[[dict[str, Any]], Any], matcher: Callable[[Any], Any]) -> E:
        self._collection()
        matcher(self._result.map(fn))
        return self

    def as_contains(self: E, cls: Callable[..., Any], subset: Any) -> E:
        self._collection()
        for item in self._result.as_type(cls):
            if find_mismatch(item, subset) is None:
                return self
        self._fail(f"No {getattr(cls, '__name__', 'mapped')} instance contains {subset!r}")
        return self

    def as_match(self: E, cls: Callable[..., Any], matcher: Callable[[Any], Any]) -> E:
        self._collection()
        matcher(self._result.as_type(cls))
        return self

    def last_insert_id(self: E, expected: Any) -> E:
        self._require_payload("last_insert_id")
        actual = self._result.last_insert_id
        if actual != expected:
            self._fail(f"Expected last_insert_id {expected!r}, got {actual!r}")
        return self

    def has_last_insert_id(self: E) -> E:
        self._require_payload("last_insert_id")
        if self._result.last_insert_id is None:
            self._fail("Expected last_insert_id to be set, but it is None")
        return self
