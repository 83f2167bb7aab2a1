from __future__ import annotations

from typing import Any, Callable

from scenario_clients.shared.expect import CollectionMixin, E, ResultExpectation, ValueExpectation, expectation_for

from .results import KvAtomicResult, KvDeleteResult, KvGetResult, KvListResult, KvSetResult


@expectation_for(KvGetResult, KvSetResult, KvDeleteResult, KvAtomicResult)
class KvExpectation(ValueExpectation):
    subject = "operation"

    def has_versionstamp(self: E) -> E:
        self._require_payload("a versionstamp")
        if self._result.versionstamp is None:
            self._fail("Expected a versionstamp, but versionstamp is None")
        return self

    def versionstamp(self: E, expected: str) -> E:
        self._require_payload("a versionstamp")
        actual = self._result.versionstamp
        if actual != expected:
            self._fail(f"Expected versionstamp {expected!r}, got {actual!r}")
        return self

    def failed_checks(self: E, *keys: Any) -> E:
        if not hasattr(self._result, "failed_checks"):
            self._fail(f"Expected an atomic commit result, got {self._result.kind}")
        actual = tuple(self._result.failed_checks or ())
        expected = tuple(tuple(key) for key in keys)
        if actual != expected:
            self._fail(f"Expected failed checks {expected!r}, got {actual!r}")
        return self


@expectation_for(KvListResult)
class KvListExpectation(CollectionMixin, ResultExpectation):
    subject = "list"
    noun = "entries"

    def _items(self) -> Any:
        return self._result.entries

    def entry_contains(self: E, subset: Any) -> E:
        return self._any_contains(self._collection(), subset, "entry")

    def entry_match(self: E, matcher: Callable[[Any], Any]) -> E:
        matcher(self._collection())
        return self
