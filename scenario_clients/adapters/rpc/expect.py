from __future__ import annotations

import re
from typing import Any, Callable

from scenario_clients.shared.containment import find_mismatch
from scenario_clients.shared.expect import E, ResultExpectation, expectation_for

from .errors import StatusCode, status_name
from .results import RpcResult


@expectation_for(RpcResult)
class RpcExpectation(ResultExpectation):
    subject = "call"

    def code(self: E, expected: StatusCode | int) -> E:
        actual = self._result.code
        if actual != expected:
            got = status_name(actual) if actual is not None else None
            self._fail(f"Expected status {status_name(expected)}, got {got}")
        return self

    def _message(self) -> Any:
        self._require_payload("a response message")
        return self._result.message

    def message_contains(self: E, subset: Any) -> E:
        reason = find_mismatch(self._message(), subset)
        if reason is not None:
            self._fail(f"Response does not contain expected subset: {reason}")
        return self

    def message_match(self: E, matcher: Callable[[Any], Any]) -> E:
        matcher(self._message())
        return self

    def metadata_contains(self: E, subset: dict[str, Any]) -> E:
        reason = find_mismatch(self._result.metadata, subset)
        if reason is not None:
            self._fail(f"Metadata does not contain expected subset: {reason}")
        return self

    def error_message_matches(self: E, pattern: str) -> E:
        error = self._result.error
        if error is None or re.search(pattern, error.message) is None:
            actual = error.message if error else None
            self._fail(f"Expected error message matching {pattern!r}, got {actual!r}")
        return self
