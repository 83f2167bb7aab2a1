from __future__ import annotations

from typing import Any, Callable

from scenario_clients.shared.containment import find_mismatch
from scenario_clients.shared.expect import E, ResultExpectation, expectation_for

from .results import HttpResponseResult


@expectation_for(HttpResponseResult)
class HttpResponseExpectation(ResultExpectation):
    """Assertions over the response envelope; they also work on non-2xx failures."""

    subject = "request"

    def _response(self) -> HttpResponseResult:
        if self._result.status is None:
            message = self._result.error.message if self._result.error else "no response"
            self._fail(f"Expected a response, but the request failed: {message}")
        return self._result

    def status(self: E, expected: int) -> E:
        actual = self._response().status
        if actual != expected:
            self._fail(f"Expected status {expected}, got {actual}")
        return self

    def status_in_range(self: E, low: int, high: int) -> E:
        actual = self._response().status
        if not low <= actual <= high:
            self._fail(f"Expected status in {low}-{high}, got {actual}")
        return self

    def header(self: E, name: str, expected: str) -> E:
        actual = self._response().headers.get(name)
        if actual != expected:
            self._fail(f"Expected header {name}: {expected!r}, got {actual!r}")
        return self

    def header_exists(self: E, name: str) -> E:
        if name not in self._response().headers:
            self._fail(f"Expected header {name} to be present")
        return self

    def content_type(self: E, expected: str) -> E:
        actual = self._response().content_type or ""
        if expected not in actual:
            self._fail(f"Expected content type {expected!r}, got {actual!r}")
        return self

    def has_content(self: E) -> E:
        if self._response().body is None:
            self._fail("Expected a response body, got none")
        return self

    def no_content(self: E) -> E:
        body = self._response().body
        if body is not None:
            self._fail(f"Expected no response body, got {len(body)} bytes")
        return self

    def text_contains(self: E, needle: str) -> E:
        text = self._response().text() or ""
        if needle not in text:
            self._fail(f"Expected body to contain {needle!r}")
        return self

    def _json(self) -> Any:
        try:
            return self._response().json()
        except ValueError as exc:
            self._fail(f"Expected a JSON body: {exc}")

    def json_contains(self: E, subset: Any) -> E:
        reason = find_mismatch(self._json(), subset)
        if reason is not None:
            self._fail(f"JSON body does not contain expected subset: {reason}")
        return self

    def json_match(self: E, matcher: Callable[[Any], Any]) -> E:
        matcher(self._json())
        return self
