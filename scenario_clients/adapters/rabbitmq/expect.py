from __future__ import annotations

from typing import Any

from scenario_clients.shared.containment import find_mismatch
from scenario_clients.shared.expect import E, ResultExpectation, expectation_for

from .results import RabbitMqConsumeResult, RabbitMqMessage, RabbitMqQueueResult


@expectation_for(RabbitMqConsumeResult)
class MessageExpectation(ResultExpectation):
    subject = "consume"

    def _message(self) -> RabbitMqMessage:
        self._require_payload("a message")
        message = self._result.message
        if message is None:
            self._fail("Expected a message, but the queue was empty")
        return message

    def has_content(self: E) -> E:
        self._message()
        return self

    def no_content(self: E) -> E:
        self._require_payload("no message")
        if self._result.message is not None:
            self._fail(f"Expected no message, got {self._result.message.body[:100]!r}")
        return self

    def body_contains(self: E, needle: str | bytes) -> E:
        body = self._message().body
        expected = needle.encode() if isinstance(needle, str) else needle
        if expected not in body:
            self._fail(f"Expected message body to contain {needle!r}")
        return self

    def json_contains(self: E, subset: Any) -> E:
        message = self._message()
        try:
            payload = message.json()
        except ValueError as exc:
            self._fail(f"Expected a JSON message body: {exc}")
        reason = find_mismatch(payload, subset)
        if reason is not None:
            self._fail(f"Message JSON does not contain expected subset: {reason}")
        return self

    def property_contains(self: E, subset: dict[str, Any]) -> E:
        reason = find_mismatch(self._message().properties, subset)
        if reason is not None:
            self._fail(f"Message properties do not contain expected subset: {reason}")
        return self


@expectation_for(RabbitMqQueueResult)
class QueueExpectation(ResultExpectation):
    subject = "queue operation"

    def message_count(self: E, expected: int) -> E:
        self._require_payload("message_count")
        actual = self._result.message_count
        if actual != expected:
            self._fail(f"Expected {expected} messages, got {actual}")
        return self
