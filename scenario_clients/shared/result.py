"""
Uniform operation-result model.

Every adapter operation returns a ClientResult subclass.  The ``kind`` tag is a
class-level constant per operation category ("sql", "redis:get", "kv:atomic",
...) so callers can branch on it without looking at ``ok`` first.

A result is in exactly one of three outcomes:

- ok: success; payload fields populated, ``error`` is None.
- check_failed: an expected negative outcome the caller asked for (optimistic
  version check failed, SET NX found an existing key); no error.
- error: a classified ClientError is attached; payload fields are None.
"""
from __future__ import annotations

import dataclasses
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Generic, Iterable, TypeVar

from scenario_clients.shared.errors import ClientError

T = TypeVar("T")
R = TypeVar("R", bound="ClientResult")


class Outcome(str, Enum):
    ok = "ok"
    check_failed = "check-failed"
    error = "error"


def monotonic_ms() -> float:
    return time.perf_counter() * 1000


def elapsed_ms(started_ms: float) -> float:
    """Milliseconds elapsed since a ``monotonic_ms()`` reading."""
    return monotonic_ms() - started_ms


@dataclass(frozen=True)
class ClientResult:
    """Base envelope shared by every result kind."""

    kind: ClassVar[str] = "client"

    duration: float
    outcome: Outcome = Outcome.ok
    error: ClientError | None = None

    def __post_init__(self) -> None:
        if self.outcome is Outcome.error and self.error is None:
            raise ValueError(f"{self.kind} failure result requires an error")
        if self.outcome is not Outcome.error and self.error is not None:
            raise ValueError(f"{self.kind} {self.outcome.value} result cannot carry an error")

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.ok

    @property
    def failed(self) -> bool:
        return self.outcome is Outcome.error

    @classmethod
    def success(cls: type[R], *, duration: float, **payload: Any) -> R:
        return cls(duration=duration, outcome=Outcome.ok, **payload)

    @classmethod
    def check_failed(cls: type[R], *, duration: float, **payload: Any) -> R:
        return cls(duration=duration, outcome=Outcome.check_failed, **payload)

    @classmethod
    def failure(cls: type[R], error: ClientError, *, duration: float) -> R:
        return cls(duration=duration, outcome=Outcome.error, error=error)

    def raise_for_error(self: R) -> R:
        """Raise the attached error, if any; otherwise return self."""
        if self.error is not None:
            raise self.error
        return self

    def payload(self) -> dict[str, Any]:
        """Operation-specific fields (everything except the envelope)."""
        envelope = {"duration", "outcome", "error"}
        return {
            f.name: getattr(self, f.name)
            for f in dataclasses.fields(self)
            if f.name not in envelope
        }


class Rows(list, Generic[T]):
    """List of rows/entries with first/last helpers."""

    def __init__(self, items: Iterable[T] = ()) -> None:
        super().__init__(items)

    def first(self) -> T | None:
        return self[0] if self else None

    def first_or_raise(self) -> T:
        if not self:
            raise LookupError("No rows found")
        return self[0]

    def last(self) -> T | None:
        return self[-1] if self else None

    def last_or_raise(self) -> T:
        if not self:
            raise LookupError("No rows found")
        return self[-1]
