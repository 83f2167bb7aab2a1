"""
Canonical error taxonomy shared by every adapter.

Every native error that reaches a caller is classified exactly once, at the
adapter boundary, into a ClientError carrying one ErrorKind.  Backend-specific
information (SQLSTATE, gRPC status, constraint name, failed keys, ...) rides
along in ``details`` without widening the kind set.

Mappers are written as plain functions and wrapped with ``classifier`` which
makes them total (never raise, fall back to UNKNOWN) and idempotent (an
already-canonical ClientError passes through unchanged).
"""
from __future__ import annotations

import functools
from enum import Enum
from typing import Any, Callable

import structlog

logger = structlog.get_logger(__name__)


class ErrorKind(str, Enum):
    timeout = "timeout"
    cancelled = "cancelled"
    connection = "connection"
    query_syntax = "query-syntax"
    constraint_violation = "constraint-violation"
    serialization_conflict = "serialization-conflict"
    not_found = "not-found"
    permission_denied = "permission-denied"
    resource_exhausted = "resource-exhausted"
    unauthenticated = "unauthenticated"
    unavailable = "unavailable"
    internal = "internal"
    unknown = "unknown"


class ClientError(Exception):
    """Backend-independent error raised (or returned) by every adapter."""

    def __init__(
        self,
        message: str,
        kind: ErrorKind | str = ErrorKind.unknown,
        *,
        cause: BaseException | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = ErrorKind(kind)
        self.cause = cause
        self.details: dict[str, Any] = dict(details or {})
        if cause is not None:
            self.__cause__ = cause

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, message={self.message!r})"

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.message}"


class TransactionFinishedError(ClientError):
    """Raised for any call against a committed or rolled-back transaction."""

    def __init__(self, state: str) -> None:
        super().__init__(
            f"Transaction has already been {state.replace('-', ' ')}",
            ErrorKind.connection,
            details={"reason": "transaction_finished", "state": state},
        )
        self.state = state


class ControlError(ClientError):
    """
    The caller's own timeout or abort fired.

    Always raised, whatever throw_on_error says.  Timeouts and cancellations
    reported by a server or driver are plain ClientErrors and follow the
    throw_on_error policy like any other failure.
    """


def is_control_error(error: BaseException) -> bool:
    return isinstance(error, ControlError)


def unknown_error(native: BaseException, **details: Any) -> ClientError:
    return ClientError(message_of(native), ErrorKind.unknown, cause=native, details=details)


def message_of(native: BaseException) -> str:
    try:
        text = str(native)
    except Exception:  # noqa: BLE001 - some driver exceptions cannot render themselves
        return type(native).__name__
    return text if text else type(native).__name__


Mapper = Callable[[BaseException], ClientError]


def classifier(fn: Callable[[BaseException], ClientError | None]) -> Mapper:
    """
    Wrap a backend mapping function so it is total and idempotent.

    - ClientError inputs are returned unchanged (never reclassified).
    - A mapper returning None means "no rule matched" -> UNKNOWN.
    - A mapper that raises is treated the same way; classification must
      never fail on its own.
    """

    @functools.wraps(fn)
    def wrapper(native: BaseException) -> ClientError:
        if isinstance(native, ClientError):
            return native
        try:
            mapped = fn(native)
        except Exception as exc:  # noqa: BLE001 - mappers must be total
            logger.warning(
                "error_mapper_failed",
                mapper=fn.__name__,
                native=type(native).__name__,
                error=str(exc),
            )
            mapped = None
        if mapped is None:
            return unknown_error(native)
        return mapped

    return wrapper


