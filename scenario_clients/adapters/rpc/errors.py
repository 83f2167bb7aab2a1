"""
RPC status classification shared by gRPC and Connect.

Status codes are read duck-typed so no transport library is required here:

- ``grpc.aio.AioRpcError``: ``code()`` returns a ``grpc.StatusCode`` whose
  value is ``(int, name)``; ``details()`` and ``trailing_metadata()``.
- Connect-style errors: a ``code`` attribute holding a snake_case name or int.
- ``RpcError`` below, for hand-written stubs.
"""
from __future__ import annotations

from enum import IntEnum
from typing import Any

from scenario_clients.shared.errors import ClientError, ErrorKind, classifier, message_of


class StatusCode(IntEnum):
    OK = 0
    CANCELLED = 1
    UNKNOWN = 2
    INVALID_ARGUMENT = 3
    DEADLINE_EXCEEDED = 4
    NOT_FOUND = 5
    ALREADY_EXISTS = 6
    PERMISSION_DENIED = 7
    RESOURCE_EXHAUSTED = 8
    FAILED_PRECONDITION = 9
    ABORTED = 10
    OUT_OF_RANGE = 11
    UNIMPLEMENTED = 12
    INTERNAL = 13
    UNAVAILABLE = 14
    DATA_LOSS = 15
    UNAUTHENTICATED = 16


STATUS_KINDS: dict[StatusCode, ErrorKind] = {
    StatusCode.CANCELLED: ErrorKind.cancelled,
    StatusCode.UNKNOWN: ErrorKind.unknown,
    StatusCode.INVALID_ARGUMENT: ErrorKind.query_syntax,
    StatusCode.DEADLINE_EXCEEDED: ErrorKind.timeout,
    StatusCode.NOT_FOUND: ErrorKind.not_found,
    StatusCode.ALREADY_EXISTS: ErrorKind.constraint_violation,
    StatusCode.PERMISSION_DENIED: ErrorKind.permission_denied,
    StatusCode.RESOURCE_EXHAUSTED: ErrorKind.resource_exhausted,
    StatusCode.FAILED_PRECONDITION: ErrorKind.constraint_violation,
    StatusCode.ABORTED: ErrorKind.serialization_conflict,
    StatusCode.OUT_OF_RANGE: ErrorKind.query_syntax,
    StatusCode.UNIMPLEMENTED: ErrorKind.not_found,
    StatusCode.INTERNAL: ErrorKind.internal,
    StatusCode.UNAVAILABLE: ErrorKind.unavailable,
    StatusCode.DATA_LOSS: ErrorKind.internal,
    StatusCode.UNAUTHENTICATED: ErrorKind.unauthenticated,
}


class RpcError(Exception):
    """Status error for stubs that do not bring their own error type."""

    def __init__(
        self,
        code: StatusCode | int,
        message: str = "",
        *,
        details: list[Any] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message or StatusCode(code).name)
        self.code = StatusCode(code)
        self.message = message
        self.details = list(details or [])
        self.metadata = dict(metadata or {})


def is_status_code(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= 16


def status_name(code: int) -> str:
    return StatusCode(code).name if is_status_code(code) else f"UNKNOWN_STATUS_{code}"


def _coerce_code(raw: Any) -> StatusCode | None:
    value = getattr(raw, "value", raw)
    if isinstance(value, tuple) and value:
        value = value[0]
    if is_status_code(value):
        return StatusCode(value)
    if isinstance(value, str):
        try:
            return StatusCode[value.upper()]
        except KeyError:
            return None
    return None


def status_of(native: BaseException) -> StatusCode | None:
    raw = getattr(native, "code", None)
    if callable(raw):
        raw = raw()
    return _coerce_code(raw) if raw is not None else None


def _metadata_of(native: BaseException) -> dict[str, Any]:
    raw = getattr(native, "metadata", None)
    trailing = getattr(native, "trailing_metadata", None)
    if callable(trailing):
        raw = trailing()
    if raw is None:
        return {}
    if isinstance(raw, dict):
        return dict(raw)
    return {key: value for key, value in raw}


def _message_of(native: BaseException) -> str:
    details = getattr(native, "details", None)
    if callable(details):
        text = details()
        if text:
            return text
    message = getattr(native, "message", None)
    if isinstance(message, str) and message:
        return message
    return message_of(native)


@classifier
def map_rpc_error(native: BaseException) -> ClientError | None:
    code = status_of(native)
    if code is None:
        if isinstance(native, (ConnectionError, OSError)):
            return ClientError(message_of(native), ErrorKind.connection, cause=native)
        return None

    details: dict[str, Any] = {
        "code": int(code),
        "status": code.name,
        "metadata": _metadata_of(native),
    }
    detail_list = getattr(native, "details", None)
    if isinstance(detail_list, list):
        details["details"] = detail_list
    return ClientError(
        _message_of(native),
        STATUS_KINDS.get(code, ErrorKind.unknown),
        cause=native,
        details=details,
    )
