"""HTTP error classification: response status codes and httpx transport errors."""
from __future__ import annotations

from typing import Any

import httpx

from scenario_clients.shared.errors import ClientError, ErrorKind, classifier, message_of

STATUS_KINDS: dict[int, ErrorKind] = {
    400: ErrorKind.query_syntax,
    401: ErrorKind.unauthenticated,
    403: ErrorKind.permission_denied,
    404: ErrorKind.not_found,
    409: ErrorKind.constraint_violation,
    412: ErrorKind.constraint_violation,
    422: ErrorKind.query_syntax,
    429: ErrorKind.resource_exhausted,
    500: ErrorKind.internal,
    502: ErrorKind.unavailable,
    503: ErrorKind.unavailable,
    504: ErrorKind.unavailable,
}

MAX_BODY_IN_DETAILS = 500


def kind_for_status(status: int) -> ErrorKind:
    return STATUS_KINDS.get(status, ErrorKind.unknown)


def error_for_response(response: httpx.Response, *, cause: BaseException | None = None) -> ClientError:
    """Classify a non-2xx response; the status and a body excerpt go into details."""
    details: dict[str, Any] = {"status": response.status_code, "url": str(response.request.url)}
    body = response.text
    if body:
        details["body"] = body[:MAX_BODY_IN_DETAILS]
    reason = response.reason_phrase or "error"
    return ClientError(
        f"HTTP {response.status_code} {reason}",
        kind_for_status(response.status_code),
        cause=cause,
        details=details,
    )


@classifier
def map_http_error(native: BaseException) -> ClientError | None:
    if isinstance(native, httpx.HTTPStatusError):
        return error_for_response(native.response, cause=native)

    message = message_of(native)
    details: dict[str, Any] = {}
    request = getattr(native, "_request", None)
    if request is not None:
        details["url"] = str(request.url)

    if isinstance(native, httpx.TimeoutException):
        return ClientError(message, ErrorKind.timeout, cause=native, details=details)
    if isinstance(native, httpx.ConnectError):
        return ClientError(message, ErrorKind.connection, cause=native, details=details)
    if isinstance(native, (httpx.UnsupportedProtocol, httpx.InvalidURL)):
        return ClientError(message, ErrorKind.query_syntax, cause=native, details=details)
    if isinstance(native, httpx.TransportError):
        return ClientError(message, ErrorKind.unavailable, cause=native, details=details)
    if isinstance(native, (ConnectionError, OSError)):
        return ClientError(message, ErrorKind.connection, cause=native, details=details)
    return None
