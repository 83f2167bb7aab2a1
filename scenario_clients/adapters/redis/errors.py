"""
Redis error classification.

redis-py raises a small class hierarchy; a few server replies only arrive as a
generic ``ResponseError`` and are told apart by their reply prefix.  Subclasses
are checked before their parents (AuthenticationError is a ConnectionError,
NoPermissionError is a ResponseError, ...).
"""
from __future__ import annotations

from redis import exceptions as redis_exc

from scenario_clients.shared.errors import ClientError, ErrorKind, classifier, message_of

EXCEPTION_KINDS: tuple[tuple[type[BaseException], ErrorKind], ...] = (
    (redis_exc.AuthenticationError, ErrorKind.unauthenticated),
    (redis_exc.AuthorizationError, ErrorKind.permission_denied),
    (redis_exc.BusyLoadingError, ErrorKind.unavailable),
    (redis_exc.ConnectionError, ErrorKind.connection),
    (redis_exc.TimeoutError, ErrorKind.timeout),
    (redis_exc.NoPermissionError, ErrorKind.permission_denied),
    (redis_exc.ReadOnlyError, ErrorKind.permission_denied),
    (redis_exc.OutOfMemoryError, ErrorKind.resource_exhausted),
    (redis_exc.NoScriptError, ErrorKind.not_found),
    (redis_exc.WatchError, ErrorKind.serialization_conflict),
    (redis_exc.DataError, ErrorKind.query_syntax),
)

REPLY_PREFIXES: tuple[tuple[str, ErrorKind], ...] = (
    ("WRONGTYPE", ErrorKind.query_syntax),
    ("ERR syntax", ErrorKind.query_syntax),
    ("ERR unknown command", ErrorKind.query_syntax),
    ("ERR wrong number of arguments", ErrorKind.query_syntax),
    ("ERR value is not", ErrorKind.query_syntax),
    ("EXECABORT", ErrorKind.query_syntax),
    ("NOAUTH", ErrorKind.unauthenticated),
    ("WRONGPASS", ErrorKind.unauthenticated),
    ("NOPERM", ErrorKind.permission_denied),
    ("READONLY", ErrorKind.permission_denied),
    ("OOM", ErrorKind.resource_exhausted),
    ("BUSY", ErrorKind.unavailable),
    ("LOADING", ErrorKind.unavailable),
    ("MASTERDOWN", ErrorKind.unavailable),
    ("CLUSTERDOWN", ErrorKind.unavailable),
    ("TRYAGAIN", ErrorKind.unavailable),
    ("MOVED", ErrorKind.unavailable),
    ("ASK", ErrorKind.unavailable),
    ("NOSCRIPT", ErrorKind.not_found),
)


@classifier
def map_redis_error(native: BaseException) -> ClientError | None:
    message = message_of(native)

    for exc_type, kind in EXCEPTION_KINDS:
        if isinstance(native, exc_type):
            return ClientError(message, kind, cause=native)

    if isinstance(native, redis_exc.ResponseError):
        for prefix, kind in REPLY_PREFIXES:
            if message.startswith(prefix):
                return ClientError(message, kind, cause=native, details={"reply": prefix})
        return ClientError(message, ErrorKind.unknown, cause=native)

    if isinstance(native, (ConnectionError, OSError)):
        return ClientError(message, ErrorKind.connection, cause=native)

    return None
