from __future__ import annotations

from scenario_clients.shared.errors import ClientError, ErrorKind, classifier, message_of

from .store import KvClosed, KvInvalidKey, KvInvalidMutation, KvQuotaExceeded, KvValueTooLarge

STORE_ERROR_KINDS: tuple[tuple[type[BaseException], ErrorKind], ...] = (
    (KvQuotaExceeded, ErrorKind.resource_exhausted),
    (KvValueTooLarge, ErrorKind.resource_exhausted),
    (KvClosed, ErrorKind.connection),
    (KvInvalidKey, ErrorKind.query_syntax),
    (KvInvalidMutation, ErrorKind.query_syntax),
)


@classifier
def map_kv_error(native: BaseException) -> ClientError | None:
    for exc_type, kind in STORE_ERROR_KINDS:
        if isinstance(native, exc_type):
            return ClientError(message_of(native), kind, cause=native)
    return None
