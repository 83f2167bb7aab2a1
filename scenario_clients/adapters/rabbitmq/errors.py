"""
RabbitMQ error classification.

aio_pika surfaces aiormq's exception classes.  Channel-level failures carry
the AMQP reply code of the Channel.Close frame; where a class is not specific
enough the reply code decides.
"""
from __future__ import annotations

from typing import Any

from aiormq import exceptions as amqp_exc

from scenario_clients.shared.errors import ClientError, ErrorKind, classifier, message_of

REPLY_CODES: dict[int, ErrorKind] = {
    312: ErrorKind.unavailable,  # NO_ROUTE (mandatory publish returned)
    313: ErrorKind.unavailable,  # NO_CONSUMERS
    320: ErrorKind.unavailable,  # CONNECTION_FORCED
    403: ErrorKind.permission_denied,  # ACCESS_REFUSED
    404: ErrorKind.not_found,  # NOT_FOUND
    405: ErrorKind.permission_denied,  # RESOURCE_LOCKED (exclusive to another connection)
    406: ErrorKind.constraint_violation,  # PRECONDITION_FAILED
    502: ErrorKind.query_syntax,  # SYNTAX_ERROR
    503: ErrorKind.query_syntax,  # COMMAND_INVALID
    506: ErrorKind.resource_exhausted,  # RESOURCE_ERROR
    530: ErrorKind.permission_denied,  # NOT_ALLOWED
    541: ErrorKind.internal,  # INTERNAL_ERROR
}

EXCEPTION_KINDS: tuple[tuple[type[BaseException], ErrorKind], ...] = (
    (amqp_exc.ProbableAuthenticationError, ErrorKind.unauthenticated),
    (amqp_exc.AuthenticationError, ErrorKind.unauthenticated),
    (amqp_exc.ChannelAccessRefused, ErrorKind.permission_denied),
    (amqp_exc.ChannelNotFoundEntity, ErrorKind.not_found),
    (amqp_exc.ChannelLockedResource, ErrorKind.permission_denied),
    (amqp_exc.ChannelPreconditionFailed, ErrorKind.constraint_violation),
)


def reply_code_of(native: BaseException) -> int | None:
    candidates: list[Any] = [getattr(native, "code", None)]
    frame = getattr(native, "frame", None)
    if frame is not None:
        candidates.append(getattr(frame, "reply_code", None))
    candidates.extend(native.args[:1])
    for candidate in candidates:
        if isinstance(candidate, int) and not isinstance(candidate, bool):
            return candidate
    return None


@classifier
def map_rabbitmq_error(native: BaseException) -> ClientError | None:
    message = message_of(native)
    code = reply_code_of(native)
    details = {"reply_code": code} if code is not None else {}

    for exc_type, kind in EXCEPTION_KINDS:
        if isinstance(native, exc_type):
            return ClientError(message, kind, cause=native, details=details)

    if code is not None and code in REPLY_CODES:
        return ClientError(message, REPLY_CODES[code], cause=native, details=details)

    if isinstance(native, (amqp_exc.DeliveryError, amqp_exc.PublishError)):
        return ClientError(message, ErrorKind.unavailable, cause=native, details=details)
    if isinstance(
        native,
        (
            amqp_exc.AMQPConnectionError,
            amqp_exc.ConnectionClosed,
            amqp_exc.ChannelInvalidStateError,
            ConnectionError,
            OSError,
        ),
    ):
        return ClientError(message, ErrorKind.connection, cause=native, details=details)
    if isinstance(native, amqp_exc.AMQPChannelError):
        return ClientError(message, ErrorKind.unknown, cause=native, details=details)
    return None
