"""RabbitMQ adapter built on aio_pika."""
from __future__ import annotations

from .client import Consumer, RabbitMqClient, RabbitMqClientConfig, encode_body
from .errors import REPLY_CODES, map_rabbitmq_error, reply_code_of
from .expect import MessageExpectation, QueueExpectation
from .results import (
    RabbitMqAckResult,
    RabbitMqConsumeResult,
    RabbitMqExchangeResult,
    RabbitMqMessage,
    RabbitMqPublishResult,
    RabbitMqQueueResult,
)

__all__ = [
    "REPLY_CODES",
    "Consumer",
    "MessageExpectation",
    "QueueExpectation",
    "RabbitMqAckResult",
    "RabbitMqClient",
    "RabbitMqClientConfig",
    "RabbitMqConsumeResult",
    "RabbitMqExchangeResult",
    "RabbitMqMessage",
    "RabbitMqPublishResult",
    "RabbitMqQueueResult",
    "encode_body",
    "map_rabbitmq_error",
    "reply_code_of",
]
