from __future__ import annotations

import json as jsonlib
from dataclasses import dataclass, field
from typing import Any, ClassVar

from scenario_clients.shared.result import ClientResult


@dataclass(frozen=True)
class RabbitMqMessage:
    """A delivered message, detached from the channel except for settling it."""

    body: bytes
    routing_key: str | None = None
    exchange: str | None = None
    delivery_tag: int | None = None
    redelivered: bool = False
    properties: dict[str, Any] = field(default_factory=dict)
    native: Any = field(default=None, repr=False, compare=False)

    @classmethod
    def from_incoming(cls, message: Any) -> "RabbitMqMessage":
        properties = {
            "content_type": message.content_type,
            "content_encoding": message.content_encoding,
            "message_id": message.message_id,
            "correlation_id": message.correlation_id,
            "reply_to": message.reply_to,
            "type": message.type,
            "app_id": message.app_id,
            "priority": message.priority,
            "headers": dict(message.headers or {}),
        }
        return cls(
            body=message.body,
            routing_key=message.routing_key,
            exchange=message.exchange,
            delivery_tag=message.delivery_tag,
            redelivered=bool(message.redelivered),
            properties={key: value for key, value in properties.items() if value is not None},
            native=message,
        )

    def text(self) -> str:
        return self.body.decode(self.properties.get("content_encoding") or "utf-8")

    def json(self) -> Any:
        return jsonlib.loads(self.body)


@dataclass(frozen=True)
class RabbitMqPublishResult(ClientResult):
    kind: ClassVar[str] = "rabbitmq:publish"

    exchange: str | None = None
    routing_key: str | None = None


@dataclass(frozen=True)
class RabbitMqConsumeResult(ClientResult):
    """``message`` is None when the queue was empty."""

    kind: ClassVar[str] = "rabbitmq:consume"

    message: RabbitMqMessage | None = None


@dataclass(frozen=True)
class RabbitMqAckResult(ClientResult):
    kind: ClassVar[str] = "rabbitmq:ack"

    delivery_tag: int | None = None


@dataclass(frozen=True)
class RabbitMqQueueResult(ClientResult):
    kind: ClassVar[str] = "rabbitmq:queue"

    queue: str | None = None
    message_count: int | None = None
    consumer_count: int | None = None


@dataclass(frozen=True)
class RabbitMqExchangeResult(ClientResult):
    kind: ClassVar[str] = "rabbitmq:exchange"

    exchange: str | None = None
