"""
RabbitMQ client over aio_pika.

One robust connection and one channel per client.  Queue/exchange management,
publishing and basic.get go through the shared operation pipeline.

Consumption has two forms:

- ``get(queue)``: polls one message (basic.get); an empty queue gives a
  consume result whose ``message`` is None.
- ``consume(queue)``: an ``async with`` block around a basic.consume
  registration.  Deliveries are moved into an ``asyncio.Queue`` by the
  aio_pika callback; the consumer tag is cancelled when the block exits.

Messages fetched without ``no_ack`` must be settled with ``ack``/``nack``/
``reject``.
"""
from __future__ import annotations

import asyncio
import json
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Mapping

import aio_pika
import structlog
from aio_pika import DeliveryMode, ExchangeType, Message
from pydantic import Field

from scenario_clients.shared.cancellation import CancelSignal, with_cancellation
from scenario_clients.shared.config import RABBITMQ_URL, ClientConfig
from scenario_clients.shared.pipeline import OperationRunner, raise_classified
from scenario_clients.shared.result import ClientResult

from .errors import map_rabbitmq_error
from .results import (
    RabbitMqAckResult,
    RabbitMqConsumeResult,
    RabbitMqExchangeResult,
    RabbitMqMessage,
    RabbitMqPublishResult,
    RabbitMqQueueResult,
)

logger = structlog.get_logger(__name__)


class RabbitMqClientConfig(ClientConfig):
    prefetch_count: int = Field(default=10, ge=0)
    publisher_confirms: bool = True


def encode_body(body: Any, content_type: str | None) -> tuple[bytes, str | None]:
    """bytes pass through, str is UTF-8 encoded, anything else is sent as JSON."""
    if isinstance(body, bytes):
        return body, content_type
    if isinstance(body, str):
        return body.encode(), content_type or "text/plain"
    return json.dumps(body).encode(), content_type or "application/json"


class Consumer:
    """Deliveries from one basic.consume registration."""

    def __init__(self, queue_name: str) -> None:
        self.queue_name = queue_name
        self.consumer_tag: str | None = None
        self._deliveries: asyncio.Queue[RabbitMqMessage] = asyncio.Queue()

    async def on_message(self, message: Any) -> None:
        await self._deliveries.put(RabbitMqMessage.from_incoming(message))

    async def get(self, timeout: float | None = None) -> RabbitMqMessage:
        return await with_cancellation(
            self._deliveries.get(),
            timeout=timeout,
            operation=f"rabbitmq consume {self.queue_name}",
        )

    async def __aiter__(self) -> AsyncIterator[RabbitMqMessage]:
        while True:
            yield await self.get()


class RabbitMqClient:
    def __init__(self, connection: Any, channel: Any, config: RabbitMqClientConfig | None = None) -> None:
        self.connection = connection
        self.channel = channel
        self.config = config or RabbitMqClientConfig()
        self._runner = OperationRunner(
            backend="rabbitmq",
            mapper=map_rabbitmq_error,
            config=self.config,
            default_throw_on_error=False,
        )

    @classmethod
    async def connect(
        cls,
        url: str = RABBITMQ_URL,
        config: RabbitMqClientConfig | None = None,
    ) -> "RabbitMqClient":
        config = config or RabbitMqClientConfig()
        try:
            connection = await aio_pika.connect_robust(url)
            channel = await connection.channel(publisher_confirms=config.publisher_confirms)
            await channel.set_qos(prefetch_count=config.prefetch_count)
        except Exception as exc:
            logger.error("rabbitmq_connect_failed", error=str(exc))
            raise_classified(map_rabbitmq_error(exc), exc)
        logger.info("rabbitmq_connected", prefetch_count=config.prefetch_count)
        return cls(connection, channel, config)

    async def _run(
        self,
        operation: str,
        call: Awaitable[Any],
        build: Callable[[Any, float], ClientResult],
        result_cls: type[ClientResult],
        *,
        timeout: float | None = None,
        signal: CancelSignal | None = None,
        throw_on_error: bool | None = None,
        **log_context: Any,
    ) -> Any:
        return await self._runner.run(
            operation,
            call,
            build,
            result_cls,
            timeout=timeout,
            signal=signal,
            throw_on_error=throw_on_error,
            **log_context,
        )

    # ------------------------------------------------------------------
    # Queues
    # ------------------------------------------------------------------

    async def declare_queue(
        self,
        name: str,
        *,
        durable: bool = False,
        exclusive: bool = False,
        auto_delete: bool = False,
        arguments: Mapping[str, Any] | None = None,
        **options: Any,
    ) -> RabbitMqQueueResult:
        async def declare() -> Any:
            return await self.channel.declare_queue(
                name,
                durable=durable,
                exclusive=exclusive,
                auto_delete=auto_delete,
                arguments=dict(arguments) if arguments else None,
            )

        def build(queue: Any, duration: float) -> RabbitMqQueueResult:
            declared = queue.declaration_result
            return RabbitMqQueueResult.success(
                duration=duration,
                queue=queue.name,
                message_count=declared.message_count,
                consumer_count=declared.consumer_count,
            )

        return await self._run("declare_queue", declare(), build, RabbitMqQueueResult, queue=name, **options)

    async def delete_queue(
        self,
        name: str,
        *,
        if_unused: bool = False,
        if_empty: bool = False,
        **options: Any,
    ) -> RabbitMqQueueResult:
        return await self._run(
            "delete_queue",
            self.channel.queue_delete(name, if_unused=if_unused, if_empty=if_empty),
            lambda ok, duration: RabbitMqQueueResult.success(
                duration=duration, queue=name, message_count=ok.message_count
            ),
            RabbitMqQueueResult,
            queue=name,
            **options,
        )

    async def purge_queue(self, name: str, **options: Any) -> RabbitMqQueueResult:
        async def purge() -> Any:
            queue = await self.channel.get_queue(name, ensure=False)
            return await queue.purge()

        return await self._run(
            "purge_queue",
            purge(),
            lambda ok, duration: RabbitMqQueueResult.success(
                duration=duration, queue=name, message_count=ok.message_count
            ),
            RabbitMqQueueResult,
            queue=name,
            **options,
        )

    async def bind_queue(self, queue: str, exchange: str, routing_key: str = "", **options: Any) -> RabbitMqQueueResult:
        async def bind() -> None:
            native = await self.channel.get_queue(queue, ensure=False)
            await native.bind(exchange, routing_key=routing_key)

        return await self._run(
            "bind_queue",
            bind(),
            lambda _, duration: RabbitMqQueueResult.success(duration=duration, queue=queue),
            RabbitMqQueueResult,
            queue=queue,
            exchange=exchange,
            routing_key=routing_key,
            **options,
        )

    async def unbind_queue(self, queue: str, exchange: str, routing_key: str = "", **options: Any) -> RabbitMqQueueResult:
        async def unbind() -> None:
            native = await self.channel.get_queue(queue, ensure=False)
            await native.unbind(exchange, routing_key=routing_key)

        return await self._run(
            "unbind_queue",
            unbind(),
            lambda _, duration: RabbitMqQueueResult.success(duration=duration, queue=queue),
            RabbitMqQueueResult,
            queue=queue,
            exchange=exchange,
            routing_key=routing_key,
            **options,
        )

    # ------------------------------------------------------------------
    # Exchanges
    # ------------------------------------------------------------------

    async def declare_exchange(
        self,
        name: str,
        exchange_type: str = "direct",
        *,
        durable: bool = False,
        auto_delete: bool = False,
        **options: Any,
    ) -> RabbitMqExchangeResult:
        return await self._run(
            "declare_exchange",
            self.channel.declare_exchange(
                name,
                type=ExchangeType(exchange_type),
                durable=durable,
                auto_delete=auto_delete,
            ),
            lambda exchange, duration: RabbitMqExchangeResult.success(duration=duration, exchange=exchange.name),
            RabbitMqExchangeResult,
            exchange=name,
            **options,
        )

    async def delete_exchange(self, name: str, *, if_unused: bool = False, **options: Any) -> RabbitMqExchangeResult:
        return await self._run(
            "delete_exchange",
            self.channel.exchange_delete(name, if_unused=if_unused),
            lambda _, duration: RabbitMqExchangeResult.success(duration=duration, exchange=name),
            RabbitMqExchangeResult,
            exchange=name,
            **options,
        )

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    async def publish(
        self,
        exchange: str,
        routing_key: str,
        body: Any,
        *,
        headers: Mapping[str, Any] | None = None,
        content_type: str | None = None,
        message_id: str | None = None,
        correlation_id: str | None = None,
        persistent: bool = False,
        mandatory: bool = False,
        **options: Any,
    ) -> RabbitMqPublishResult:
        payload, content_type = encode_body(body, content_type)
        message = Message(
            body=payload,
            headers=dict(headers) if headers else None,
            content_type=content_type,
            message_id=message_id,
            correlation_id=correlation_id,
            delivery_mode=DeliveryMode.PERSISTENT if persistent else DeliveryMode.NOT_PERSISTENT,
        )

        async def send() -> None:
            if exchange:
                target = await self.channel.get_exchange(exchange, ensure=False)
            else:
                target = self.channel.default_exchange
            await target.publish(message, routing_key=routing_key, mandatory=mandatory)

        return await self._run(
            "publish",
            send(),
            lambda _, duration: RabbitMqPublishResult.success(
                duration=duration, exchange=exchange, routing_key=routing_key
            ),
            RabbitMqPublishResult,
            exchange=exchange,
            routing_key=routing_key,
            message_id=message_id,
            **options,
        )

    async def send_to_queue(self, queue: str, body: Any, **kwargs: Any) -> RabbitMqPublishResult:
        """Publish through the default exchange straight to ``queue``."""
        return await self.publish("", queue, body, **kwargs)

    # ------------------------------------------------------------------
    # Consuming
    # ------------------------------------------------------------------

    async def get(self, queue: str, *, no_ack: bool = False, **options: Any) -> RabbitMqConsumeResult:
        async def fetch() -> Any:
            native = await self.channel.get_queue(queue, ensure=False)
            return await native.get(no_ack=no_ack, fail=False)

        def build(incoming: Any, duration: float) -> RabbitMqConsumeResult:
            message = RabbitMqMessage.from_incoming(incoming) if incoming is not None else None
            return RabbitMqConsumeResult.success(duration=duration, message=message)

        return await self._run("get", fetch(), build, RabbitMqConsumeResult, queue=queue, **options)

    async def _settle(self, operation: str, message: RabbitMqMessage, call: Awaitable[Any], **options: Any) -> RabbitMqAckResult:
        return await self._run(
            operation,
            call,
            lambda _, duration: RabbitMqAckResult.success(duration=duration, delivery_tag=message.delivery_tag),
            RabbitMqAckResult,
            delivery_tag=message.delivery_tag,
            **options,
        )

    async def ack(self, message: RabbitMqMessage, **options: Any) -> RabbitMqAckResult:
        return await self._settle("ack", message, message.native.ack(), **options)

    async def nack(self, message: RabbitMqMessage, *, requeue: bool = True, **options: Any) -> RabbitMqAckResult:
        return await self._settle("nack", message, message.native.nack(requeue=requeue), **options)

    async def reject(self, message: RabbitMqMessage, *, requeue: bool = False, **options: Any) -> RabbitMqAckResult:
        return await self._settle("reject", message, message.native.reject(requeue=requeue), **options)

    @asynccontextmanager
    async def consume(self, queue: str, *, no_ack: bool = False) -> AsyncIterator[Consumer]:
        """
        Register a consumer for the duration of the block::

            async with client.consume("jobs") as consumer:
                message = await consumer.get(timeout=5)
                await client.ack(message)
        """
        consumer = Consumer(queue)
        try:
            native = await self.channel.get_queue(queue, ensure=False)
            consumer.consumer_tag = await native.consume(consumer.on_message, no_ack=no_ack)
        except Exception as exc:
            raise_classified(map_rabbitmq_error(exc), exc)
        logger.debug("rabbitmq_consumer_started", queue=queue, consumer_tag=consumer.consumer_tag)
        try:
            yield consumer
        finally:
            await native.cancel(consumer.consumer_tag)
            logger.debug("rabbitmq_consumer_cancelled", queue=queue, consumer_tag=consumer.consumer_tag)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        await self.connection.close()
        logger.info("rabbitmq_client_closed")

    async def __aenter__(self) -> "RabbitMqClient":
        return self

    async def __aexit__(self, exc_type, exc_value, traceback) -> None:
        await self.close()
