"""
Redis client over ``redis.asyncio``.

Every command goes through the shared operation pipeline and returns one of
the ``redis:*`` result kinds.  All command methods accept the per-call options
``timeout`` (seconds), ``signal`` and ``throw_on_error`` as keywords.

Pub/sub runs a single forwarding task that moves deliveries from the native
PubSub object into an ``asyncio.Queue``; the subscription unsubscribes and
closes the PubSub when its ``async with`` block exits.
"""
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Mapping
from urllib.parse import quote

import structlog
from pydantic import BaseModel, Field
from redis.asyncio import Redis

from scenario_clients.shared.cancellation import with_cancellation
from scenario_clients.shared.config import REDIS_URL, ClientConfig
from scenario_clients.shared.errors import ClientError, ErrorKind
from scenario_clients.shared.pipeline import OperationRunner, format_value, raise_classified

from .errors import map_redis_error
from .results import (
    RedisArrayResult,
    RedisCommonResult,
    RedisCountResult,
    RedisGetResult,
    RedisHashResult,
    RedisMessage,
    RedisResult,
    RedisSetResult,
)

logger = structlog.get_logger(__name__)


class RedisConnectionConfig(BaseModel):
    host: str = "localhost"
    port: int = Field(default=6379, ge=1, le=65535)
    username: str | None = None
    password: str | None = None
    db: int = Field(default=0, ge=0)
    ssl: bool = False

    def to_url(self) -> str:
        scheme = "rediss" if self.ssl else "redis"
        auth = ""
        if self.password is not None:
            user = quote(self.username, safe="") if self.username else ""
            auth = f"{user}:{quote(self.password, safe='')}@"
        elif self.username:
            auth = f"{quote(self.username, safe='')}@"
        return f"{scheme}://{auth}{self.host}:{self.port}/{self.db}"


class RedisClientConfig(ClientConfig):
    decode_responses: bool = True


def resolve_redis_url(target: str | RedisConnectionConfig | Mapping[str, Any]) -> str:
    """Accept a URL, a RedisConnectionConfig or a plain mapping of its fields."""
    if isinstance(target, str):
        return target
    if isinstance(target, RedisConnectionConfig):
        return target.to_url()
    return RedisConnectionConfig(**target).to_url()


def _text(value: Any) -> Any:
    return value.decode() if isinstance(value, bytes) else value


class Subscription:
    """Messages from one or more channels, delivered in arrival order."""

    def __init__(self, pubsub: Any, channels: tuple[str, ...]) -> None:
        self._pubsub = pubsub
        self.channels = channels
        self._queue: asyncio.Queue[RedisMessage | ClientError] = asyncio.Queue()
        self._forwarder: asyncio.Task | None = None

    async def start(self) -> None:
        await self._pubsub.subscribe(*self.channels)
        self._forwarder = asyncio.create_task(self._forward())

    async def _forward(self) -> None:
        try:
            async for raw in self._pubsub.listen():
                if raw.get("type") not in ("message", "pmessage"):
                    continue
                await self._queue.put(RedisMessage(channel=_text(raw["channel"]), data=raw["data"]))
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            await self._queue.put(map_redis_error(exc))

    async def get(self, timeout: float | None = None) -> RedisMessage:
        """Next message; raises a classified error if the connection broke."""
        item = await with_cancellation(
            self._queue.get(),
            timeout=timeout,
            operation="redis subscribe",
        )
        if isinstance(item, ClientError):
            raise item
        return item

    async def __aiter__(self) -> AsyncIterator[RedisMessage]:
        while True:
            yield await self.get()

    async def close(self) -> None:
        if self._forwarder is not None:
            self._forwarder.cancel()
            await asyncio.gather(self._forwarder, return_exceptions=True)
            self._forwarder = None
        try:
            await self._pubsub.unsubscribe(*self.channels)
        finally:
            await self._pubsub.aclose()
        logger.debug("redis_unsubscribed", channels=list(self.channels))


class RedisBatch:
    """Commands queued for a single MULTI/EXEC round trip."""

    def __init__(self, client: "RedisClient") -> None:
        self._client = client
        self._commands: list[tuple[str, tuple[Any, ...], dict[str, Any]]] = []

    def __len__(self) -> int:
        return len(self._commands)

    def queue(self, name: str, *args: Any, **kwargs: Any) -> "RedisBatch":
        self._commands.append((name, args, kwargs))
        return self

    def get(self, key: str) -> "RedisBatch":
        return self.queue("get", key)

    def set(self, key: str, value: Any, **kwargs: Any) -> "RedisBatch":
        return self.queue("set", key, value, **kwargs)

    def delete(self, *keys: str) -> "RedisBatch":
        return self.queue("delete", *keys)

    def incr(self, key: str, amount: int = 1) -> "RedisBatch":
        return self.queue("incrby", key, amount)

    def decr(self, key: str, amount: int = 1) -> "RedisBatch":
        return self.queue("decrby", key, amount)

    def hset(self, key: str, mapping: Mapping[str, Any]) -> "RedisBatch":
        return self.queue("hset", key, mapping=dict(mapping))

    def lpush(self, key: str, *values: Any) -> "RedisBatch":
        return self.queue("lpush", key, *values)

    def rpush(self, key: str, *values: Any) -> "RedisBatch":
        return self.queue("rpush", key, *values)

    def sadd(self, key: str, *members: Any) -> "RedisBatch":
        return self.queue("sadd", key, *members)

    def expire(self, key: str, seconds: int) -> "RedisBatch":
        return self.queue("expire", key, seconds)

    async def _execute(self) -> list[Any]:
        async with self._client.redis.pipeline(transaction=True) as pipe:
            for name, args, kwargs in self._commands:
                getattr(pipe, name)(*args, **kwargs)
            return await pipe.execute()

    async def exec(self, **options: Any) -> RedisArrayResult:
        """Send MULTI ... EXEC; the array result holds one reply per command."""
        return await self._client._run(
            "exec",
            self._execute(),
            RedisArrayResult,
            transform=list,
            commands=len(self._commands),
            **options,
        )


class RedisClient:
    def __init__(self, redis: Redis, config: RedisClientConfig | None = None) -> None:
        self._redis = redis
        self._closed = False
        self.config = config or RedisClientConfig()
        self._runner = OperationRunner(
            backend="redis",
            mapper=map_redis_error,
            config=self.config,
            default_throw_on_error=True,
        )

    @property
    def redis(self) -> Redis:
        """The underlying driver; commands after ``close()`` are refused here."""
        if self._closed:
            raise ClientError("Redis client is closed", ErrorKind.connection)
        return self._redis

    @classmethod
    async def connect(
        cls,
        target: str | RedisConnectionConfig | Mapping[str, Any] = REDIS_URL,
        config: RedisClientConfig | None = None,
    ) -> "RedisClient":
        config = config or RedisClientConfig()
        redis = Redis.from_url(resolve_redis_url(target), decode_responses=config.decode_responses)
        client = cls(redis, config)
        try:
            await redis.ping()
        except Exception as exc:
            await redis.aclose()
            logger.error("redis_connect_failed", error=str(exc))
            raise_classified(map_redis_error(exc), exc)
        logger.info("redis_connected")
        return client

    async def _run(
        self,
        operation: str,
        call: Awaitable[Any],
        result_cls: type[RedisResult],
        *,
        transform: Callable[[Any], Any] | None = None,
        timeout: float | None = None,
        signal: Any = None,
        throw_on_error: bool | None = None,
        **log_context: Any,
    ) -> Any:
        def build(native: Any, duration: float) -> RedisResult:
            value = transform(native) if transform is not None else native
            return result_cls.success(duration=duration, value=value)

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
    # Strings
    # ------------------------------------------------------------------

    async def get(self, key: str, **options: Any) -> RedisGetResult:
        return await self._run("get", self.redis.get(key), RedisGetResult, key=key, **options)

    async def set(
        self,
        key: str,
        value: Any,
        *,
        ex: int | None = None,
        px: int | None = None,
        nx: bool = False,
        xx: bool = False,
        timeout: float | None = None,
        signal: Any = None,
        throw_on_error: bool | None = None,
    ) -> RedisSetResult:
        """SET with optional expiry; an NX/XX condition that blocks the write is check-failed."""

        def build(native: Any, duration: float) -> RedisSetResult:
            if not native:
                return RedisSetResult.check_failed(duration=duration)
            return RedisSetResult.success(duration=duration, value="OK")

        return await self._runner.run(
            "set",
            self.redis.set(key, value, ex=ex, px=px, nx=nx, xx=xx),
            build,
            RedisSetResult,
            timeout=timeout,
            signal=signal,
            throw_on_error=throw_on_error,
            key=key,
            value=format_value(value),
        )

    async def delete(self, *keys: str, **options: Any) -> RedisCountResult:
        return await self._run("delete", self.redis.delete(*keys), RedisCountResult, keys=list(keys), **options)

    async def exists(self, *keys: str, **options: Any) -> RedisCountResult:
        return await self._run("exists", self.redis.exists(*keys), RedisCountResult, keys=list(keys), **options)

    async def incr(self, key: str, amount: int = 1, **options: Any) -> RedisCountResult:
        return await self._run("incr", self.redis.incrby(key, amount), RedisCountResult, key=key, **options)

    async def decr(self, key: str, amount: int = 1, **options: Any) -> RedisCountResult:
        return await self._run("decr", self.redis.decrby(key, amount), RedisCountResult, key=key, **options)

    async def expire(self, key: str, seconds: int, **options: Any) -> RedisCommonResult:
        return await self._run("expire", self.redis.expire(key, seconds), RedisCommonResult, transform=bool, key=key, **options)

    async def ttl(self, key: str, **options: Any) -> RedisCountResult:
        return await self._run("ttl", self.redis.ttl(key), RedisCountResult, key=key, **options)

    # ------------------------------------------------------------------
    # Hashes
    # ------------------------------------------------------------------

    async def hget(self, key: str, field: str, **options: Any) -> RedisGetResult:
        return await self._run("hget", self.redis.hget(key, field), RedisGetResult, key=key, field=field, **options)

    async def hset(self, key: str, mapping: Mapping[str, Any], **options: Any) -> RedisCountResult:
        return await self._run("hset", self.redis.hset(key, mapping=dict(mapping)), RedisCountResult, key=key, **options)

    async def hgetall(self, key: str, **options: Any) -> RedisHashResult:
        return await self._run("hgetall", self.redis.hgetall(key), RedisHashResult, transform=dict, key=key, **options)

    async def hdel(self, key: str, *fields: str, **options: Any) -> RedisCountResult:
        return await self._run("hdel", self.redis.hdel(key, *fields), RedisCountResult, key=key, **options)

    # ------------------------------------------------------------------
    # Lists
    # ------------------------------------------------------------------

    async def lpush(self, key: str, *values: Any, **options: Any) -> RedisCountResult:
        return await self._run("lpush", self.redis.lpush(key, *values), RedisCountResult, key=key, **options)

    async def rpush(self, key: str, *values: Any, **options: Any) -> RedisCountResult:
        return await self._run("rpush", self.redis.rpush(key, *values), RedisCountResult, key=key, **options)

    async def lpop(self, key: str, **options: Any) -> RedisGetResult:
        return await self._run("lpop", self.redis.lpop(key), RedisGetResult, key=key, **options)

    async def rpop(self, key: str, **options: Any) -> RedisGetResult:
        return await self._run("rpop", self.redis.rpop(key), RedisGetResult, key=key, **options)

    async def lrange(self, key: str, start: int = 0, stop: int = -1, **options: Any) -> RedisArrayResult:
        return await self._run("lrange", self.redis.lrange(key, start, stop), RedisArrayResult, transform=list, key=key, **options)

    async def llen(self, key: str, **options: Any) -> RedisCountResult:
        return await self._run("llen", self.redis.llen(key), RedisCountResult, key=key, **options)

    # ------------------------------------------------------------------
    # Sets and sorted sets
    # ------------------------------------------------------------------

    async def sadd(self, key: str, *members: Any, **options: Any) -> RedisCountResult:
        return await self._run("sadd", self.redis.sadd(key, *members), RedisCountResult, key=key, **options)

    async def srem(self, key: str, *members: Any, **options: Any) -> RedisCountResult:
        return await self._run("srem", self.redis.srem(key, *members), RedisCountResult, key=key, **options)

    async def smembers(self, key: str, **options: Any) -> RedisArrayResult:
        return await self._run("smembers", self.redis.smembers(key), RedisArrayResult, transform=list, key=key, **options)

    async def sismember(self, key: str, member: Any, **options: Any) -> RedisCommonResult:
        return await self._run("sismember", self.redis.sismember(key, member), RedisCommonResult, transform=bool, key=key, **options)

    async def zadd(self, key: str, mapping: Mapping[str, float], **options: Any) -> RedisCountResult:
        return await self._run("zadd", self.redis.zadd(key, dict(mapping)), RedisCountResult, key=key, **options)

    async def zrange(
        self,
        key: str,
        start: int = 0,
        stop: int = -1,
        *,
        withscores: bool = False,
        **options: Any,
    ) -> RedisArrayResult:
        return await self._run(
            "zrange",
            self.redis.zrange(key, start, stop, withscores=withscores),
            RedisArrayResult,
            transform=list,
            key=key,
            **options,
        )

    async def zscore(self, key: str, member: Any, **options: Any) -> RedisGetResult:
        return await self._run("zscore", self.redis.zscore(key, member), RedisGetResult, key=key, **options)

    # ------------------------------------------------------------------
    # Pub/sub, transactions, raw commands
    # ------------------------------------------------------------------

    async def publish(self, channel: str, message: Any, **options: Any) -> RedisCountResult:
        """PUBLISH; the count is the number of subscribers that received it."""
        return await self._run("publish", self.redis.publish(channel, message), RedisCountResult, channel=channel, **options)

    @asynccontextmanager
    async def subscribe(self, *channels: str) -> AsyncIterator[Subscription]:
        """
        Subscribe for the duration of the block::

            async with client.subscribe("events") as subscription:
                message = await subscription.get(timeout=1.0)
        """
        subscription = Subscription(self.redis.pubsub(), channels)
        try:
            await subscription.start()
        except Exception as exc:
            raise_classified(map_redis_error(exc), exc)
        logger.debug("redis_subscribed", channels=list(channels))
        try:
            yield subscription
        finally:
            await subscription.close()

    def multi(self) -> RedisBatch:
        return RedisBatch(self)

    async def command(self, *args: Any, **options: Any) -> RedisCommonResult:
        """Send an arbitrary command, e.g. ``command("OBJECT", "ENCODING", "k")``."""
        return await self._run(
            "command",
            self.redis.execute_command(*args),
            RedisCommonResult,
            command=format_value(" ".join(str(a) for a in args)),
            **options,
        )

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._redis.aclose()
        logger.info("redis_client_closed")

    async def __aenter__(self) -> "RedisClient":
        return self

    async def __aexit__(self, exc_type, exc_value, traceback) -> None:
        await self.close()
