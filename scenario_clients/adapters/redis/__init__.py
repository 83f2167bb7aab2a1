"""Redis adapter built on redis.asyncio."""
from __future__ import annotations

from .client import (
    RedisBatch,
    RedisClient,
    RedisClientConfig,
    RedisConnectionConfig,
    Subscription,
    resolve_redis_url,
)
from .errors import map_redis_error
from .expect import RedisExpectation
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

__all__ = [
    "RedisArrayResult",
    "RedisBatch",
    "RedisClient",
    "RedisClientConfig",
    "RedisCommonResult",
    "RedisConnectionConfig",
    "RedisCountResult",
    "RedisExpectation",
    "RedisGetResult",
    "RedisHashResult",
    "RedisMessage",
    "RedisResult",
    "RedisSetResult",
    "Subscription",
    "map_redis_error",
    "resolve_redis_url",
]
