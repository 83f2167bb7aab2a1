from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar

from scenario_clients.shared.result import ClientResult


@dataclass(frozen=True)
class RedisResult(ClientResult):
    kind: ClassVar[str] = "redis:common"

    value: Any = None


@dataclass(frozen=True)
class RedisGetResult(RedisResult):
    """GET-style reply: a single value or None when the key is missing."""

    kind: ClassVar[str] = "redis:get"


@dataclass(frozen=True)
class RedisSetResult(RedisResult):
    """SET reply; ``value`` is "OK" when written."""

    kind: ClassVar[str] = "redis:set"


@dataclass(frozen=True)
class RedisCountResult(RedisResult):
    kind: ClassVar[str] = "redis:count"


@dataclass(frozen=True)
class RedisArrayResult(RedisResult):
    kind: ClassVar[str] = "redis:array"


@dataclass(frozen=True)
class RedisHashResult(RedisResult):
    kind: ClassVar[str] = "redis:hash"


@dataclass(frozen=True)
class RedisCommonResult(RedisResult):
    kind: ClassVar[str] = "redis:common"


@dataclass(frozen=True)
class RedisMessage:
    """One pub/sub delivery."""

    channel: str
    data: Any
