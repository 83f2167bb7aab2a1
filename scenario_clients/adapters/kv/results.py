from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar

from scenario_clients.shared.result import ClientResult, Rows

from .store import Key, KvEntry


@dataclass(frozen=True)
class KvGetResult(ClientResult):
    """A missing key is a success with ``value`` and ``versionstamp`` None."""

    kind: ClassVar[str] = "kv:get"

    key: Key | None = None
    value: Any = None
    versionstamp: str | None = None


@dataclass(frozen=True)
class KvSetResult(ClientResult):
    kind: ClassVar[str] = "kv:set"

    versionstamp: str | None = None


@dataclass(frozen=True)
class KvDeleteResult(ClientResult):
    kind: ClassVar[str] = "kv:delete"

    versionstamp: str | None = None


@dataclass(frozen=True)
class KvListResult(ClientResult):
    kind: ClassVar[str] = "kv:list"

    entries: Rows[KvEntry] | None = None


@dataclass(frozen=True)
class KvAtomicResult(ClientResult):
    """Atomic commit.  Failed version checks give check-failed with the offending keys."""

    kind: ClassVar[str] = "kv:atomic"

    versionstamp: str | None = None
    failed_checks: tuple[Key, ...] | None = None
