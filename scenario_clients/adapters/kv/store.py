"""
In-process versioned key-value store.

Keys are non-empty tuples of parts (bytes, str, int, float, bool) ordered
part by part, first by part type in that order and then by value.  Every
successful write produces a new versionstamp: a 20-hex-digit string that grows
monotonically across the store, so string comparison follows commit order.

``commit`` is the single atomic primitive.  All checks are evaluated first;
if any fails nothing is written.  The store never awaits in the middle of a
commit, so a commit is never interleaved with another operation.
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Literal, Sequence

KeyPart = bytes | str | int | float | bool
Key = tuple[KeyPart, ...]

PART_ORDER: dict[type, int] = {bytes: 0, str: 1, int: 2, float: 3, bool: 4}

MAX_VALUE_SIZE = 65536
MAX_KEY_SIZE = 2048
MAX_MUTATIONS = 1000


class KvError(Exception):
    """Base class for store failures."""


class KvClosed(KvError):
    pass


class KvQuotaExceeded(KvError):
    pass


class KvValueTooLarge(KvError):
    pass


class KvInvalidKey(KvError):
    pass


class KvInvalidMutation(KvError):
    pass


@dataclass(frozen=True)
class KvEntry:
    key: Key
    value: Any
    versionstamp: str | None


@dataclass(frozen=True)
class KvCheck:
    key: Key
    versionstamp: str | None


@dataclass(frozen=True)
class KvMutation:
    op: Literal["set", "delete", "sum", "min", "max"]
    key: Key
    value: Any = None
    expire_in: float | None = None


@dataclass(frozen=True)
class CommitOutcome:
    versionstamp: str | None
    failed_checks: tuple[Key, ...] = ()

    @property
    def ok(self) -> bool:
        return self.versionstamp is not None


def normalize_key(key: Sequence[KeyPart]) -> Key:
    if isinstance(key, (str, bytes)) or not isinstance(key, Sequence):
        raise KvInvalidKey(f"Key must be a sequence of parts, got {type(key).__name__}")
    parts = tuple(key)
    if not parts:
        raise KvInvalidKey("Key must have at least one part")
    for part in parts:
        if type(part) not in PART_ORDER:
            raise KvInvalidKey(f"Unsupported key part type: {type(part).__name__}")
    if len(repr(parts).encode()) > MAX_KEY_SIZE:
        raise KvInvalidKey(f"Key exceeds {MAX_KEY_SIZE} bytes")
    return parts


def sort_key(key: Key) -> tuple[tuple[int, Any], ...]:
    return tuple((PART_ORDER[type(part)], part) for part in key)


def _value_size(value: Any) -> int:
    if isinstance(value, bytes):
        return len(value)
    return len(repr(value).encode())


class MemoryKvStore:
    def __init__(
        self,
        *,
        max_keys: int | None = None,
        max_value_size: int = MAX_VALUE_SIZE,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._data: dict[Key, tuple[Any, str, float | None]] = {}
        self._version = 0
        self._closed = False
        self.max_keys = max_keys
        self.max_value_size = max_value_size
        self._clock = clock

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise KvClosed("Store is closed")

    def _next_versionstamp(self) -> str:
        self._version += 1
        return f"{self._version:020x}"

    def _live(self, key: Key) -> tuple[Any, str, float | None] | None:
        record = self._data.get(key)
        if record is None:
            return None
        expires_at = record[2]
        if expires_at is not None and expires_at <= self._clock():
            del self._data[key]
            return None
        return record

    def _entry(self, key: Key) -> KvEntry:
        record = self._live(key)
        if record is None:
            return KvEntry(key=key, value=None, versionstamp=None)
        return KvEntry(key=key, value=record[0], versionstamp=record[1])

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, key: Sequence[KeyPart]) -> KvEntry:
        self._ensure_open()
        return self._entry(normalize_key(key))

    async def get_many(self, keys: Iterable[Sequence[KeyPart]]) -> list[KvEntry]:
        self._ensure_open()
        return [self._entry(normalize_key(key)) for key in keys]

    async def list(
        self,
        *,
        prefix: Sequence[KeyPart] = (),
        start: Sequence[KeyPart] | None = None,
        end: Sequence[KeyPart] | None = None,
        limit: int | None = None,
        reverse: bool = False,
    ) -> list[KvEntry]:
        """Entries under ``prefix`` (the prefix key itself excluded), start inclusive, end exclusive."""
        self._ensure_open()
        prefix_key = tuple(prefix)
        lower = sort_key(normalize_key(start)) if start is not None else None
        upper = sort_key(normalize_key(end)) if end is not None else None

        matched = []
        for key in list(self._data):
            if prefix_key and (len(key) <= len(prefix_key) or key[: len(prefix_key)] != prefix_key):
                continue
            ordered = sort_key(key)
            if lower is not None and ordered < lower:
                continue
            if upper is not None and ordered >= upper:
                continue
            if self._live(key) is not None:
                matched.append(key)

        matched.sort(key=sort_key, reverse=reverse)
        if limit is not None:
            matched = matched[:limit]
        return [self._entry(key) for key in matched]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def set(self, key: Sequence[KeyPart], value: Any, *, expire_in: float | None = None) -> str:
        outcome = await self.commit((), (KvMutation("set", normalize_key(key), value, expire_in),))
        return outcome.versionstamp

    async def delete(self, key: Sequence[KeyPart]) -> str:
        outcome = await self.commit((), (KvMutation("delete", normalize_key(key)),))
        return outcome.versionstamp

    async def commit(self, checks: Sequence[KvCheck], mutations: Sequence[KvMutation]) -> CommitOutcome:
        self._ensure_open()
        if len(mutations) > MAX_MUTATIONS:
            raise KvQuotaExceeded(f"Too many mutations in one commit: {len(mutations)} > {MAX_MUTATIONS}")

        failed = []
        for check in checks:
            key = normalize_key(check.key)
            if self._entry(key).versionstamp != check.versionstamp:
                failed.append(key)
        if failed:
            return CommitOutcome(versionstamp=None, failed_checks=tuple(failed))

        staged = self._stage(mutations)
        versionstamp = self._next_versionstamp()
        now = self._clock()
        for key, record in staged.items():
            if record is None:
                self._data.pop(key, None)
            else:
                value, expire_in = record
                expires_at = now + expire_in if expire_in is not None else None
                self._data[key] = (value, versionstamp, expires_at)
        return CommitOutcome(versionstamp=versionstamp)

    def _stage(self, mutations: Sequence[KvMutation]) -> dict[Key, tuple[Any, float | None] | None]:
        """Validate every mutation before anything is written."""
        staged: dict[Key, tuple[Any, float | None] | None] = {}

        def current(key: Key) -> Any:
            if key in staged:
                record = staged[key]
                return record[0] if record is not None else None
            return self._entry(key).value

        for mutation in mutations:
            key = normalize_key(mutation.key)
            if mutation.op == "delete":
                staged[key] = None
                continue
            if mutation.op == "set":
                if _value_size(mutation.value) > self.max_value_size:
                    raise KvValueTooLarge(f"Value for {key!r} exceeds {self.max_value_size} bytes")
                staged[key] = (mutation.value, mutation.expire_in)
                continue

            operand = mutation.value
            if not isinstance(operand, int) or isinstance(operand, bool):
                raise KvInvalidMutation(f"{mutation.op} requires an integer operand, got {operand!r}")
            existing = current(key)
            if existing is None:
                staged[key] = (operand, None)
                continue
            if not isinstance(existing, int) or isinstance(existing, bool):
                raise KvInvalidMutation(f"{mutation.op} target {key!r} holds a non-integer value")
            combine = {"sum": lambda a, b: a + b, "min": min, "max": max}[mutation.op]
            staged[key] = (combine(existing, operand), None)

        if self.max_keys is not None:
            live = {key for key in list(self._data) if self._live(key) is not None}
            for key, record in staged.items():
                if record is None:
                    live.discard(key)
                else:
                    live.add(key)
            if len(live) > self.max_keys:
                raise KvQuotaExceeded(f"Store holds at most {self.max_keys} keys")
        return staged

    def close(self) -> None:
        self._closed = True
