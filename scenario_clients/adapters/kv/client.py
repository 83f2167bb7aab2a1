"""
Key-value client with optimistic concurrency.

Atomic batches are immutable: every builder call returns a new AtomicBatch,
so a partially built batch can be shared and extended safely::

    entry = (await kv.get(("users", 1))).raise_for_error()
    result = await (
        kv.atomic()
        .check(("users", 1), entry.versionstamp)
        .set(("users", 1), {"name": "Alice", "visits": 2})
        .sum(("stats", "updates"), 1)
        .commit()
    )
    if result.outcome is Outcome.check_failed:
        ...  # someone else wrote the key first

Expiry (``expire_in``) is in seconds.
"""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence

import structlog

from scenario_clients.shared.cancellation import CancelSignal
from scenario_clients.shared.config import ClientConfig
from scenario_clients.shared.pipeline import OperationRunner
from scenario_clients.shared.result import Rows

from .errors import map_kv_error
from .results import KvAtomicResult, KvDeleteResult, KvGetResult, KvListResult, KvSetResult
from .store import CommitOutcome, KeyPart, KvCheck, KvEntry, KvMutation, MemoryKvStore

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class AtomicBatch:
    client: "KvClient" = field(repr=False, compare=False)
    checks: tuple[KvCheck, ...] = ()
    mutations: tuple[KvMutation, ...] = ()

    def _with_check(self, check: KvCheck) -> "AtomicBatch":
        return dataclasses.replace(self, checks=self.checks + (check,))

    def _with_mutation(self, mutation: KvMutation) -> "AtomicBatch":
        return dataclasses.replace(self, mutations=self.mutations + (mutation,))

    def check(self, key: Sequence[KeyPart], versionstamp: str | None) -> "AtomicBatch":
        """Require ``key`` to be at ``versionstamp``; None means the key must not exist."""
        return self._with_check(KvCheck(key, versionstamp))

    def set(self, key: Sequence[KeyPart], value: Any, *, expire_in: float | None = None) -> "AtomicBatch":
        return self._with_mutation(KvMutation("set", key, value, expire_in))

    def delete(self, key: Sequence[KeyPart]) -> "AtomicBatch":
        return self._with_mutation(KvMutation("delete", key))

    def sum(self, key: Sequence[KeyPart], amount: int) -> "AtomicBatch":
        return self._with_mutation(KvMutation("sum", key, amount))

    def min(self, key: Sequence[KeyPart], value: int) -> "AtomicBatch":
        return self._with_mutation(KvMutation("min", key, value))

    def max(self, key: Sequence[KeyPart], value: int) -> "AtomicBatch":
        return self._with_mutation(KvMutation("max", key, value))

    async def commit(self, **options: Any) -> KvAtomicResult:
        return await self.client._commit(self, **options)


class KvClient:
    def __init__(self, store: MemoryKvStore | None = None, config: ClientConfig | None = None) -> None:
        self.store = store if store is not None else MemoryKvStore()
        self.config = config or ClientConfig()
        self._runner = OperationRunner(
            backend="kv",
            mapper=map_kv_error,
            config=self.config,
            default_throw_on_error=True,
        )

    async def get(
        self,
        key: Sequence[KeyPart],
        *,
        timeout: float | None = None,
        signal: CancelSignal | None = None,
        throw_on_error: bool | None = None,
    ) -> KvGetResult:
        def build(entry: KvEntry, duration: float) -> KvGetResult:
            return KvGetResult.success(
                duration=duration,
                key=entry.key,
                value=entry.value,
                versionstamp=entry.versionstamp,
            )

        return await self._runner.run(
            "get",
            self.store.get(key),
            build,
            KvGetResult,
            timeout=timeout,
            signal=signal,
            throw_on_error=throw_on_error,
            key=repr(key),
        )

    async def get_many(self, keys: Iterable[Sequence[KeyPart]], **options: Any) -> KvListResult:
        keys = list(keys)
        return await self._runner.run(
            "get_many",
            self.store.get_many(keys),
            lambda entries, duration: KvListResult.success(duration=duration, entries=Rows(entries)),
            KvListResult,
            keys=len(keys),
            **options,
        )

    async def set(
        self,
        key: Sequence[KeyPart],
        value: Any,
        *,
        expire_in: float | None = None,
        **options: Any,
    ) -> KvSetResult:
        return await self._runner.run(
            "set",
            self.store.set(key, value, expire_in=expire_in),
            lambda versionstamp, duration: KvSetResult.success(duration=duration, versionstamp=versionstamp),
            KvSetResult,
            key=repr(key),
            **options,
        )

    async def delete(self, key: Sequence[KeyPart], **options: Any) -> KvDeleteResult:
        return await self._runner.run(
            "delete",
            self.store.delete(key),
            lambda versionstamp, duration: KvDeleteResult.success(duration=duration, versionstamp=versionstamp),
            KvDeleteResult,
            key=repr(key),
            **options,
        )

    async def list(
        self,
        prefix: Sequence[KeyPart] = (),
        *,
        start: Sequence[KeyPart] | None = None,
        end: Sequence[KeyPart] | None = None,
        limit: int | None = None,
        reverse: bool = False,
        **options: Any,
    ) -> KvListResult:
        return await self._runner.run(
            "list",
            self.store.list(prefix=prefix, start=start, end=end, limit=limit, reverse=reverse),
            lambda entries, duration: KvListResult.success(duration=duration, entries=Rows(entries)),
            KvListResult,
            prefix=repr(tuple(prefix)),
            **options,
        )

    def atomic(self) -> AtomicBatch:
        return AtomicBatch(self)

    async def _commit(self, batch: AtomicBatch, **options: Any) -> KvAtomicResult:
        def build(outcome: CommitOutcome, duration: float) -> KvAtomicResult:
            if not outcome.ok:
                logger.info("kv_atomic_check_failed", failed_checks=[repr(k) for k in outcome.failed_checks])
                return KvAtomicResult.check_failed(duration=duration, failed_checks=outcome.failed_checks)
            return KvAtomicResult.success(duration=duration, versionstamp=outcome.versionstamp)

        return await self._runner.run(
            "atomic",
            self.store.commit(batch.checks, batch.mutations),
            build,
            KvAtomicResult,
            checks=len(batch.checks),
            mutations=len(batch.mutations),
            **options,
        )

    async def close(self) -> None:
        self.store.close()
        logger.debug("kv_client_closed")

    async def __aenter__(self) -> "KvClient":
        return self

    async def __aexit__(self, exc_type, exc_value, traceback) -> None:
        await self.close()
