"""
One-shot transaction state machine over a single reserved connection.

    active --commit()--> committed
    active --rollback()-> rolled-back

Both terminal states are final.  The reserved connection is released exactly
once, in a ``finally`` block of whichever of commit/rollback runs first; after
that every call fails fast with TransactionFinishedError and never touches the
connection again (it may already be serving someone else).

Statements go through the same OperationRunner pipeline as pooled queries, so
their failures are classified once and returned or raised per throw_on_error.
"""
from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, Protocol, TypeVar

import structlog

from scenario_clients.shared.cancellation import CancelSignal
from scenario_clients.shared.errors import TransactionFinishedError
from scenario_clients.shared.pipeline import OperationRunner, format_value, raise_classified
from scenario_clients.shared.result import ClientResult

logger = structlog.get_logger(__name__)

R = TypeVar("R", bound=ClientResult)
T = TypeVar("T")


class IsolationLevel(str, Enum):
    read_uncommitted = "read_uncommitted"
    read_committed = "read_committed"
    repeatable_read = "repeatable_read"
    serializable = "serializable"


class TransactionState(str, Enum):
    active = "active"
    committed = "committed"
    rolled_back = "rolled-back"


class ReservedConnection(Protocol):
    """Driver-side contract: one connection checked out for a transaction."""

    async def begin(self, isolation_level: IsolationLevel | None) -> None: ...

    async def execute(self, statement: str, params: Any = None) -> Any: ...

    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...

    async def release(self) -> None: ...


class Transaction(Generic[R]):
    """Transaction handle bound to one reserved connection."""

    def __init__(
        self,
        connection: ReservedConnection,
        *,
        runner: OperationRunner,
        build: Callable[[Any, float], R],
        result_cls: type[R],
        throw_on_error: bool | None = None,
    ) -> None:
        self._connection = connection
        self._runner = runner
        self._build = build
        self._result_cls = result_cls
        self._throw_on_error = throw_on_error
        self._state = TransactionState.active
        self._released = False
        self._lock = asyncio.Lock()

    @classmethod
    async def open(
        cls,
        connection: ReservedConnection,
        *,
        runner: OperationRunner,
        build: Callable[[Any, float], R],
        result_cls: type[R],
        isolation_level: IsolationLevel | None = None,
        throw_on_error: bool | None = None,
    ) -> "Transaction[R]":
        """Begin a transaction on ``connection``; release it if BEGIN fails or is cancelled."""
        try:
            await connection.begin(isolation_level)
        except asyncio.CancelledError:
            await connection.release()
            raise
        except Exception as exc:
            try:
                await connection.release()
            finally:
                raise_classified(runner.mapper(exc), exc)
        logger.debug(
            "transaction_started",
            backend=runner.backend,
            isolation_level=isolation_level.value if isolation_level else None,
        )
        return cls(
            connection,
            runner=runner,
            build=build,
            result_cls=result_cls,
            throw_on_error=throw_on_error,
        )

    @property
    def state(self) -> TransactionState:
        return self._state

    @property
    def active(self) -> bool:
        return self._state is TransactionState.active

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    async def query(
        self,
        sql: str,
        params: Any = None,
        *,
        timeout: float | None = None,
        signal: CancelSignal | None = None,
        throw_on_error: bool | None = None,
    ) -> R:
        """Run one statement inside the transaction; state is never changed here."""
        async with self._lock:
            if not self.active:
                error = TransactionFinishedError(self._state.value)
                if self._runner.should_throw(throw_on_error, scoped=self._throw_on_error):
                    raise error
                return self._result_cls.failure(error, duration=0.0)

            return await self._runner.run(
                "transaction_query",
                self._connection.execute(sql, params),
                self._build,
                self._result_cls,
                timeout=timeout,
                signal=signal,
                throw_on_error=throw_on_error,
                scoped_throw=self._throw_on_error,
                sql=format_value(sql),
            )

    async def query_one(self, sql: str, params: Any = None, **options: Any) -> Any:
        """First row of the statement's result, or None; failures are raised."""
        result = await self.query(sql, params, **options)
        result.raise_for_error()
        rows = getattr(result, "rows", None) or []
        return rows[0] if rows else None

    # ------------------------------------------------------------------
    # Terminal transitions
    # ------------------------------------------------------------------

    async def commit(self) -> None:
        await self._finish(TransactionState.committed)

    async def rollback(self) -> None:
        await self._finish(TransactionState.rolled_back)

    async def _finish(self, target: TransactionState) -> None:
        async with self._lock:
            if not self.active:
                raise TransactionFinishedError(self._state.value)

            succeeded = False
            try:
                if target is TransactionState.committed:
                    await self._connection.commit()
                else:
                    await self._connection.rollback()
                succeeded = True
            except Exception as exc:
                error = self._runner.mapper(exc)
                logger.warning(
                    "transaction_finish_failed",
                    backend=self._runner.backend,
                    action=target.value,
                    kind=error.kind.value,
                    error=error.message,
                )
                raise_classified(error, exc)
            finally:
                # A failed COMMIT leaves the server-side transaction aborted.
                self._state = target if succeeded else TransactionState.rolled_back
                await self._release()

            logger.debug("transaction_finished", backend=self._runner.backend, state=self._state.value)

    async def _release(self) -> None:
        if self._released:
            return
        self._released = True
        await self._connection.release()

    # ------------------------------------------------------------------
    # Scoped usage
    # ------------------------------------------------------------------

    async def __aenter__(self) -> "Transaction[R]":
        return self

    async def __aexit__(self, exc_type, exc_value, traceback) -> None:
        if not self.active:
            return
        if exc_type is None:
            await self.commit()
        else:
            await self.rollback()


async def run_in_transaction(
    begin: Callable[[], Awaitable[Transaction[R]]],
    fn: Callable[[Transaction[R]], Awaitable[T]],
) -> T:
    """
    Begin a transaction, run ``fn`` with it, commit on return, roll back on error.

    The original exception from ``fn`` is re-raised even if the rollback itself
    fails; the rollback failure is logged.  ``fn`` may finish the transaction
    itself, in which case nothing further is issued.
    """
    tx = await begin()
    try:
        result = await fn(tx)
    except BaseException:
        if tx.active:
            try:
                await tx.rollback()
            except Exception as rollback_exc:
                logger.error("transaction_rollback_failed", error=str(rollback_exc))
        raise
    if tx.active:
        await tx.commit()
    return result
