"""
SQL client over SQLAlchemy's asyncio engine.

Pooled queries borrow one connection from the engine pool for the duration of
a single statement and return it on settlement.  Transactions reserve one
connection until commit or rollback:

    engine.connect() -> execution_options(isolation_level) -> begin()
        -> execute ... -> commit() | rollback() -> close()

Parameters given as a mapping are bound through ``text()`` (``:name`` style);
a sequence is passed to the driver as-is (``$1`` for asyncpg, ``?`` for
sqlite, ``%s`` for mysql).
"""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Awaitable, Callable, TypeVar

import structlog
from pydantic import Field
from sqlalchemy import text
from sqlalchemy.engine import CursorResult
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from scenario_clients.shared.cancellation import CancelSignal
from scenario_clients.shared.config import DATABASE_URL, ClientConfig
from scenario_clients.shared.errors import ClientError, ErrorKind
from scenario_clients.shared.pipeline import OperationRunner, format_value, raise_classified
from scenario_clients.shared.result import Rows
from scenario_clients.shared.transaction import IsolationLevel, Transaction, run_in_transaction

from .errors import mapper_for_dialect
from .results import QuerySnapshot, SqlQueryResult

logger = structlog.get_logger(__name__)

T = TypeVar("T")

ISOLATION_NAMES: dict[IsolationLevel, str] = {
    IsolationLevel.read_uncommitted: "READ UNCOMMITTED",
    IsolationLevel.read_committed: "READ COMMITTED",
    IsolationLevel.repeatable_read: "REPEATABLE READ",
    IsolationLevel.serializable: "SERIALIZABLE",
}

# SQLite only knows the two pragma-backed levels.
SQLITE_ISOLATION_NAMES: dict[IsolationLevel, str] = {
    IsolationLevel.read_uncommitted: "READ UNCOMMITTED",
    IsolationLevel.read_committed: "SERIALIZABLE",
    IsolationLevel.repeatable_read: "SERIALIZABLE",
    IsolationLevel.serializable: "SERIALIZABLE",
}

# Dialects whose cursors report a meaningful lastrowid.
LASTROWID_DIALECTS = frozenset({"sqlite", "mysql", "mariadb"})


class SqlClientConfig(ClientConfig):
    pool_size: int | None = Field(default=None, ge=1)
    max_overflow: int | None = Field(default=None, ge=0)
    pool_pre_ping: bool = True
    echo: bool = False


def isolation_name(dialect: str, level: IsolationLevel) -> str:
    names = SQLITE_ISOLATION_NAMES if dialect == "sqlite" else ISOLATION_NAMES
    return names[IsolationLevel(level)]


async def execute_statement(
    conn: AsyncConnection,
    sql: str,
    params: Any,
    *,
    dialect: str,
) -> QuerySnapshot:
    """Run one statement on ``conn`` and copy everything needed out of the cursor."""
    if params is None or isinstance(params, Mapping):
        cursor: CursorResult = await conn.execute(text(sql), dict(params or {}))
    elif isinstance(params, Sequence) and not isinstance(params, (str, bytes)):
        cursor = await conn.exec_driver_sql(sql, tuple(params))
    else:
        raise ClientError(
            f"Unsupported parameter container: {type(params).__name__}",
            ErrorKind.query_syntax,
        )

    if cursor.returns_rows:
        rows = Rows(dict(row) for row in cursor.mappings().all())
        row_count = len(rows)
        last_insert_id = None
    else:
        rows = Rows()
        row_count = cursor.rowcount if cursor.rowcount is not None and cursor.rowcount >= 0 else 0
        last_insert_id = cursor.lastrowid if dialect in LASTROWID_DIALECTS else None
        if not last_insert_id:
            last_insert_id = None
    return QuerySnapshot(rows=rows, row_count=row_count, last_insert_id=last_insert_id)


class SqlReservedConnection:
    """One engine connection held for the lifetime of a transaction."""

    def __init__(self, conn: AsyncConnection, dialect: str) -> None:
        self._conn = conn
        self._dialect = dialect

    async def begin(self, isolation_level: IsolationLevel | None) -> None:
        if isolation_level is not None:
            await self._conn.execution_options(
                isolation_level=isolation_name(self._dialect, isolation_level)
            )
        await self._conn.begin()

    async def execute(self, statement: str, params: Any = None) -> QuerySnapshot:
        return await execute_statement(self._conn, statement, params, dialect=self._dialect)

    async def commit(self) -> None:
        await self._conn.commit()

    async def rollback(self) -> None:
        await self._conn.rollback()

    async def release(self) -> None:
        await self._conn.close()


class SqlClient:
    """Query runner bound to one SQLAlchemy ``AsyncEngine``."""

    def __init__(self, engine: AsyncEngine, config: SqlClientConfig | None = None) -> None:
        self._engine = engine
        self.config = config or SqlClientConfig()
        self._runner = OperationRunner(
            backend="sql",
            mapper=mapper_for_dialect(engine.dialect.name),
            config=self.config,
            default_throw_on_error=False,
        )
        self._closed = False

    @classmethod
    async def connect(
        cls,
        url: str = DATABASE_URL,
        config: SqlClientConfig | None = None,
    ) -> "SqlClient":
        """Create an engine for ``url`` and verify it with ``SELECT 1``."""
        config = config or SqlClientConfig()
        engine_kwargs: dict[str, Any] = {"pool_pre_ping": config.pool_pre_ping, "echo": config.echo}
        if config.pool_size is not None:
            engine_kwargs["pool_size"] = config.pool_size
        if config.max_overflow is not None:
            engine_kwargs["max_overflow"] = config.max_overflow
        engine = create_async_engine(url, **engine_kwargs)

        client = cls(engine, config)
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception as exc:
            await engine.dispose()
            logger.error("sql_connect_failed", dialect=engine.dialect.name, error=str(exc))
            raise_classified(client._runner.mapper(exc), exc)
        logger.info("sql_connected", dialect=engine.dialect.name)
        return client

    @property
    def dialect(self) -> str:
        return self._engine.dialect.name

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    def _ensure_open(self) -> None:
        if self._closed:
            raise ClientError("SQL client is closed", ErrorKind.connection)

    # ------------------------------------------------------------------
    # Pooled statements
    # ------------------------------------------------------------------

    async def _pooled(self, sql: str, params: Any) -> QuerySnapshot:
        async with self._engine.connect() as conn:
            snapshot = await execute_statement(conn, sql, params, dialect=self.dialect)
            await conn.commit()
            return snapshot

    async def query(
        self,
        sql: str,
        params: Mapping[str, Any] | Sequence[Any] | None = None,
        *,
        timeout: float | None = None,
        signal: CancelSignal | None = None,
        throw_on_error: bool | None = None,
    ) -> SqlQueryResult:
        self._ensure_open()
        return await self._runner.run(
            "query",
            self._pooled(sql, params),
            SqlQueryResult.from_snapshot,
            SqlQueryResult,
            timeout=timeout,
            signal=signal,
            throw_on_error=throw_on_error,
            sql=format_value(sql),
        )

    async def query_one(
        self,
        sql: str,
        params: Mapping[str, Any] | Sequence[Any] | None = None,
        **options: Any,
    ) -> dict[str, Any] | None:
        """First row or None.  Failures are always raised here."""
        options.pop("throw_on_error", None)
        result = await self.query(sql, params, throw_on_error=True, **options)
        return result.rows.first() if result.rows is not None else None

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def begin(
        self,
        isolation_level: IsolationLevel | str | None = None,
        *,
        throw_on_error: bool | None = None,
    ) -> Transaction[SqlQueryResult]:
        """Reserve a connection and open a transaction on it."""
        self._ensure_open()
        level = IsolationLevel(isolation_level) if isolation_level is not None else None
        try:
            conn = await self._engine.connect()
        except Exception as exc:
            raise_classified(self._runner.mapper(exc), exc)
        return await Transaction.open(
            SqlReservedConnection(conn, self.dialect),
            runner=self._runner,
            build=SqlQueryResult.from_snapshot,
            result_cls=SqlQueryResult,
            isolation_level=level,
            throw_on_error=throw_on_error,
        )

    async def transaction(
        self,
        fn: Callable[[Transaction[SqlQueryResult]], Awaitable[T]],
        *,
        isolation_level: IsolationLevel | str | None = None,
        throw_on_error: bool | None = None,
    ) -> T:
        """Run ``fn`` inside a transaction: commit on return, roll back on error."""
        return await run_in_transaction(
            lambda: self.begin(isolation_level, throw_on_error=throw_on_error),
            fn,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._engine.dispose()
        logger.info("sql_client_closed", dialect=self.dialect)

    async def __aenter__(self) -> "SqlClient":
        return self

    async def __aexit__(self, exc_type, exc_value, traceback) -> None:
        await self.close()
