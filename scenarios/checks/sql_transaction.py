"""
SQL transaction scenario.

Creates a scratch table and checks both transaction outcomes:

- a transaction whose body raises is rolled back (row count stays 0);
- a transaction that returns normally is committed (row count 1);
- the committed handle refuses further statements.
"""
from __future__ import annotations

import uuid

from scenario_clients import (
    ClientError,
    ExpectationError,
    SqlClient,
    SqlClientConfig,
    TransactionFinishedError,
    expect,
)
from scenario_clients.shared.result import elapsed_ms, monotonic_ms
from scenarios import ScenarioResult, ScenarioSettings

SCENARIO_NAME = "sql_transaction"


class AbortTransaction(Exception):
    """Raised inside a transaction body to force a rollback."""


async def _count(client: SqlClient, table: str, expected: int) -> int:
    result = await client.query(f"SELECT COUNT(*) AS n FROM {table}")
    expect(result).ok().row_contains({"n": expected})
    return result.rows.first()["n"]


async def check_transactions(client: SqlClient, table: str) -> dict[str, int]:
    counts: dict[str, int] = {}
    insert = f"INSERT INTO {table} (id, name) VALUES (:id, :name)"

    async def insert_then_abort(tx) -> None:
        await tx.query(insert, {"id": 1, "name": "rolled"})
        raise AbortTransaction()

    try:
        await client.transaction(insert_then_abort)
    except AbortTransaction:
        pass
    counts["after_rollback"] = await _count(client, table, 0)

    async with await client.begin() as tx:
        expect(await tx.query(insert, {"id": 2, "name": "kept"})).ok().row_count(1)
    counts["after_commit"] = await _count(client, table, 1)

    try:
        await tx.query(f"SELECT * FROM {table}", throw_on_error=True)
    except TransactionFinishedError:
        return counts
    raise ExpectationError("Expected the committed transaction to reject further statements")


async def run(target: str, settings: ScenarioSettings) -> ScenarioResult:
    table = f"scenario_{uuid.uuid4().hex[:12]}"
    started = monotonic_ms()
    counts: dict[str, int] = {}
    error: str | None = None

    try:
        client = await SqlClient.connect(settings.database_url, SqlClientConfig(timeout=settings.timeout))
        async with client:
            await client.query(
                f"CREATE TABLE {table} (id INTEGER PRIMARY KEY, name VARCHAR(50))",
                throw_on_error=True,
            )
            try:
                counts = await check_transactions(client, table)
            finally:
                await client.query(f"DROP TABLE {table}")
    except (ClientError, ExpectationError) as exc:
        error = str(exc)

    return ScenarioResult(
        scenario_name=SCENARIO_NAME,
        target=target,
        expected_outcome="rollback discards, commit keeps, finished handle rejects",
        actual_outcome=f"after_rollback={counts.get('after_rollback')} after_commit={counts.get('after_commit')}",
        correct=error is None,
        details={"table": table, **counts},
        error=error,
        duration=elapsed_ms(started),
    )
