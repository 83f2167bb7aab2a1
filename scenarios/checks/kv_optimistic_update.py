"""
KV optimistic update scenario.

Two writers read the same entry and race to update it, each guarding its
write with a version check.  Exactly one commit must win; the other must come
back check-failed naming the contested key.  Runs against the in-process
store, so it needs no external service.
"""
from __future__ import annotations

import asyncio

from scenario_clients import ClientError, ExpectationError, KvClient, Outcome, expect
from scenario_clients.shared.result import elapsed_ms, monotonic_ms
from scenarios import ScenarioResult, ScenarioSettings

SCENARIO_NAME = "kv_optimistic_update"

KEY = ("accounts", "scenario")


async def _guarded_increment(kv: KvClient, versionstamp: str | None, balance: int, amount: int):
    return await (
        kv.atomic()
        .check(KEY, versionstamp)
        .set(KEY, {"balance": balance + amount})
        .sum(("stats", "writes"), 1)
        .commit()
    )


async def run(target: str, settings: ScenarioSettings) -> ScenarioResult:
    started = monotonic_ms()
    outcomes: list[str] = []
    error: str | None = None

    try:
        async with KvClient() as kv:
            expect(await kv.set(KEY, {"balance": 100})).ok().has_versionstamp()
            entry = await kv.get(KEY)
            expect(entry).ok().value_contains({"balance": 100})

            results = await asyncio.gather(
                _guarded_increment(kv, entry.versionstamp, entry.value["balance"], 10),
                _guarded_increment(kv, entry.versionstamp, entry.value["balance"], 20),
            )
            outcomes = [r.outcome.value for r in results]
            winners = [r for r in results if r.outcome is Outcome.ok]
            losers = [r for r in results if r.outcome is Outcome.check_failed]
            if len(winners) != 1 or len(losers) != 1:
                raise ExpectationError(f"Expected one winner and one check-failed commit, got {outcomes}")
            expect(losers[0]).check_failed().failed_checks(KEY)
            expect(await kv.get(("stats", "writes"))).ok().value(1)
    except (ClientError, ExpectationError) as exc:
        error = str(exc)

    return ScenarioResult(
        scenario_name=SCENARIO_NAME,
        target=target,
        expected_outcome="exactly one guarded commit wins",
        actual_outcome=", ".join(outcomes) or "no commit completed",
        correct=error is None,
        details={"key": list(KEY), "outcomes": outcomes},
        error=error,
        duration=elapsed_ms(started),
    )
