"""
Redis round-trip scenario.

1. SET NX a fresh key -> written.
2. SET NX the same key again -> check-failed, original value kept.
3. GET -> the first value.
4. DEL -> one key removed.
"""
from __future__ import annotations

import uuid

from scenario_clients import ClientError, ExpectationError, RedisClient, RedisClientConfig, expect
from scenario_clients.shared.result import elapsed_ms, monotonic_ms
from scenarios import ScenarioResult, ScenarioSettings

SCENARIO_NAME = "redis_roundtrip"


async def run(target: str, settings: ScenarioSettings) -> ScenarioResult:
    key = f"scenario:{uuid.uuid4()}"
    started = monotonic_ms()
    outcomes: list[str] = []
    error: str | None = None

    try:
        client = await RedisClient.connect(settings.redis_url, RedisClientConfig(timeout=settings.timeout))
        async with client:
            first = await client.set(key, "first", nx=True, ex=60)
            outcomes.append(first.outcome.value)
            expect(first).ok()

            second = await client.set(key, "second", nx=True, ex=60)
            outcomes.append(second.outcome.value)
            expect(second).check_failed()

            expect(await client.get(key)).ok().value("first")
            expect(await client.delete(key)).ok().count(1)
    except (ClientError, ExpectationError) as exc:
        error = str(exc)

    return ScenarioResult(
        scenario_name=SCENARIO_NAME,
        target=target,
        expected_outcome="first SET NX writes, second is check-failed",
        actual_outcome=", ".join(outcomes) or "no command completed",
        correct=error is None,
        details={"key": key, "set_outcomes": outcomes},
        error=error,
        duration=elapsed_ms(started),
    )
