"""
RabbitMQ round-trip scenario.

Declares a scratch queue, publishes a JSON message to it through the default
exchange, fetches it back with basic.get, acknowledges it and finally checks
the queue is empty before deleting it.
"""
from __future__ import annotations

import uuid

from scenario_clients import ClientError, ExpectationError, RabbitMqClient, RabbitMqClientConfig, expect
from scenario_clients.shared.result import elapsed_ms, monotonic_ms
from scenarios import ScenarioResult, ScenarioSettings

SCENARIO_NAME = "rabbitmq_roundtrip"


async def run(target: str, settings: ScenarioSettings) -> ScenarioResult:
    queue = f"scenario.{uuid.uuid4().hex[:12]}"
    message_id = str(uuid.uuid4())
    started = monotonic_ms()
    steps: list[str] = []
    error: str | None = None

    try:
        client = await RabbitMqClient.connect(
            settings.rabbitmq_url,
            RabbitMqClientConfig(timeout=settings.timeout, throw_on_error=True),
        )
        async with client:
            await client.declare_queue(queue, auto_delete=False)
            steps.append("declared")
            try:
                await client.send_to_queue(queue, {"job": "scenario", "attempt": 1}, message_id=message_id)
                steps.append("published")

                fetched = await client.get(queue)
                expect(fetched).ok().has_content().json_contains({"job": "scenario"}).property_contains(
                    {"message_id": message_id, "content_type": "application/json"}
                )
                steps.append("consumed")

                expect(await client.ack(fetched.message)).ok()
                steps.append("acked")

                expect(await client.get(queue)).ok().no_content()
            finally:
                await client.delete_queue(queue)
    except (ClientError, ExpectationError) as exc:
        error = str(exc)

    return ScenarioResult(
        scenario_name=SCENARIO_NAME,
        target=target,
        expected_outcome="message published, consumed once and acknowledged",
        actual_outcome=" -> ".join(steps) or "no step completed",
        correct=error is None,
        details={"queue": queue, "message_id": message_id, "steps": steps},
        error=error,
        duration=elapsed_ms(started),
    )
