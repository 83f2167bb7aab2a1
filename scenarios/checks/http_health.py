"""
HTTP health scenario.

Requests the target's health endpoint and asserts a 2xx JSON response with
``status: ok``.
"""
from __future__ import annotations

from scenario_clients import ClientError, ExpectationError, HttpClient, HttpClientConfig, expect
from scenario_clients.shared.result import elapsed_ms, monotonic_ms
from scenarios import ScenarioResult, ScenarioSettings

SCENARIO_NAME = "http_health"


async def run(target: str, settings: ScenarioSettings) -> ScenarioResult:
    """Execute the health check against ``settings.http_base_url``."""
    started = monotonic_ms()
    status: int | None = None
    error: str | None = None

    try:
        config = HttpClientConfig(timeout=settings.timeout)
        async with HttpClient(settings.http_base_url, config) as client:
            response = await client.get(settings.health_path, throw_on_error=False)
            status = response.status
            expect(response).ok().status_in_range(200, 299).json_contains({"status": "ok"})
    except (ClientError, ExpectationError) as exc:
        error = str(exc)

    return ScenarioResult(
        scenario_name=SCENARIO_NAME,
        target=target,
        expected_outcome="2xx with status=ok",
        actual_outcome=f"status={status}",
        correct=error is None,
        details={"url": settings.http_base_url + settings.health_path, "status": status},
        error=error,
        duration=elapsed_ms(started),
    )
