"""
Scenario runner.

Executes every scenario check against every configured target, collects
ScenarioResult objects, writes JSON to results/scenario_results.json and
prints a Rich summary table.

    python -m scenarios.runner

Targets come from the SCENARIO_* environment variables (one "local" target)
unless ``run_all`` is given its own mapping.
"""
from __future__ import annotations

import asyncio
import dataclasses
import json
from datetime import datetime, timezone
from pathlib import Path
from types import ModuleType

import structlog
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from scenario_clients.shared.log import configure_logging
from scenarios import ScenarioResult, ScenarioSettings
from scenarios.checks import (
    http_health,
    kv_optimistic_update,
    rabbitmq_roundtrip,
    redis_roundtrip,
    sql_transaction,
)

logger = structlog.get_logger(__name__)

SCENARIO_MODULES: list[ModuleType] = [
    http_health,
    redis_roundtrip,
    sql_transaction,
    kv_optimistic_update,
    rabbitmq_roundtrip,
]

RESULTS_DIR = Path(__file__).parent.parent / "results"


def default_targets() -> dict[str, ScenarioSettings]:
    return {"local": ScenarioSettings()}


async def run_all(
    targets: dict[str, ScenarioSettings] | None = None,
    modules: list[ModuleType] | None = None,
) -> list[ScenarioResult]:
    """Run every scenario against every target and return all results."""
    all_results: list[ScenarioResult] = []

    for target, settings in (targets or default_targets()).items():
        for module in modules or SCENARIO_MODULES:
            name = getattr(module, "SCENARIO_NAME", None) or getattr(module, "__name__", repr(module))
            logger.info("scenario_started", scenario=name, target=target)
            try:
                result: ScenarioResult = await module.run(target=target, settings=settings)
            except Exception as exc:
                logger.error("scenario_crashed", scenario=name, target=target, error=str(exc))
                result = ScenarioResult(
                    scenario_name=name,
                    target=target,
                    expected_outcome="no exception",
                    actual_outcome="runner exception",
                    correct=False,
                    error=str(exc),
                )
            logger.info(
                "scenario_finished",
                scenario=name,
                target=target,
                correct=result.correct,
                duration_ms=round(result.duration, 2),
            )
            all_results.append(result)

    return all_results


def save_results(results: list[ScenarioResult], results_dir: Path = RESULTS_DIR) -> Path:
    """Serialise results to JSON."""
    results_dir.mkdir(parents=True, exist_ok=True)
    output_path = results_dir / "scenario_results.json"
    with open(output_path, "w") as fh:
        json.dump(
            {
                "run_at": datetime.now(timezone.utc).isoformat(),
                "results": [dataclasses.asdict(r) for r in results],
            },
            fh,
            indent=2,
            default=str,
        )
    return output_path


def print_table(results: list[ScenarioResult], console: Console | None = None) -> None:
    """Print Rich summary table."""
    console = console or Console()
    table = Table(title="Scenario Results", show_lines=True)
    table.add_column("Scenario", style="cyan", no_wrap=True)
    table.add_column("Target", style="magenta")
    table.add_column("Expected", style="white")
    table.add_column("Actual", style="white")
    table.add_column("Duration", justify="right")
    table.add_column("Pass/Fail", justify="center")

    for r in results:
        status = "[green]✓ PASS[/green]" if r.correct else "[red]✗ FAIL[/red]"
        table.add_row(
            escape(r.scenario_name),
            r.target,
            escape(r.expected_outcome),
            escape(r.actual_outcome if r.correct else (r.error or r.actual_outcome)),
            f"{r.duration:.1f}ms",
            status,
        )

    console.print(table)
    total = len(results)
    passed = sum(1 for r in results if r.correct)
    console.print(f"\n[bold]Total: {total}  Passed: {passed}  Failed: {total - passed}[/bold]")


async def main() -> None:
    configure_logging(json=False)
    results = await run_all()
    path = save_results(results)
    print_table(results)
    print(f"\nResults written to {path}")


def cli() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    cli()
