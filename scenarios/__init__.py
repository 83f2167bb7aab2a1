"""
Scenario checks package.

Provides the ScenarioResult dataclass and the ScenarioSettings model used by
all check modules.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel

from scenario_clients.shared.config import DATABASE_URL, HTTP_BASE_URL, RABBITMQ_URL, REDIS_URL


class ScenarioSettings(BaseModel):
    """Backend endpoints one target environment exposes."""

    http_base_url: str = HTTP_BASE_URL
    health_path: str = "/health"
    redis_url: str = REDIS_URL
    database_url: str = DATABASE_URL
    rabbitmq_url: str = RABBITMQ_URL
    timeout: float = 10.0


@dataclass
class ScenarioResult:
    """Result of a single scenario check run against a single target."""

    scenario_name: str
    target: str
    expected_outcome: str
    actual_outcome: str
    correct: bool
    details: dict[str, Any] = field(default_factory=dict)
    error: str | None = None
    duration: float = 0.0
