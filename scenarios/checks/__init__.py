"""Bundled scenario checks, in the order the runner executes them."""
from __future__ import annotations

from scenarios.checks import (
    http_health,
    kv_optimistic_update,
    rabbitmq_roundtrip,
    redis_roundtrip,
    sql_transaction,
)

__all__ = [
    "http_health",
    "kv_optimistic_update",
    "rabbitmq_roundtrip",
    "redis_roundtrip",
    "sql_transaction",
]
