"""
Backend adapters.

Importing this package registers every adapter's expectation chain with
``scenario_clients.shared.expect.expect``.
"""
from __future__ import annotations

from scenario_clients.adapters import graphql, http, kv, rabbitmq, redis, rpc, sql

__all__ = ["graphql", "http", "kv", "rabbitmq", "redis", "rpc", "sql"]
