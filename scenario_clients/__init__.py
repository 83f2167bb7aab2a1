"""
Scenario clients: uniform result, error and assertion contracts over HTTP,
GraphQL, RPC, Redis, SQL, key-value and RabbitMQ backends.
"""
from __future__ import annotations

from scenario_clients import adapters  # noqa: F401  registers expectation chains
from scenario_clients.adapters.graphql import GraphqlClient
from scenario_clients.adapters.http import HttpClient, HttpClientConfig
from scenario_clients.adapters.kv import KvClient, MemoryKvStore
from scenario_clients.adapters.rabbitmq import RabbitMqClient, RabbitMqClientConfig
from scenario_clients.adapters.redis import RedisClient, RedisClientConfig, RedisConnectionConfig
from scenario_clients.adapters.rpc import RpcClient, StatusCode
from scenario_clients.adapters.sql import SqlClient, SqlClientConfig
from scenario_clients.shared import (
    CancelSignal,
    ClientConfig,
    ClientError,
    ClientResult,
    ControlError,
    ErrorKind,
    ExpectationError,
    IsolationLevel,
    Outcome,
    RetryOptions,
    Transaction,
    TransactionFinishedError,
    TransactionState,
    contains_subset,
    expect,
)
from scenario_clients.shared.log import configure_logging

__all__ = [
    "CancelSignal",
    "ClientConfig",
    "ClientError",
    "ClientResult",
    "ControlError",
    "ErrorKind",
    "ExpectationError",
    "GraphqlClient",
    "HttpClient",
    "HttpClientConfig",
    "IsolationLevel",
    "KvClient",
    "MemoryKvStore",
    "Outcome",
    "RabbitMqClient",
    "RabbitMqClientConfig",
    "RedisClient",
    "RedisClientConfig",
    "RedisConnectionConfig",
    "RetryOptions",
    "RpcClient",
    "SqlClient",
    "SqlClientConfig",
    "StatusCode",
    "Transaction",
    "TransactionFinishedError",
    "TransactionState",
    "configure_logging",
    "contains_subset",
    "expect",
]
