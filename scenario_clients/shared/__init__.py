"""Shared building blocks used by every adapter."""
from __future__ import annotations

from scenario_clients.shared.cancellation import CancelSignal, with_cancellation
from scenario_clients.shared.config import ClientConfig, RetryOptions, resolve_option
from scenario_clients.shared.containment import contains_subset, find_mismatch
from scenario_clients.shared.errors import (
    ClientError,
    ControlError,
    ErrorKind,
    TransactionFinishedError,
    classifier,
    is_control_error,
)
from scenario_clients.shared.expect import ExpectationError, ResultExpectation, expect
from scenario_clients.shared.result import ClientResult, Outcome, Rows
from scenario_clients.shared.transaction import (
    IsolationLevel,
    Transaction,
    TransactionState,
    run_in_transaction,
)

__all__ = [
    "CancelSignal",
    "ClientConfig",
    "ClientError",
    "ClientResult",
    "ControlError",
    "ErrorKind",
    "ExpectationError",
    "IsolationLevel",
    "Outcome",
    "ResultExpectation",
    "RetryOptions",
    "Rows",
    "Transaction",
    "TransactionFinishedError",
    "TransactionState",
    "classifier",
    "contains_subset",
    "expect",
    "find_mismatch",
    "is_control_error",
    "resolve_option",
    "run_in_transaction",
    "with_cancellation",
]
