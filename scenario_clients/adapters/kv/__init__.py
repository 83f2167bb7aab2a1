"""Versioned key-value adapter with immutable atomic batches."""
from __future__ import annotations

from .client import AtomicBatch, KvClient
from .errors import map_kv_error
from .expect import KvExpectation, KvListExpectation
from .results import KvAtomicResult, KvDeleteResult, KvGetResult, KvListResult, KvSetResult
from .store import (
    KvCheck,
    KvClosed,
    KvEntry,
    KvError,
    KvInvalidKey,
    KvInvalidMutation,
    KvMutation,
    KvQuotaExceeded,
    KvValueTooLarge,
    MemoryKvStore,
)

__all__ = [
    "AtomicBatch",
    "KvAtomicResult",
    "KvCheck",
    "KvClient",
    "KvClosed",
    "KvDeleteResult",
    "KvEntry",
    "KvError",
    "KvExpectation",
    "KvGetResult",
    "KvInvalidKey",
    "KvInvalidMutation",
    "KvListExpectation",
    "KvListResult",
    "KvMutation",
    "KvQuotaExceeded",
    "KvSetResult",
    "KvValueTooLarge",
    "MemoryKvStore",
    "map_kv_error",
]
