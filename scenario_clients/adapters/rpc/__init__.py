"""gRPC / Connect status classification and a unary call invoker."""
from __future__ import annotations

from .client import RpcClient
from .errors import STATUS_KINDS, RpcError, StatusCode, is_status_code, map_rpc_error, status_name
from .expect import RpcExpectation
from .results import RpcResult

__all__ = [
    "STATUS_KINDS",
    "RpcClient",
    "RpcError",
    "RpcExpectation",
    "RpcResult",
    "StatusCode",
    "is_status_code",
    "map_rpc_error",
    "status_name",
]
