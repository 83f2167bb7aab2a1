"""
Unary RPC invoker.

``method`` is any callable that takes the request message (and optionally
``metadata=``) and returns an awaitable: a ``grpc.aio`` multi-callable from a
generated stub, a Connect client method, or a plain coroutine function.
"""
from __future__ import annotations

import inspect
from typing import Any, Awaitable, Callable, Mapping

import structlog

from scenario_clients.shared.cancellation import CancelSignal
from scenario_clients.shared.config import ClientConfig
from scenario_clients.shared.pipeline import OperationRunner

from .errors import StatusCode, map_rpc_error
from .results import RpcResult

logger = structlog.get_logger(__name__)

RpcMethod = Callable[..., Awaitable[Any]]


async def _trailing_metadata(call: Any) -> dict[str, Any]:
    trailing = getattr(call, "trailing_metadata", None)
    if not callable(trailing):
        return {}
    metadata = trailing()
    if inspect.isawaitable(metadata):
        metadata = await metadata
    if metadata is None:
        return {}
    return dict(metadata) if isinstance(metadata, Mapping) else {key: value for key, value in metadata}


def _method_name(method: RpcMethod) -> str:
    for attr in ("_method", "__qualname__", "__name__"):
        name = getattr(method, attr, None)
        if name:
            return name.decode() if isinstance(name, bytes) else str(name)
    return type(method).__name__


class RpcClient:
    def __init__(self, config: ClientConfig | None = None) -> None:
        self.config = config or ClientConfig()
        self._runner = OperationRunner(
            backend="rpc",
            mapper=map_rpc_error,
            config=self.config,
            default_throw_on_error=True,
        )

    async def _invoke(
        self,
        method: RpcMethod,
        request: Any,
        metadata: Mapping[str, str] | None,
    ) -> tuple[Any, dict[str, Any]]:
        if metadata:
            call = method(request, metadata=tuple(metadata.items()))
        else:
            call = method(request)
        response = await call
        return response, await _trailing_metadata(call)

    async def call(
        self,
        method: RpcMethod,
        request: Any,
        *,
        metadata: Mapping[str, str] | None = None,
        timeout: float | None = None,
        signal: CancelSignal | None = None,
        throw_on_error: bool | None = None,
    ) -> RpcResult:
        def build(native: tuple[Any, dict[str, Any]], duration: float) -> RpcResult:
            response, trailing = native
            return RpcResult.success(
                duration=duration,
                code=StatusCode.OK,
                message=response,
                metadata=trailing,
            )

        return await self._runner.run(
            "call",
            self._invoke(method, request, metadata),
            build,
            RpcResult,
            timeout=timeout,
            signal=signal,
            throw_on_error=throw_on_error,
            method=_method_name(method),
        )
