"""
The per-operation pipeline every adapter runs its native calls through.

    native call -> with_cancellation -> classify failure -> build Result
                -> raise or return according to throw_on_error

Classification happens here and only here; higher layers (transactions,
expectations) pass the resulting ClientError through untouched.
"""
from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, TypeVar

import structlog

from scenario_clients.shared.cancellation import CancelSignal, with_cancellation
from scenario_clients.shared.config import ClientConfig, resolve_option
from scenario_clients.shared.errors import ClientError, Mapper, is_control_error
from scenario_clients.shared.result import ClientResult, elapsed_ms, monotonic_ms

logger = structlog.get_logger(__name__)

N = TypeVar("N")
R = TypeVar("R", bound=ClientResult)

MAX_LOGGED_VALUE = 200


def format_value(value: Any) -> str:
    """Render a value for debug logs, truncated to a readable length."""
    text = value if isinstance(value, str) else repr(value)
    if len(text) > MAX_LOGGED_VALUE:
        return text[:MAX_LOGGED_VALUE] + "..."
    return text


def raise_classified(error: ClientError, native: BaseException | None = None) -> None:
    if native is None or error is native:
        raise error
    raise error from native


class OperationRunner:
    """Runs native calls for one client with its mapper and option defaults."""

    def __init__(
        self,
        *,
        backend: str,
        mapper: Mapper,
        config: ClientConfig | None = None,
        default_throw_on_error: bool,
    ) -> None:
        self.backend = backend
        self.mapper = mapper
        self.config = config or ClientConfig()
        self.default_throw_on_error = default_throw_on_error

    def should_throw(self, throw_on_error: bool | None, *, scoped: bool | None = None) -> bool:
        """
        Resolve throw_on_error: call option, then ``scoped`` (e.g. a transaction's
        own option), then client config, then the backend default.
        """
        return resolve_option(
            throw_on_error,
            resolve_option(scoped, self.config.throw_on_error, None),
            self.default_throw_on_error,
        )

    def timeout_for(self, timeout: float | None) -> float | None:
        return resolve_option(timeout, self.config.timeout, None)

    async def run(
        self,
        operation: str,
        call: Awaitable[N],
        build: Callable[[N, float], R],
        result_cls: type[R],
        *,
        timeout: float | None = None,
        signal: CancelSignal | None = None,
        throw_on_error: bool | None = None,
        scoped_throw: bool | None = None,
        **log_context: Any,
    ) -> R:
        throw = self.should_throw(throw_on_error, scoped=scoped_throw)
        started = monotonic_ms()
        logger.debug(f"{self.backend}_operation_started", operation=operation, **log_context)
        try:
            native = await with_cancellation(
                call,
                timeout=self.timeout_for(timeout),
                signal=signal,
                operation=f"{self.backend} {operation}",
            )
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            duration = elapsed_ms(started)
            error = self.mapper(exc)
            logger.warning(
                f"{self.backend}_operation_failed",
                operation=operation,
                kind=error.kind.value,
                error=error.message,
                duration_ms=round(duration, 2),
                **log_context,
            )
            if throw or is_control_error(error):
                raise_classified(error, exc)
            return result_cls.failure(error, duration=duration)

        duration = elapsed_ms(started)
        result = build(native, duration)
        logger.debug(
            f"{self.backend}_operation_completed",
            operation=operation,
            outcome=result.outcome.value,
            duration_ms=round(duration, 2),
            **log_context,
        )
        if result.error is not None and (throw or is_control_error(result.error)):
            raise result.error
        return result
