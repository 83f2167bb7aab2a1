"""
Timeout and abort-signal composition around native awaitables.

``with_cancellation`` races a native operation against an optional timer and
an optional CancelSignal and settles exactly once.  Whatever wins, the timer
handle is cancelled and the signal listener removed before returning, so no
watcher outlives the call.  A losing native operation is cancelled and its
late outcome discarded; callers never see it.

Timeouts are expressed in seconds, like asyncio and httpx.
"""
from __future__ import annotations

import asyncio
import inspect
from typing import Any, Awaitable, Callable, TypeVar

import structlog

from scenario_clients.shared.errors import ClientError, ControlError, ErrorKind

logger = structlog.get_logger(__name__)

T = TypeVar("T")

Listener = Callable[[], None]


class CancelSignal:
    """
    Cooperative cancellation primitive.

    Exposes the two things the composition layer needs: an ``aborted`` check
    and a one-shot "on abort" subscription.  Listeners run once, in
    registration order, and are dropped after ``abort``.
    """

    def __init__(self) -> None:
        self._aborted = False
        self._reason: str | None = None
        self._listeners: list[Listener] = []

    @property
    def aborted(self) -> bool:
        return self._aborted

    @property
    def reason(self) -> str | None:
        return self._reason

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def add_listener(self, listener: Listener) -> None:
        if self._aborted:
            raise RuntimeError("Signal is already aborted")
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def abort(self, reason: str = "Operation aborted") -> None:
        if self._aborted:
            return
        self._aborted = True
        self._reason = reason
        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            listener()

    @classmethod
    def after(cls, seconds: float) -> "CancelSignal":
        """Signal that aborts itself after ``seconds`` (requires a running loop)."""
        signal = cls()
        asyncio.get_running_loop().call_later(seconds, signal.abort, f"Aborted after {seconds}s")
        return signal


def timeout_error(operation: str, timeout: float) -> ControlError:
    return ControlError(
        f"{operation} timed out after {timeout}s",
        ErrorKind.timeout,
        details={"operation": operation, "timeout": timeout},
    )


def cancelled_error(operation: str, reason: str | None = None) -> ControlError:
    message = f"{operation} aborted"
    if reason:
        message = f"{message}: {reason}"
    return ControlError(message, ErrorKind.cancelled, details={"operation": operation})


def _discard_awaitable(awaitable: Awaitable[Any]) -> None:
    if inspect.iscoroutine(awaitable):
        awaitable.close()
    elif callable(getattr(awaitable, "cancel", None)):
        # asyncio futures and RPC call objects
        awaitable.cancel()


def _discard_outcome(task: asyncio.Future) -> None:
    if not task.cancelled():
        task.exception()


async def with_cancellation(
    awaitable: Awaitable[T],
    *,
    timeout: float | None = None,
    signal: CancelSignal | None = None,
    operation: str = "operation",
) -> T:
    """Await ``awaitable`` honouring ``timeout`` and ``signal``; settle once."""
    if timeout is None and signal is None:
        return await awaitable

    if signal is not None and signal.aborted:
        _discard_awaitable(awaitable)
        raise cancelled_error(operation, signal.reason)

    loop = asyncio.get_running_loop()
    task = asyncio.ensure_future(awaitable)
    settled: asyncio.Future[ClientError] = loop.create_future()

    def settle(error: ClientError) -> None:
        if not settled.done():
            settled.set_result(error)

    def on_timeout() -> None:
        settle(timeout_error(operation, timeout))

    def on_abort() -> None:
        settle(cancelled_error(operation, signal.reason if signal else None))

    timer = loop.call_later(timeout, on_timeout) if timeout is not None else None
    if signal is not None:
        signal.add_listener(on_abort)

    try:
        done, _ = await asyncio.wait({task, settled}, return_when=asyncio.FIRST_COMPLETED)
        if task in done:
            return task.result()
        error = settled.result()
        logger.debug("operation_abandoned", operation=operation, kind=error.kind.value)
        raise error
    finally:
        if timer is not None:
            timer.cancel()
        if signal is not None:
            signal.remove_listener(on_abort)
        if not task.done():
            task.cancel()
            task.add_done_callback(_discard_outcome)
        if not settled.done():
            settled.cancel()
