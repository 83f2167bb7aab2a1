from __future__ import annotations

import asyncio
import inspect

import pytest

from scenario_clients.shared.cancellation import CancelSignal, with_cancellation
from scenario_clients.shared.errors import ClientError, ErrorKind


@pytest.fixture
def recorded_timers(monkeypatch):
    """Record every timer handle scheduled on the running loop."""
    handles: list[asyncio.TimerHandle] = []

    def install() -> list[asyncio.TimerHandle]:
        loop = asyncio.get_running_loop()
        original = loop.call_later

        def recording(delay, callback, *args, **kwargs):
            handle = original(delay, callback, *args, **kwargs)
            handles.append(handle)
            return handle

        monkeypatch.setattr(loop, "call_later", recording)
        return handles

    return install


async def _never_settles() -> None:
    await asyncio.Event().wait()


async def _returns(value, delay: float = 0.0):
    await asyncio.sleep(delay)
    return value


@pytest.mark.asyncio
async def test_timeout_wins_and_leaves_no_watchers(recorded_timers) -> None:
    handles = recorded_timers()
    signal = CancelSignal()

    with pytest.raises(ClientError) as exc_info:
        await with_cancellation(_never_settles(), timeout=0.05, signal=signal, operation="sql query")

    assert exc_info.value.kind is ErrorKind.timeout
    assert "timed out after 0.05s" in exc_info.value.message
    assert signal.listener_count == 0
    assert handles and all(h.cancelled() for h in handles)


@pytest.mark.asyncio
async def test_success_clears_timer_and_listener(recorded_timers) -> None:
    handles = recorded_timers()
    signal = CancelSignal()

    value = await with_cancellation(_returns("done"), timeout=5.0, signal=signal)

    assert value == "done"
    assert signal.listener_count == 0
    assert len(handles) == 1
    assert handles[0].cancelled()


@pytest.mark.asyncio
async def test_already_aborted_signal_never_starts_the_operation(recorded_timers) -> None:
    handles = recorded_timers()
    signal = CancelSignal()
    signal.abort("shutting down")
    coro = _returns("never")

    with pytest.raises(ClientError) as exc_info:
        await with_cancellation(coro, timeout=5.0, signal=signal, operation="redis get")

    assert exc_info.value.kind is ErrorKind.cancelled
    assert "shutting down" in exc_info.value.message
    assert handles == []
    assert inspect.getcoroutinestate(coro) == inspect.CORO_CLOSED


@pytest.mark.asyncio
async def test_abort_mid_flight_raises_cancelled() -> None:
    signal = CancelSignal()
    asyncio.get_running_loop().call_later(0.01, signal.abort, "user pressed stop")

    with pytest.raises(ClientError) as exc_info:
        await with_cancellation(_never_settles(), signal=signal, operation="http GET")

    assert exc_info.value.kind is ErrorKind.cancelled
    assert exc_info.value.message == "http GET aborted: user pressed stop"
    assert signal.listener_count == 0


@pytest.mark.asyncio
async def test_losing_operation_is_cancelled() -> None:
    state = {"cancelled": False}

    async def slow() -> None:
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            state["cancelled"] = True
            raise

    with pytest.raises(ClientError):
        await with_cancellation(slow(), timeout=0.01)
    await asyncio.sleep(0)

    assert state["cancelled"] is True


@pytest.mark.asyncio
async def test_native_errors_propagate_unchanged() -> None:
    async def fails() -> None:
        raise ValueError("native failure")

    with pytest.raises(ValueError, match="native failure"):
        await with_cancellation(fails(), timeout=1.0)


@pytest.mark.asyncio
async def test_no_timeout_and_no_signal_awaits_directly() -> None:
    assert await with_cancellation(_returns(7)) == 7


@pytest.mark.asyncio
async def test_signal_after_aborts_itself() -> None:
    signal = CancelSignal.after(0.01)
    await asyncio.sleep(0.05)

    assert signal.aborted
    assert signal.reason == "Aborted after 0.01s"


def test_signal_listeners_fire_once() -> None:
    signal = CancelSignal()
    calls: list[str] = []
    signal.add_listener(lambda: calls.append("first"))
    signal.add_listener(lambda: calls.append("second"))

    signal.abort()
    signal.abort("again")

    assert calls == ["first", "second"]
    assert signal.reason == "Operation aborted"
    assert signal.listener_count == 0
    with pytest.raises(RuntimeError):
        signal.add_listener(lambda: None)
