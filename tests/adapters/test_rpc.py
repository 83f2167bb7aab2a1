from __future__ import annotations

import asyncio
import enum

import pytest

from scenario_clients import ErrorKind, expect
from scenario_clients.adapters.rpc import RpcClient, RpcError, StatusCode, map_rpc_error, status_name
from scenario_clients.shared.errors import ClientError
from scenario_clients.shared.expect import ExpectationError


class _GrpcStatus(enum.Enum):
    """Shaped like ``grpc.StatusCode``: values are ``(int, name)`` tuples."""

    NOT_FOUND = (5, "not found")
    UNAVAILABLE = (14, "unavailable")


class _AioRpcError(Exception):
    """Shaped like ``grpc.aio.AioRpcError``."""

    def __init__(self, code: _GrpcStatus, details: str, trailing=()) -> None:
        super().__init__(details)
        self._code = code
        self._details = details
        self._trailing = trailing

    def code(self) -> _GrpcStatus:
        return self._code

    def details(self) -> str:
        return self._details

    def trailing_metadata(self):
        return self._trailing


class _StubCall:
    """Awaitable unary call carrying trailing metadata, like a grpc.aio call."""

    def __init__(self, response, trailing) -> None:
        self._response = response
        self._trailing = trailing

    def __await__(self):
        return self._resolve().__await__()

    async def _resolve(self):
        await asyncio.sleep(0)
        return self._response

    async def trailing_metadata(self):
        return self._trailing


class _StubGreeter:
    def __init__(self) -> None:
        self.seen_metadata = None

    def SayHello(self, request, metadata=None):
        self.seen_metadata = metadata
        return _StubCall({"message": f"Hello, {request['name']}"}, (("x-request-id", "req-1"),))

    async def Missing(self, request):
        raise RpcError(StatusCode.NOT_FOUND, "user 42 not found", metadata={"x-request-id": "req-2"})

    async def Hang(self, request):
        await asyncio.sleep(10)


@pytest.fixture
def client() -> RpcClient:
    return RpcClient()


def test_status_kinds() -> None:
    assert map_rpc_error(RpcError(StatusCode.DEADLINE_EXCEEDED)).kind is ErrorKind.timeout
    assert map_rpc_error(RpcError(StatusCode.ALREADY_EXISTS)).kind is ErrorKind.constraint_violation
    assert map_rpc_error(RpcError(StatusCode.ABORTED)).kind is ErrorKind.serialization_conflict
    assert map_rpc_error(RpcError(StatusCode.UNAUTHENTICATED)).kind is ErrorKind.unauthenticated
    assert map_rpc_error(RpcError(StatusCode.UNIMPLEMENTED)).kind is ErrorKind.not_found


def test_grpc_shaped_error() -> None:
    native = _AioRpcError(_GrpcStatus.UNAVAILABLE, "connection reset", (("retry-after", "1"),))
    error = map_rpc_error(native)

    assert error.kind is ErrorKind.unavailable
    assert error.message == "connection reset"
    assert error.details["status"] == "UNAVAILABLE"
    assert error.details["metadata"] == {"retry-after": "1"}


def test_connect_style_string_code() -> None:
    class ConnectError(Exception):
        code = "permission_denied"

    assert map_rpc_error(ConnectError("denied")).kind is ErrorKind.permission_denied


def test_status_name() -> None:
    assert status_name(5) == "NOT_FOUND"
    assert status_name(99) == "UNKNOWN_STATUS_99"


@pytest.mark.asyncio
async def test_successful_call_collects_trailing_metadata(client: RpcClient) -> None:
    greeter = _StubGreeter()

    result = await client.call(greeter.SayHello, {"name": "Ada"}, metadata={"authorization": "Bearer t"})

    (
        expect(result)
        .ok()
        .code(StatusCode.OK)
        .message_contains({"message": "Hello, Ada"})
        .metadata_contains({"x-request-id": "req-1"})
    )
    assert greeter.seen_metadata == (("authorization", "Bearer t"),)
    assert result.kind == "rpc"


@pytest.mark.asyncio
async def test_status_error_raises_by_default(client: RpcClient) -> None:
    with pytest.raises(ClientError) as exc_info:
        await client.call(_StubGreeter().Missing, {"id": 42})
    assert exc_info.value.kind is ErrorKind.not_found


@pytest.mark.asyncio
async def test_status_error_result_keeps_code(client: RpcClient) -> None:
    result = await client.call(_StubGreeter().Missing, {"id": 42}, throw_on_error=False)

    (
        expect(result)
        .not_ok()
        .error_kind(ErrorKind.not_found)
        .code(StatusCode.NOT_FOUND)
        .metadata_contains({"x-request-id": "req-2"})
        .error_message_matches(r"user \d+ not found")
    )
    with pytest.raises(ExpectationError, match="Expected status OK, got NOT_FOUND"):
        expect(result).code(StatusCode.OK)


@pytest.mark.asyncio
async def test_deadline(client: RpcClient) -> None:
    with pytest.raises(ClientError) as exc_info:
        await client.call(_StubGreeter().Hang, {}, timeout=0.01, throw_on_error=False)
    assert exc_info.value.kind is ErrorKind.timeout


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status", "kind"),
    [(StatusCode.CANCELLED, ErrorKind.cancelled), (StatusCode.DEADLINE_EXCEEDED, ErrorKind.timeout)],
)
async def test_server_side_cancel_and_deadline_follow_throw_option(client: RpcClient, status, kind) -> None:
    async def rejected(request):
        raise RpcError(status, "server gave up")

    result = await client.call(rejected, {}, throw_on_error=False)

    expect(result).not_ok().error_kind(kind).code(status)
    with pytest.raises(ClientError) as exc_info:
        await client.call(rejected, {})
    assert exc_info.value.kind is kind
