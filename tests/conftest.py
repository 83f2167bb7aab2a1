from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, ClassVar

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from scenario_clients import GraphqlClient, HttpClient, SqlClient
from scenario_clients.shared.errors import ClientError, ErrorKind, classifier
from scenario_clients.shared.pipeline import OperationRunner
from scenario_clients.shared.result import ClientResult

USERS = {1: {"id": 1, "name": "Alice", "tags": ["admin", "ops"]}}


@dataclass(frozen=True)
class EchoResult(ClientResult):
    """Result type for exercising the shared layer without a backend."""

    kind: ClassVar[str] = "echo"

    value: Any = None


def echo_build(native: Any, duration: float) -> EchoResult:
    return EchoResult.success(duration=duration, value=native)


@classifier
def map_test_error(native: BaseException) -> ClientError | None:
    if isinstance(native, ValueError):
        return ClientError(str(native), ErrorKind.query_syntax, cause=native)
    if isinstance(native, ConnectionError):
        return ClientError(str(native), ErrorKind.connection, cause=native)
    return None


@pytest.fixture
def runner() -> OperationRunner:
    return OperationRunner(backend="test", mapper=map_test_error, default_throw_on_error=False)


def build_app() -> FastAPI:
    app = FastAPI()

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    @app.get("/users/{user_id}")
    async def get_user(user_id: int) -> Any:
        if user_id not in USERS:
            return JSONResponse({"detail": "user not found"}, status_code=404)
        return USERS[user_id]

    @app.post("/users", status_code=201)
    async def create_user(request: Request) -> Any:
        body = await request.json()
        if body.get("name") == "Alice":
            return JSONResponse({"detail": "user exists"}, status_code=409)
        return JSONResponse({"id": 2, **body}, status_code=201, headers={"Location": "/users/2"})

    @app.delete("/users/{user_id}")
    async def delete_user(user_id: int) -> Response:
        return Response(status_code=204)

    @app.get("/echo-headers")
    async def echo_headers(request: Request) -> dict:
        return {"x-trace": request.headers.get("x-trace"), "query": dict(request.query_params)}

    @app.get("/unavailable")
    async def unavailable() -> Response:
        return JSONResponse({"detail": "maintenance"}, status_code=503)

    @app.get("/slow")
    async def slow() -> dict:
        await asyncio.sleep(5)
        return {"status": "late"}

    @app.post("/graphql")
    async def graphql(request: Request) -> Any:
        body = await request.json()
        document = body.get("query", "")
        if "broken" in document:
            return {"errors": [{"message": "Syntax Error: Unexpected Name", "extensions": {"code": "GRAPHQL_PARSE_FAILED"}}]}
        if "secret" in document:
            return {
                "data": {"user": {"id": "1", "secret": None}},
                "errors": [
                    {"message": "Not allowed", "path": ["user", "secret"], "extensions": {"code": "FORBIDDEN"}}
                ],
            }
        if "teapot" in document:
            return Response("short and stout", status_code=418, media_type="text/plain")
        user_id = (body.get("variables") or {}).get("id", "1")
        return {"data": {"user": {"id": user_id, "name": "Alice"}}, "extensions": {"cost": 1}}

    return app


@pytest.fixture
def asgi_app() -> FastAPI:
    return build_app()


@pytest_asyncio.fixture
async def http_client(asgi_app: FastAPI):
    client = HttpClient("http://testserver", transport=httpx.ASGITransport(app=asgi_app))
    yield client
    await client.close()


@pytest_asyncio.fixture
async def graphql_client(asgi_app: FastAPI):
    client = GraphqlClient("http://testserver/graphql", transport=httpx.ASGITransport(app=asgi_app))
    yield client
    await client.close()


@pytest_asyncio.fixture
async def sqlite_client(tmp_path):
    client = await SqlClient.connect(f"sqlite+aiosqlite:///{tmp_path / 'scenario.db'}")
    await client.query(
        "CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT NOT NULL UNIQUE, age INTEGER)",
        throw_on_error=True,
    )
    yield client
    await client.close()
