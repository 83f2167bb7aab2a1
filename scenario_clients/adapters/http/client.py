"""
HTTP client over ``httpx.AsyncClient``.

A response with a non-2xx status is classified by status code; by default the
error is raised, with ``throw_on_error=False`` the failure result is returned
with its response envelope intact.
"""
from __future__ import annotations

from typing import Any, Mapping

import httpx
import structlog
from pydantic import Field

from scenario_clients.shared.cancellation import CancelSignal
from scenario_clients.shared.config import HTTP_BASE_URL, ClientConfig
from scenario_clients.shared.pipeline import OperationRunner

from .errors import map_http_error
from .results import HttpResponseResult

logger = structlog.get_logger(__name__)


class HttpClientConfig(ClientConfig):
    headers: dict[str, str] = Field(default_factory=dict)
    follow_redirects: bool = False


class HttpClient:
    def __init__(
        self,
        base_url: str = HTTP_BASE_URL,
        config: HttpClientConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url
        self.config = config or HttpClientConfig()
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=self.config.headers,
            follow_redirects=self.config.follow_redirects,
            timeout=self.config.timeout,
            transport=transport,
        )
        self._runner = OperationRunner(
            backend="http",
            mapper=map_http_error,
            config=self.config,
            default_throw_on_error=True,
        )

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        json: Any = None,
        data: Mapping[str, Any] | None = None,
        content: bytes | str | None = None,
        timeout: float | None = None,
        signal: CancelSignal | None = None,
        throw_on_error: bool | None = None,
    ) -> HttpResponseResult:
        call = self._client.request(
            method.upper(),
            path,
            params=params,
            headers=headers,
            json=json,
            data=data,
            content=content,
        )
        return await self._runner.run(
            "request",
            call,
            HttpResponseResult.from_response,
            HttpResponseResult,
            timeout=timeout,
            signal=signal,
            throw_on_error=throw_on_error,
            method=method.upper(),
            path=path,
        )

    async def get(self, path: str, **kwargs: Any) -> HttpResponseResult:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> HttpResponseResult:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs: Any) -> HttpResponseResult:
        return await self.request("PUT", path, **kwargs)

    async def patch(self, path: str, **kwargs: Any) -> HttpResponseResult:
        return await self.request("PATCH", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> HttpResponseResult:
        return await self.request("DELETE", path, **kwargs)

    async def close(self) -> None:
        await self._client.aclose()
        logger.debug("http_client_closed", base_url=self.base_url)

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(self, exc_type, exc_value, traceback) -> None:
        await self.close()
