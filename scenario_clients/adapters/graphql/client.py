from __future__ import annotations

from typing import Any, Mapping

import httpx
import structlog

from scenario_clients.adapters.http.client import HttpClientConfig
from scenario_clients.shared.cancellation import CancelSignal
from scenario_clients.shared.pipeline import OperationRunner, format_value

from .errors import map_graphql_error
from .results import GraphqlResult

logger = structlog.get_logger(__name__)


class GraphqlClient:
    """Sends GraphQL documents as ``POST {"query", "variables", "operationName"}``."""

    def __init__(
        self,
        endpoint: str,
        config: HttpClientConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.config = config or HttpClientConfig()
        self._client = httpx.AsyncClient(
            headers=self.config.headers,
            follow_redirects=self.config.follow_redirects,
            timeout=self.config.timeout,
            transport=transport,
        )
        self._runner = OperationRunner(
            backend="graphql",
            mapper=map_graphql_error,
            config=self.config,
            default_throw_on_error=True,
        )

    async def query(
        self,
        document: str,
        variables: Mapping[str, Any] | None = None,
        operation_name: str | None = None,
        *,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
        signal: CancelSignal | None = None,
        throw_on_error: bool | None = None,
    ) -> GraphqlResult:
        payload: dict[str, Any] = {"query": document}
        if variables is not None:
            payload["variables"] = dict(variables)
        if operation_name is not None:
            payload["operationName"] = operation_name

        return await self._runner.run(
            "query",
            self._client.post(self.endpoint, json=payload, headers=headers),
            GraphqlResult.from_response,
            GraphqlResult,
            timeout=timeout,
            signal=signal,
            throw_on_error=throw_on_error,
            operation_name=operation_name,
            document=format_value(document),
        )

    async def mutation(self, document: str, variables: Mapping[str, Any] | None = None, **kwargs: Any) -> GraphqlResult:
        return await self.query(document, variables, **kwargs)

    async def close(self) -> None:
        await self._client.aclose()
        logger.debug("graphql_client_closed", endpoint=self.endpoint)

    async def __aenter__(self) -> "GraphqlClient":
        return self

    async def __aexit__(self, exc_type, exc_value, traceback) -> None:
        await self.close()
