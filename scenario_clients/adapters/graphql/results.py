from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar

import httpx

from scenario_clients.adapters.http.errors import error_for_response
from scenario_clients.shared.result import ClientResult, Outcome

from .errors import error_for_graphql_errors


@dataclass(frozen=True)
class GraphqlResult(ClientResult):
    """
    GraphQL response.  A body with ``errors`` is a failure result, but ``data``
    (possibly partial), ``errors`` and ``extensions`` are kept on it.
    """

    kind: ClassVar[str] = "graphql"

    data: Any = None
    errors: list[dict[str, Any]] | None = None
    extensions: dict[str, Any] | None = None
    status: int | None = None

    @classmethod
    def from_response(cls, response: httpx.Response, duration: float) -> "GraphqlResult":
        try:
            body = response.json()
        except ValueError:
            body = None

        if not isinstance(body, dict) or not ("data" in body or "errors" in body):
            # Not a GraphQL envelope: classify by HTTP status.
            error = error_for_response(response)
            return cls(duration=duration, outcome=Outcome.error, error=error, status=response.status_code)

        envelope = {
            "data": body.get("data"),
            "errors": body.get("errors") or None,
            "extensions": body.get("extensions"),
            "status": response.status_code,
        }
        if envelope["errors"]:
            error = error_for_graphql_errors(envelope["errors"], status=response.status_code)
            return cls(duration=duration, outcome=Outcome.error, error=error, **envelope)
        if not response.is_success:
            return cls(duration=duration, outcome=Outcome.error, error=error_for_response(response), **envelope)
        return cls.success(duration=duration, **envelope)
