"""
GraphQL error classification.

A GraphQL server usually answers 200 with an ``errors`` list; the first
error's ``extensions.code`` decides the kind.  Transport failures and bodies
without a GraphQL envelope fall back to the HTTP rules.
"""
from __future__ import annotations

from typing import Any

from scenario_clients.adapters.http.errors import map_http_error
from scenario_clients.shared.errors import ClientError, ErrorKind, classifier

EXTENSION_CODES: dict[str, ErrorKind] = {
    "UNAUTHENTICATED": ErrorKind.unauthenticated,
    "FORBIDDEN": ErrorKind.permission_denied,
    "GRAPHQL_PARSE_FAILED": ErrorKind.query_syntax,
    "GRAPHQL_VALIDATION_FAILED": ErrorKind.query_syntax,
    "BAD_USER_INPUT": ErrorKind.query_syntax,
    "NOT_FOUND": ErrorKind.not_found,
    "PERSISTED_QUERY_NOT_FOUND": ErrorKind.not_found,
    "INTERNAL_SERVER_ERROR": ErrorKind.internal,
}


def extension_code(error: dict[str, Any]) -> str | None:
    extensions = error.get("extensions") or {}
    code = extensions.get("code")
    return code if isinstance(code, str) else None


def error_for_graphql_errors(errors: list[dict[str, Any]], *, status: int | None = None) -> ClientError:
    first = errors[0] if errors else {}
    code = extension_code(first)
    return ClientError(
        first.get("message") or "GraphQL error",
        EXTENSION_CODES.get(code or "", ErrorKind.unknown),
        details={"code": code, "errors": errors, "status": status},
    )


@classifier
def map_graphql_error(native: BaseException) -> ClientError | None:
    return map_http_error(native)
