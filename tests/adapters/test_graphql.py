from __future__ import annotations

import pytest

from scenario_clients import ErrorKind, expect
from scenario_clients.adapters.graphql import GraphqlClient
from scenario_clients.shared.errors import ClientError

USER_QUERY = "query User($id: ID!) { user(id: $id) { id name } }"


@pytest.mark.asyncio
async def test_query_with_variables(graphql_client: GraphqlClient) -> None:
    result = await graphql_client.query(USER_QUERY, {"id": "7"}, operation_name="User")

    expect(result).ok().no_errors().error_count(0).data_contains({"user": {"id": "7", "name": "Alice"}})
    assert result.kind == "graphql"
    assert result.status == 200
    assert result.extensions == {"cost": 1}


@pytest.mark.asyncio
async def test_mutation(graphql_client: GraphqlClient) -> None:
    result = await graphql_client.mutation("mutation { rename(id: 1) { id } }")
    expect(result).ok().data_match(lambda data: data["user"]["id"] == "1")


@pytest.mark.asyncio
async def test_errors_raise_by_default(graphql_client: GraphqlClient) -> None:
    with pytest.raises(ClientError) as exc_info:
        await graphql_client.query("query { broken")

    assert exc_info.value.kind is ErrorKind.query_syntax
    assert exc_info.value.details["code"] == "GRAPHQL_PARSE_FAILED"


@pytest.mark.asyncio
async def test_partial_data_is_kept_on_failure(graphql_client: GraphqlClient) -> None:
    result = await graphql_client.query("query { user { id secret } }", throw_on_error=False)

    (
        expect(result)
        .not_ok()
        .error_kind(ErrorKind.permission_denied)
        .has_errors()
        .error_count(1)
        .error_contains("Not allowed")
        .error_contains({"extensions": {"code": "FORBIDDEN"}})
        .data_contains({"user": {"id": "1", "secret": None}})
    )


@pytest.mark.asyncio
async def test_non_graphql_body_uses_http_status(graphql_client: GraphqlClient) -> None:
    result = await graphql_client.query("query { teapot }", throw_on_error=False)

    expect(result).not_ok().error_kind(ErrorKind.unknown)
    assert result.status == 418
    assert result.data is None
    assert result.error.details["status"] == 418
