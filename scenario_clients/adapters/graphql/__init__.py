"""GraphQL-over-HTTP adapter."""
from __future__ import annotations

from .client import GraphqlClient
from .errors import EXTENSION_CODES, error_for_graphql_errors, map_graphql_error
from .expect import GraphqlExpectation
from .results import GraphqlResult

__all__ = [
    "EXTENSION_CODES",
    "GraphqlClient",
    "GraphqlExpectation",
    "GraphqlResult",
    "error_for_graphql_errors",
    "map_graphql_error",
]
