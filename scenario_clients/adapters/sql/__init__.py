"""SQL adapter: PostgreSQL, MySQL and SQLite through SQLAlchemy's asyncio engine."""
from __future__ import annotations

from .client import SqlClient, SqlClientConfig, SqlReservedConnection, isolation_name
from .errors import map_mysql_error, map_postgres_error, map_sqlite_error, mapper_for_dialect
from .expect import SqlQueryExpectation
from .results import QuerySnapshot, SqlQueryResult

__all__ = [
    "QuerySnapshot",
    "SqlClient",
    "SqlClientConfig",
    "SqlQueryExpectation",
    "SqlQueryResult",
    "SqlReservedConnection",
    "isolation_name",
    "map_mysql_error",
    "map_postgres_error",
    "map_sqlite_error",
    "mapper_for_dialect",
]
