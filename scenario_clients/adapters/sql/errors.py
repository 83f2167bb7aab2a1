"""
SQL error classification for the postgres, mysql and sqlite dialects.

SQLAlchemy wraps driver errors in ``DBAPIError``; the driver exception lives in
``.orig``.  Each dialect mapper unwraps first and then inspects the driver's own
discriminant: SQLSTATE for PostgreSQL, errno for MySQL, exception class and
message for SQLite.

Within SQLSTATE class 40 the specific serialization/deadlock codes are checked
before the class-level fallback.
"""
from __future__ import annotations

import re
import sqlite3

from sqlalchemy import exc as sa_exc

from scenario_clients.shared.errors import ClientError, ErrorKind, Mapper, classifier, message_of

# PostgreSQL SQLSTATE classes
SQLSTATE_CONNECTION = "08"
SQLSTATE_CONSTRAINT_VIOLATION = "23"
SQLSTATE_INVALID_AUTHORIZATION = "28"
SQLSTATE_TRANSACTION_ROLLBACK = "40"
SQLSTATE_SYNTAX_OR_ACCESS = "42"
SQLSTATE_INSUFFICIENT_RESOURCES = "53"
SQLSTATE_OPERATOR_INTERVENTION = "57"
SQLSTATE_INTERNAL = "XX"

# Specific SQLSTATE codes
SERIALIZATION_FAILURE = "40001"
DEADLOCK_DETECTED = "40P01"
INSUFFICIENT_PRIVILEGE = "42501"

MYSQL_ERRNO: dict[int, ErrorKind] = {
    1044: ErrorKind.permission_denied,  # ER_DBACCESS_DENIED_ERROR
    1142: ErrorKind.permission_denied,  # ER_TABLEACCESS_DENIED_ERROR
    1045: ErrorKind.unauthenticated,  # ER_ACCESS_DENIED_ERROR
    1040: ErrorKind.resource_exhausted,  # ER_CON_COUNT_ERROR
    1048: ErrorKind.constraint_violation,  # ER_BAD_NULL_ERROR
    1062: ErrorKind.constraint_violation,  # ER_DUP_ENTRY
    1451: ErrorKind.constraint_violation,  # ER_ROW_IS_REFERENCED_2
    1452: ErrorKind.constraint_violation,  # ER_NO_REFERENCED_ROW_2
    1054: ErrorKind.query_syntax,  # ER_BAD_FIELD_ERROR
    1064: ErrorKind.query_syntax,  # ER_PARSE_ERROR
    1146: ErrorKind.query_syntax,  # ER_NO_SUCH_TABLE
    1205: ErrorKind.serialization_conflict,  # ER_LOCK_WAIT_TIMEOUT
    1213: ErrorKind.serialization_conflict,  # ER_LOCK_DEADLOCK
    2002: ErrorKind.connection,
    2003: ErrorKind.connection,
    2006: ErrorKind.connection,  # server has gone away
    2013: ErrorKind.connection,  # lost connection during query
}

SQLITE_MESSAGE_RULES: tuple[tuple[str, ErrorKind], ...] = (
    ("syntax error", ErrorKind.query_syntax),
    ("no such table", ErrorKind.query_syntax),
    ("no such column", ErrorKind.query_syntax),
    ("incomplete input", ErrorKind.query_syntax),
    ("database is locked", ErrorKind.serialization_conflict),
    ("database table is locked", ErrorKind.serialization_conflict),
    ("unable to open database", ErrorKind.connection),
    ("closed database", ErrorKind.connection),
    ("readonly database", ErrorKind.permission_denied),
    ("database or disk is full", ErrorKind.resource_exhausted),
    ("interrupted", ErrorKind.unavailable),
)

_SQLITE_CONSTRAINT = re.compile(r"constraint failed: (?P<name>.+)$")


def _unwrap(native: BaseException) -> BaseException:
    if isinstance(native, sa_exc.DBAPIError) and native.orig is not None:
        return native.orig
    return native


def _connection_level(native: BaseException) -> ClientError | None:
    """Failures that mean "no usable connection", independent of dialect."""
    if isinstance(native, sa_exc.DBAPIError) and native.connection_invalidated:
        return ClientError(message_of(native), ErrorKind.connection, cause=native)
    if isinstance(native, sa_exc.TimeoutError):
        return ClientError(message_of(native), ErrorKind.resource_exhausted, cause=native)
    if isinstance(native, (ConnectionError, OSError)):
        return ClientError(message_of(native), ErrorKind.connection, cause=native)
    return None


# ---------------------------------------------------------------------------
# PostgreSQL
# ---------------------------------------------------------------------------


def _sqlstate(error: BaseException) -> str | None:
    for candidate in (error, error.__cause__):
        if candidate is None:
            continue
        for attr in ("sqlstate", "pgcode"):
            value = getattr(candidate, attr, None)
            if isinstance(value, str) and value:
                return value
    return None


def _constraint_name(error: BaseException) -> str | None:
    for candidate in (error, error.__cause__):
        if candidate is None:
            continue
        name = getattr(candidate, "constraint_name", None) or getattr(candidate, "constraint", None)
        if isinstance(name, str) and name:
            return name
    return None


@classifier
def map_postgres_error(native: BaseException) -> ClientError | None:
    connection = _connection_level(native)
    if connection is not None:
        return connection

    error = _unwrap(native)
    message = message_of(error)
    sqlstate = _sqlstate(error)
    details = {"sqlstate": sqlstate}

    if not sqlstate:
        if isinstance(native, sa_exc.InterfaceError):
            return ClientError(message, ErrorKind.connection, cause=native, details=details)
        return ClientError(message, ErrorKind.unknown, cause=native, details=details)

    if sqlstate.startswith(SQLSTATE_TRANSACTION_ROLLBACK):
        if sqlstate in (SERIALIZATION_FAILURE, DEADLOCK_DETECTED):
            return ClientError(message, ErrorKind.serialization_conflict, cause=native, details=details)
        return ClientError(message, ErrorKind.unknown, cause=native, details=details)

    if sqlstate == INSUFFICIENT_PRIVILEGE:
        return ClientError(message, ErrorKind.permission_denied, cause=native, details=details)

    if sqlstate.startswith(SQLSTATE_CONSTRAINT_VIOLATION):
        details["constraint"] = _constraint_name(error) or "unknown"
        return ClientError(message, ErrorKind.constraint_violation, cause=native, details=details)

    by_class = {
        SQLSTATE_SYNTAX_OR_ACCESS: ErrorKind.query_syntax,
        SQLSTATE_CONNECTION: ErrorKind.connection,
        SQLSTATE_INVALID_AUTHORIZATION: ErrorKind.unauthenticated,
        SQLSTATE_INSUFFICIENT_RESOURCES: ErrorKind.resource_exhausted,
        SQLSTATE_OPERATOR_INTERVENTION: ErrorKind.unavailable,
        SQLSTATE_INTERNAL: ErrorKind.internal,
    }
    kind = by_class.get(sqlstate[:2], ErrorKind.unknown)
    return ClientError(message, kind, cause=native, details=details)


# ---------------------------------------------------------------------------
# MySQL
# ---------------------------------------------------------------------------


def _mysql_errno(error: BaseException) -> int | None:
    errno = getattr(error, "errno", None)
    if isinstance(errno, int):
        return errno
    if error.args and isinstance(error.args[0], int):
        return error.args[0]
    return None


@classifier
def map_mysql_error(native: BaseException) -> ClientError | None:
    error = _unwrap(native)
    errno = _mysql_errno(error)
    if errno is None:
        return _connection_level(native)

    message = str(error.args[1]) if len(error.args) > 1 else message_of(error)
    kind = MYSQL_ERRNO.get(errno, ErrorKind.unknown)
    return ClientError(message, kind, cause=native, details={"errno": errno})


# ---------------------------------------------------------------------------
# SQLite
# ---------------------------------------------------------------------------


@classifier
def map_sqlite_error(native: BaseException) -> ClientError | None:
    error = _unwrap(native)
    message = message_of(error)
    lowered = message.lower()
    details = {"sqlite_error": getattr(error, "sqlite_errorname", None)}

    if isinstance(error, sqlite3.IntegrityError):
        match = _SQLITE_CONSTRAINT.search(message)
        details["constraint"] = match.group("name") if match else "unknown"
        return ClientError(message, ErrorKind.constraint_violation, cause=native, details=details)

    if isinstance(error, sqlite3.Error):
        for needle, kind in SQLITE_MESSAGE_RULES:
            if needle in lowered:
                return ClientError(message, kind, cause=native, details=details)
        if isinstance(error, sqlite3.ProgrammingError):
            return ClientError(message, ErrorKind.query_syntax, cause=native, details=details)
        if isinstance(error, sqlite3.InternalError):
            return ClientError(message, ErrorKind.internal, cause=native, details=details)
        return ClientError(message, ErrorKind.unknown, cause=native, details=details)

    return _connection_level(native)


DIALECT_MAPPERS: dict[str, Mapper] = {
    "postgresql": map_postgres_error,
    "mysql": map_mysql_error,
    "mariadb": map_mysql_error,
    "sqlite": map_sqlite_error,
}


def mapper_for_dialect(dialect: str) -> Mapper:
    """Mapper for a SQLAlchemy dialect name; unknown dialects use the postgres rules."""
    return DIALECT_MAPPERS.get(dialect, map_postgres_error)
