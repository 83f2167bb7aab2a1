from __future__ import annotations

import pytest

from scenario_clients.adapters.graphql.errors import map_graphql_error
from scenario_clients.adapters.http.errors import map_http_error
from scenario_clients.adapters.kv.errors import map_kv_error
from scenario_clients.adapters.rabbitmq.errors import map_rabbitmq_error
from scenario_clients.adapters.redis.errors import map_redis_error
from scenario_clients.adapters.rpc.errors import map_rpc_error
from scenario_clients.adapters.sql.errors import map_mysql_error, map_postgres_error, map_sqlite_error
from scenario_clients.shared.cancellation import cancelled_error, timeout_error
from scenario_clients.shared.errors import (
    ClientError,
    ErrorKind,
    TransactionFinishedError,
    classifier,
    is_control_error,
)

ALL_MAPPERS = [
    map_postgres_error,
    map_mysql_error,
    map_sqlite_error,
    map_redis_error,
    map_http_error,
    map_graphql_error,
    map_rpc_error,
    map_rabbitmq_error,
    map_kv_error,
]


class _OddError(Exception):
    pass


@pytest.mark.parametrize("mapper", ALL_MAPPERS, ids=lambda m: m.__name__)
def test_mappers_pass_canonical_errors_through(mapper) -> None:
    for error in (timeout_error("op", 1.0), cancelled_error("op", "stop"), TransactionFinishedError("committed")):
        assert mapper(error) is error


@pytest.mark.parametrize("mapper", ALL_MAPPERS, ids=lambda m: m.__name__)
def test_mappers_are_total(mapper) -> None:
    native = _OddError("something unexpected")
    error = mapper(native)

    assert isinstance(error, ClientError)
    assert error.kind in set(ErrorKind)
    assert error.message


def test_classifier_falls_back_to_unknown() -> None:
    @classifier
    def no_rules(native: BaseException) -> ClientError | None:
        return None

    native = RuntimeError("strange")
    error = no_rules(native)
    assert error.kind is ErrorKind.unknown
    assert error.cause is native
    assert error.__cause__ is native


def test_classifier_survives_a_failing_mapper() -> None:
    @classifier
    def broken(native: BaseException) -> ClientError | None:
        raise KeyError("mapper bug")

    error = broken(RuntimeError("original"))
    assert error.kind is ErrorKind.unknown
    assert error.message == "original"


def test_empty_message_uses_type_name() -> None:
    assert map_kv_error(_OddError()).message == "_OddError"


def test_unprintable_error_uses_type_name() -> None:
    class _Unprintable(Exception):
        def __str__(self) -> str:
            raise AttributeError("frame")

    error = map_kv_error(_Unprintable())
    assert error.message == "_Unprintable"
    assert error.kind is ErrorKind.unknown


def test_client_error_rendering() -> None:
    error = ClientError("duplicate key", ErrorKind.constraint_violation, details={"constraint": "users_pkey"})
    assert str(error) == "[constraint-violation] duplicate key"
    assert error.details == {"constraint": "users_pkey"}
    assert ClientError("x", "not-found").kind is ErrorKind.not_found


def test_transaction_finished_error() -> None:
    error = TransactionFinishedError("rolled-back")
    assert error.kind is ErrorKind.connection
    assert error.message == "Transaction has already been rolled back"
    assert error.details["state"] == "rolled-back"


def test_control_errors() -> None:
    assert is_control_error(timeout_error("op", 0.1))
    assert is_control_error(cancelled_error("op"))
    assert not is_control_error(ClientError("x", ErrorKind.unavailable))
    assert not is_control_error(ClientError("server gave up", ErrorKind.timeout))
    assert not is_control_error(ClientError("server cancelled", ErrorKind.cancelled))
    assert not is_control_error(ValueError("x"))
