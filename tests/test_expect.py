from __future__ import annotations

from dataclasses import dataclass

import pytest

from scenario_clients import expect
from scenario_clients.adapters.kv.results import KvGetResult
from scenario_clients.adapters.redis.results import RedisCountResult, RedisGetResult
from scenario_clients.adapters.sql.expect import SqlQueryExpectation
from scenario_clients.adapters.sql.results import SqlQueryResult
from scenario_clients.shared.containment import contains_subset, find_mismatch
from scenario_clients.shared.errors import ClientError, ErrorKind
from scenario_clients.shared.expect import ExpectationError, ResultExpectation
from scenario_clients.shared.result import Rows
from tests.conftest import EchoResult

USERS = Rows([{"id": 1, "name": "Alice"}, {"id": 2, "name": "Bob"}])


def _users_result(duration: float = 12.0) -> SqlQueryResult:
    return SqlQueryResult.success(duration=duration, rows=USERS, row_count=2)


# ---------------------------------------------------------------------------
# Containment
# ---------------------------------------------------------------------------


def test_nested_subset_is_contained() -> None:
    assert contains_subset({"a": 1, "b": {"c": 2, "d": 3}}, {"b": {"c": 2}})


def test_lists_compare_as_whole_values() -> None:
    assert not contains_subset({"a": [1, 2, 3]}, {"a": [1, 2]})
    assert contains_subset({"a": [1, 2, 3]}, {"a": [1, 2, 3]})


def test_empty_subset_is_always_contained() -> None:
    assert contains_subset({"a": 1}, {})


def test_missing_and_none_are_reported_differently() -> None:
    assert find_mismatch({"a": 1}, {"b": 1}) == "missing key 'b'"
    assert find_mismatch({"b": None}, {"b": 1}) == "'b' is None, expected 1"
    assert contains_subset({"b": None}, {"b": None})


def test_nested_mismatch_reports_path() -> None:
    assert find_mismatch({"user": {"name": "Bob"}}, {"user": {"name": "Alice"}}) == (
        "'user.name' is 'Bob', expected 'Alice'"
    )


def test_bool_does_not_match_int() -> None:
    assert not contains_subset({"active": 1}, {"active": True})


def test_objects_expose_keys_as_attributes() -> None:
    @dataclass
    class User:
        id: int
        name: str

    assert contains_subset(User(1, "Alice"), {"name": "Alice"})
    assert not contains_subset("Alice", {"name": "Alice"})


# ---------------------------------------------------------------------------
# Expectation chains
# ---------------------------------------------------------------------------


def test_expect_picks_registered_chain() -> None:
    assert isinstance(expect(_users_result()), SqlQueryExpectation)
    assert type(expect(EchoResult.success(duration=1.0))) is ResultExpectation


def test_sql_chain_passes() -> None:
    chain = expect(_users_result())
    returned = chain.ok().rows(2).row_contains({"name": "Alice"}).duration_less_than(50)
    assert returned is chain


def test_sql_row_count_mismatch_message() -> None:
    with pytest.raises(ExpectationError, match="Expected 3 rows, got 2"):
        expect(_users_result()).ok().rows(3)


def test_row_contains_reports_closest_mismatch() -> None:
    with pytest.raises(ExpectationError, match="No row contains"):
        expect(_users_result()).row_contains({"name": "Carol"})


def test_duration_assertion() -> None:
    with pytest.raises(ExpectationError, match="Expected duration < 10ms"):
        expect(_users_result(duration=12.0)).duration_less_than(10)


def test_sql_mapping_helpers() -> None:
    @dataclass
    class User:
        id: int
        name: str

    (
        expect(_users_result())
        .row_count(2)
        .rows_at_least(1)
        .rows_at_most(2)
        .map_contains(lambda row: {"upper": row["name"].upper()}, {"upper": "BOB"})
        .as_contains(User, {"id": 2})
        .as_match(User, lambda users: users[0].name == "Alice")
    )


def test_match_propagates_matcher_errors() -> None:
    def matcher(rows):
        raise KeyError("missing column")

    with pytest.raises(KeyError):
        expect(_users_result()).row_match(matcher)


def test_get_style_none_value() -> None:
    for result in (RedisGetResult.success(duration=1.0, value=None), KvGetResult.success(duration=1.0, key=("a",))):
        expect(result).ok().no_content()
        with pytest.raises(ExpectationError, match="Expected a value, but value is None"):
            expect(result).has_content()


def test_failed_result_describes_error() -> None:
    error = ClientError("relation \"users\" does not exist", ErrorKind.not_found)
    result = SqlQueryResult.failure(error, duration=3.0)

    expect(result).not_ok().error_kind(ErrorKind.not_found).error_kind("not-found")
    with pytest.raises(ExpectationError, match="Expected query to succeed, got error"):
        expect(result).ok()
    with pytest.raises(ExpectationError, match="but the query failed"):
        expect(result).rows(0)
    with pytest.raises(ExpectationError, match="Expected timeout error, got not-found"):
        expect(result).error_kind(ErrorKind.timeout)


def test_check_failed_expectation() -> None:
    result = RedisGetResult.check_failed(duration=1.0)
    expect(result).not_ok().check_failed()
    with pytest.raises(ExpectationError, match="has no error"):
        expect(result).error_kind("unknown")


def test_redis_count_uses_integer_reply() -> None:
    expect(RedisCountResult.success(duration=1.0, value=3)).count(3).count_at_least(2).count_at_most(3)
    with pytest.raises(ExpectationError, match="Expected count 4, got 3"):
        expect(RedisCountResult.success(duration=1.0, value=3)).count(4)
    with pytest.raises(ExpectationError, match="Expected 3 to contain 1"):
        expect(RedisCountResult.success(duration=1.0, value=3)).contains(1)


def test_failed_checks_needs_an_atomic_result() -> None:
    result = KvGetResult.success(duration=1.0, key=("a",), value=1)

    with pytest.raises(ExpectationError, match="Expected an atomic commit result, got kv:get"):
        expect(result).failed_checks(("a",))


def test_value_helpers() -> None:
    result = RedisGetResult.success(duration=1.0, value={"name": "Alice", "roles": ["admin"]})
    (
        expect(result)
        .has_content()
        .value({"name": "Alice", "roles": ["admin"]})
        .value_contains({"roles": ["admin"]})
        .contains("name")
    )
    with pytest.raises(ExpectationError, match="Value does not contain"):
        expect(result).value_contains({"name": "Bob"})
