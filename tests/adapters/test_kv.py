from __future__ import annotations

import asyncio

import pytest

from scenario_clients import ErrorKind, Outcome, expect
from scenario_clients.adapters.kv import KvClient, MemoryKvStore
from scenario_clients.adapters.kv.store import sort_key
from scenario_clients.shared.errors import ClientError


class _Clock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> _Clock:
    return _Clock()


@pytest.fixture
def kv(clock: _Clock) -> KvClient:
    return KvClient(MemoryKvStore(clock=clock))


def test_key_ordering_by_part_type_then_value() -> None:
    keys = [("a", 2), ("a", "z"), ("a", b"x"), ("a", 1.5), ("a", True), ("a", 1)]
    ordered = sorted(keys, key=sort_key)
    assert ordered == [("a", b"x"), ("a", "z"), ("a", 1), ("a", 2), ("a", 1.5), ("a", True)]


@pytest.mark.asyncio
async def test_set_then_get(kv: KvClient) -> None:
    written = await kv.set(("users", 1), {"name": "Alice"})
    expect(written).ok().has_versionstamp()

    read = await kv.get(("users", 1))
    expect(read).ok().has_content().value_contains({"name": "Alice"}).versionstamp(written.versionstamp)
    assert read.key == ("users", 1)
    assert read.kind == "kv:get"


@pytest.mark.asyncio
async def test_missing_key(kv: KvClient) -> None:
    result = await kv.get(("users", 404))
    expect(result).ok().no_content()
    assert result.versionstamp is None


@pytest.mark.asyncio
async def test_versionstamps_grow_with_each_write(kv: KvClient) -> None:
    first = await kv.set(("a",), 1)
    second = await kv.set(("a",), 2)
    deleted = await kv.delete(("a",))

    assert len(first.versionstamp) == 20
    assert first.versionstamp < second.versionstamp < deleted.versionstamp
    expect(await kv.get(("a",))).no_content()


@pytest.mark.asyncio
async def test_expiry(kv: KvClient, clock: _Clock) -> None:
    await kv.set(("session", "abc"), "token", expire_in=30)
    expect(await kv.get(("session", "abc"))).value("token")

    clock.now += 31
    expect(await kv.get(("session", "abc"))).no_content()


@pytest.mark.asyncio
async def test_list_prefix_range_and_limit(kv: KvClient) -> None:
    for user_id in (3, 1, 2):
        await kv.set(("users", user_id), {"id": user_id})
    await kv.set(("users",), "prefix itself")
    await kv.set(("teams", 1), {"id": "t1"})

    listed = await kv.list(("users",))
    expect(listed).ok().count(3).entry_contains({"key": ("users", 2), "value": {"id": 2}})
    assert [entry.key for entry in listed.entries] == [("users", 1), ("users", 2), ("users", 3)]

    reversed_page = await kv.list(("users",), limit=2, reverse=True)
    assert [entry.key[1] for entry in reversed_page.entries] == [3, 2]

    ranged = await kv.list(("users",), start=("users", 2), end=("users", 3))
    assert [entry.key for entry in ranged.entries] == [("users", 2)]


@pytest.mark.asyncio
async def test_get_many(kv: KvClient) -> None:
    await kv.set(("a",), 1)
    result = await kv.get_many([("a",), ("b",)])

    expect(result).count(2)
    assert [entry.value for entry in result.entries] == [1, None]


@pytest.mark.asyncio
async def test_atomic_commit_with_version_check(kv: KvClient) -> None:
    entry = await kv.get(("users", 1))
    result = await (
        kv.atomic()
        .check(("users", 1), entry.versionstamp)
        .set(("users", 1), {"name": "Alice"})
        .sum(("stats", "signups"), 1)
        .commit()
    )

    expect(result).ok().has_versionstamp()
    assert result.kind == "kv:atomic"
    expect(await kv.get(("stats", "signups"))).value(1)
    assert (await kv.get(("users", 1))).versionstamp == result.versionstamp


@pytest.mark.asyncio
async def test_stale_check_is_check_failed_and_writes_nothing(kv: KvClient) -> None:
    await kv.set(("users", 1), {"visits": 1})
    stale = (await kv.get(("users", 1))).versionstamp
    await kv.set(("users", 1), {"visits": 2})

    result = await kv.atomic().check(("users", 1), stale).set(("users", 1), {"visits": 99}).commit()

    assert result.outcome is Outcome.check_failed
    assert result.error is None
    expect(result).not_ok().check_failed().failed_checks(("users", 1))
    expect(await kv.get(("users", 1))).value({"visits": 2})


@pytest.mark.asyncio
async def test_batches_are_immutable(kv: KvClient) -> None:
    base = kv.atomic().set(("a",), 1)
    extended = base.set(("b",), 2)

    assert len(base.mutations) == 1
    assert len(extended.mutations) == 2

    await base.commit()
    expect(await kv.get(("b",))).no_content()


@pytest.mark.asyncio
async def test_min_max_and_sum(kv: KvClient) -> None:
    await kv.set(("score",), 10)
    await kv.atomic().max(("score",), 15).commit()
    expect(await kv.get(("score",))).value(15)
    await kv.atomic().min(("score",), 5).sum(("score",), 2).commit()
    expect(await kv.get(("score",))).value(7)


@pytest.mark.asyncio
async def test_concurrent_updates_only_one_wins(kv: KvClient) -> None:
    await kv.set(("counter",), 0)
    entry = await kv.get(("counter",))

    async def bump(value: int):
        return await kv.atomic().check(("counter",), entry.versionstamp).set(("counter",), value).commit()

    results = await asyncio.gather(bump(1), bump(2))

    assert sorted(r.outcome.value for r in results) == ["check-failed", "ok"]


@pytest.mark.asyncio
async def test_invalid_inputs_are_classified(kv: KvClient) -> None:
    with pytest.raises(ClientError) as exc_info:
        await kv.get(())
    assert exc_info.value.kind is ErrorKind.query_syntax

    result = await kv.atomic().set(("name",), "Alice").sum(("name",), 1).commit(throw_on_error=False)
    expect(result).not_ok().error_kind("query-syntax")
    expect(await kv.get(("name",))).no_content()


@pytest.mark.asyncio
async def test_quotas() -> None:
    kv = KvClient(MemoryKvStore(max_keys=1, max_value_size=8))

    too_large = await kv.set(("big",), "x" * 100, throw_on_error=False)
    expect(too_large).error_kind(ErrorKind.resource_exhausted)

    await kv.set(("one",), 1)
    full = await kv.set(("two",), 2, throw_on_error=False)
    expect(full).error_kind(ErrorKind.resource_exhausted)


@pytest.mark.asyncio
async def test_closed_store(kv: KvClient) -> None:
    async with kv:
        pass

    with pytest.raises(ClientError) as exc_info:
        await kv.get(("a",))
    assert exc_info.value.kind is ErrorKind.connection
