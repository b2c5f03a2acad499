import asyncio

import pytest

from carbo import cache
from carbo.cache import RawSpec
from carbo.mapping import map_elements, map_with_cache, tap
from carbo.pipe import concurrency_index
from carbo.store import Hit, MemoryStore
from carbo.taskfn import slice_to_slice

ELS = ["item1", "item2", "item2"]
TEN = [f"item{i}" for i in range(1, 11)]


async def double_string(s):
    return s + s


class MapError(Exception):
    pass


@pytest.mark.asyncio
async def test_map_error_case():
    async def failing(s):
        raise MapError("error case")

    with pytest.raises(MapError):
        await slice_to_slice(map_elements(failing).as_task())(ELS)


@pytest.mark.asyncio
async def test_map_no_concurrency():
    out = await slice_to_slice(map_elements(double_string).as_task())(ELS)
    assert out == ["item1item1", "item2item2", "item2item2"]


@pytest.mark.asyncio
async def test_map_concurrent():
    m = map_elements(double_string)
    out = await slice_to_slice(m.concurrent(2).as_task())(ELS)
    assert sorted(out) == ["item1item1", "item2item2", "item2item2"]


@pytest.mark.asyncio
async def test_map_concurrent_preserving_order():
    m = map_elements(double_string)
    out = await slice_to_slice(m.concurrent_preserving_order(2).as_task())(TEN)
    assert out == [el + el for el in TEN]


@pytest.mark.asyncio
async def test_map_concurrent_preserving_order_with_uneven_delays():
    indices = []

    async def slow_first(s):
        indices.append(concurrency_index())
        await asyncio.sleep((11 - int(s[4:])) * 0.002)
        return s + s

    m = map_elements(slow_first)
    out = await slice_to_slice(m.concurrent_preserving_order(3).as_task())(TEN)
    assert out == [el + el for el in TEN]
    assert len(indices) == 10
    assert set(indices) <= {0, 1, 2}
    assert len(set(indices)) > 1


def test_map_concurrent_preserving_order_requires_positive_concurrency():
    m = map_elements(double_string)
    with pytest.raises(ValueError, match="at least 1 concurrency is required"):
        m.concurrent_preserving_order(0)


@pytest.mark.asyncio
async def test_map_sticky_concurrent_preserving_order():
    concurrency = 2
    logs = [[] for _ in range(concurrency)]

    async def record(s):
        logs[concurrency_index()].append(s)
        return await double_string(s)

    def bucket(s):
        return int(s[4:]) % concurrency

    m = map_elements(record)
    out = await slice_to_slice(
        m.sticky_concurrent_preserving_order(bucket, concurrency).as_task()
    )(TEN)

    assert out == [el + el for el in TEN]
    assert sorted(logs[0]) == sorted(["item2", "item4", "item6", "item8", "item10"])
    assert sorted(logs[1]) == sorted(["item1", "item3", "item5", "item7", "item9"])


@pytest.mark.asyncio
async def test_map_sticky_bucket_out_of_range():
    m = map_elements(double_string)
    p = m.sticky_concurrent_preserving_order(lambda s: 5, 2)
    with pytest.raises(IndexError):
        await slice_to_slice(p.as_task())(["item1"])


@pytest.mark.asyncio
async def test_map_with_cache():
    cs = MemoryStore()
    sp = RawSpec(cs, cache.key)

    out = await slice_to_slice(map_with_cache(double_string, sp).as_task())(ELS)

    assert sorted(out) == ["item1item1", "item2item2", "item2item2"]
    assert await cs.get("item1") == Hit("item1item1")


@pytest.mark.asyncio
async def test_map_with_cache_reuses_results():
    calls = []

    async def counted(s):
        calls.append(s)
        return s + s

    sp = RawSpec(MemoryStore(), cache.key)
    out = await slice_to_slice(map_with_cache(counted, sp).as_task())(ELS)

    assert out == ["item1item1", "item2item2", "item2item2"]
    assert calls == ["item1", "item2"]


@pytest.mark.asyncio
async def test_tap_normal_case():
    called = []

    async def record(el):
        called.append(el)

    out = await slice_to_slice(tap(record).as_task())(["item1", "item2"])

    assert called == ["item1", "item2"]
    assert out == ["item1", "item2"]


@pytest.mark.asyncio
async def test_tap_error_case():
    class TapError(Exception):
        pass

    async def failing(el):
        raise TapError("test error")

    with pytest.raises(TapError):
        await slice_to_slice(tap(failing).as_task())(["item1", "item2"])


@pytest.mark.asyncio
async def test_tap_concurrent():
    called = []

    async def record(el):
        called.append(el)

    out = await slice_to_slice(tap(record).concurrent(2).as_task())(["item1", "item2"])

    assert sorted(called) == ["item1", "item2"]
    assert sorted(out) == ["item1", "item2"]