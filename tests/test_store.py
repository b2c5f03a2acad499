import pytest

from carbo.store import Hit, MemoryStore, hit, miss


@pytest.mark.asyncio
async def test_memory_store():
    cs = MemoryStore()

    assert await cs.get("key-1") == miss()

    await cs.set("key-1", "value-1")

    assert await cs.get("key-1") == hit("value-1")


@pytest.mark.asyncio
async def test_memory_store_overwrite():
    cs = MemoryStore()
    await cs.set("key", "first")
    await cs.set("key", "second")
    result = await cs.get("key")
    assert result.value == "second"


@pytest.mark.asyncio
async def test_memory_store_keeps_falsy_values():
    cs = MemoryStore()
    await cs.set("key", None)
    assert await cs.get("key") == Hit(None)


def test_hit_and_miss():
    assert hit(3).value == 3
    assert miss() is None