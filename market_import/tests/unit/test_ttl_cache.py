"""TTL 캐시 단위 테스트"""
import asyncio

import pytest

from market_import.adapters.cache.ttl_cache import TTLCache


@pytest.fixture
def cache(clock):
    return TTLCache(clock, default_ttl_seconds=60)


async def test_get_within_ttl(cache, clock):
    await cache.set("k", {"v": 1}, ttl_seconds=10)
    clock.advance(10)

    assert await cache.get("k") == {"v": 1}


async def test_expired_entry_is_evicted_on_get(cache, clock):
    await cache.set("k", "value", ttl_seconds=10)
    clock.advance(11)

    assert await cache.get("k") is None
    assert cache.stats()["size"] == 0


async def test_default_ttl(cache, clock):
    await cache.set("k", "value")
    clock.advance(59)
    assert await cache.get("k") == "value"

    clock.advance(2)
    assert await cache.get("k") is None


async def test_none_value_rejected(cache):
    with pytest.raises(ValueError):
        await cache.set("k", None)


async def test_delete_and_clear(cache):
    await cache.set("a", 1)
    await cache.set("b", 2)

    await cache.delete("a")
    assert await cache.get("a") is None

    await cache.clear()
    assert cache.stats() == {"size": 0, "keys": [], "memory_usage": 2}


async def test_sweep_removes_only_expired(cache, clock):
    await cache.set("short", 1, ttl_seconds=5)
    await cache.set("long", 2, ttl_seconds=500)
    clock.advance(6)

    assert cache.sweep() == 1
    assert cache.stats()["keys"] == ["long"]


async def test_sweeper_evicts_without_get(cache, clock):
    await cache.set("short", 1, ttl_seconds=5)
    await cache.set("long", 2, ttl_seconds=3600)

    task = asyncio.create_task(cache.run_sweeper(10))
    for _ in range(5):
        await asyncio.sleep(0)

    assert cache.stats()["keys"] == ["long"]
    assert clock.sleeps and set(clock.sleeps) == {10}

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert task.cancelled()
