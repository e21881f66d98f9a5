import pytest

from wallet_analyzer.cache import TTLCache


class _Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.mark.asyncio
async def test_entries_expire_after_ttl():
    clock = _Clock()
    cache = TTLCache(default_ttl=300, clock=clock)

    await cache.set("analysis:0xabc", {"ok": True})
    clock.now += 299
    assert await cache.get("analysis:0xabc") == {"ok": True}

    clock.now += 1
    assert await cache.get("analysis:0xabc") is None
    assert cache.size() == 0


@pytest.mark.asyncio
async def test_least_recently_used_entry_is_evicted():
    cache = TTLCache(default_ttl=60, max_size=2, clock=_Clock())

    await cache.set("a", 1)
    await cache.set("b", 2)
    assert await cache.get("a") == 1
    await cache.set("c", 3)

    assert await cache.get("b") is None
    assert await cache.get("a") == 1
    assert await cache.get("c") == 3


@pytest.mark.asyncio
async def test_evict_expired_and_per_entry_ttl():
    clock = _Clock()
    cache = TTLCache(default_ttl=300, clock=clock)

    await cache.set("short", 1, ttl=10)
    await cache.set("long", 2)
    clock.now += 11

    assert await cache.evict_expired() == 1
    assert cache.size() == 1

    await cache.clear()
    assert cache.size() == 0
