"""Tests for the sharded expiring key/value store."""
import asyncio

import pytest

from ephemera.timed_store import TimedEntry, TimedStore


async def test_put_then_get_within_ttl(store, clock):
    await store.put("k", "v", ttl=10)
    clock.advance(9.999)
    assert await store.get("k") == "v"


async def test_get_missing_key_returns_none(store):
    assert await store.get("nope") is None


async def test_get_after_ttl_is_a_miss_without_sweep(store, clock):
    await store.put("k", "v", ttl=10)
    clock.advance(10)
    assert await store.get("k") is None


async def test_expired_get_drops_physical_entry(store, clock):
    await store.put("k", "v", ttl=10)
    clock.advance(11)
    assert len(store) == 1
    await store.get("k")
    assert len(store) == 0


async def test_put_replaces_value_and_expiry(store, clock):
    await store.put("k", "old", ttl=5)
    clock.advance(4)
    await store.put("k", "new", ttl=5)
    clock.advance(4)  # past the first deadline, inside the second
    assert await store.get("k") == "new"
    clock.advance(1)
    assert await store.get("k") is None


async def test_delete_is_idempotent(store):
    await store.put("k", "v", ttl=10)
    await store.delete("k")
    assert await store.get("k") is None
    await store.delete("k")
    assert await store.get("k") is None


async def test_sweep_removes_only_expired(store, clock):
    await store.put("short", 1, ttl=5)
    await store.put("exact", 2, ttl=10)
    await store.put("long", 3, ttl=60)
    clock.advance(10)

    removed = await store.sweep()

    assert removed == 2
    assert len(store) == 1
    assert await store.get("long") == 3


async def test_sweep_on_empty_store(store):
    assert await store.sweep() == 0


async def test_sweep_spans_all_shards(clock):
    store = TimedStore(clock, shards=8)
    for i in range(100):
        await store.put(f"key-{i}", i, ttl=1)
    await store.put("survivor", "x", ttl=100)
    clock.advance(2)
    assert await store.sweep() == 100
    assert len(store) == 1


async def test_put_if_absent_refuses_live_key(store):
    assert await store.put_if_absent("k", "first", ttl=10) is True
    assert await store.put_if_absent("k", "second", ttl=10) is False
    assert await store.get("k") == "first"


async def test_put_if_absent_reuses_expired_key(store, clock):
    await store.put("k", "old", ttl=1)
    clock.advance(1)
    assert await store.put_if_absent("k", "new", ttl=10) is True
    assert await store.get("k") == "new"


async def test_update_sees_none_for_absent_and_expired(store, clock):
    seen = []

    def bump(current):
        seen.append(current)
        return (current or 0) + 1

    assert await store.update("n", bump, ttl=5) == 1
    assert await store.update("n", bump, ttl=5) == 2
    clock.advance(5)
    assert await store.update("n", bump, ttl=5) == 1
    assert seen == [None, 1, None]


async def test_concurrent_updates_lose_nothing(store):
    async def bump():
        await store.update("n", lambda c: (c or 0) + 1, ttl=60)

    await asyncio.gather(*(bump() for _ in range(200)))
    assert await store.get("n") == 200


async def test_clear(store):
    await store.put("a", 1, ttl=10)
    await store.put("b", 2, ttl=10)
    await store.clear()
    assert len(store) == 0


@pytest.mark.parametrize("ttl", [0, -1])
async def test_non_positive_ttl_rejected(store, ttl):
    with pytest.raises(ValueError):
        await store.put("k", "v", ttl=ttl)


async def test_empty_key_rejected(store):
    with pytest.raises(ValueError):
        await store.put("", "v", ttl=10)


def test_zero_shards_rejected():
    with pytest.raises(ValueError):
        TimedStore(shards=0)


def test_entry_liveness_boundary():
    entry = TimedEntry("v", expires_at=100.0)
    assert entry.is_live(99.999)
    assert not entry.is_live(100.0)


async def test_stored_none_is_a_live_entry(store, clock):
    await store.put("k", None, ttl=100)

    assert await store.put_if_absent("k", "intruder", ttl=100) is False
    assert await store.get("k", default="absent") is None

    clock.advance(100)
    assert await store.get("k", default="absent") == "absent"


async def test_update_passes_stored_none_through(store):
    seen = []

    def record(current):
        seen.append(current)
        return "next"

    await store.put("k", None, ttl=10)
    await store.update("k", record, ttl=10, default="absent")
    await store.update("other", record, ttl=10, default="absent")
    assert seen == [None, "absent"]
