"""
In-memory store backend: list, sorted-set, TTL and transaction semantics.
"""

import pytest

from tokengate.store import InMemoryStore, create_store
from tokengate.config import Settings


@pytest.mark.asyncio
async def test_list_is_fifo(store):
    for member in ("a", "b", "c"):
        await store.rpush("q", member)

    assert await store.lpop("q") == "a"
    assert await store.lpop("q") == "b"
    assert await store.lrange("q") == ["c"]
    assert await store.llen("q") == 1


@pytest.mark.asyncio
async def test_lpush_puts_member_at_head(store):
    await store.rpush("q", "b")
    await store.lpush("q", "a")

    assert await store.lpop("q") == "a"
    assert await store.lrange("q") == ["b"]


@pytest.mark.asyncio
async def test_lpop_empty_list(store):
    assert await store.lpop("q") is None


@pytest.mark.asyncio
async def test_lrem_removes_every_occurrence(store):
    for member in ("a", "b", "a"):
        await store.rpush("q", member)

    assert await store.lrem("q", "a") == 2
    assert await store.lrange("q") == ["b"]
    assert await store.lrem("q", "missing") == 0


@pytest.mark.asyncio
async def test_value_ttl_expires(store, clock):
    await store.set("k", "v", ttl_seconds=30)

    clock.advance(29)
    assert await store.get("k") == "v"

    clock.advance(1)
    assert await store.get("k") is None
    assert not await store.exists("k")


@pytest.mark.asyncio
async def test_value_without_ttl_persists(store, clock):
    await store.set("k", "v")
    clock.advance(10_000)
    assert await store.get("k") == "v"


@pytest.mark.asyncio
async def test_delete_counts_existing_keys(store):
    await store.set("a", "1")
    await store.rpush("q", "x")

    assert await store.delete("a", "q", "missing") == 2
    assert await store.get("a") is None
    assert await store.llen("q") == 0


@pytest.mark.asyncio
async def test_zrangebyscore_is_inclusive_and_ordered(store):
    await store.zadd("z", "late", 30)
    await store.zadd("z", "early", 10)
    await store.zadd("z", "edge", 20)
    await store.zadd("z", "tie", 20)

    assert await store.zrangebyscore("z", 0, 20) == ["early", "edge", "tie"]
    assert await store.zrangebyscore("z", 0, 20, limit=2) == ["early", "edge"]
    assert await store.zrangebyscore("z", 21, 29) == []


@pytest.mark.asyncio
async def test_zadd_updates_score(store):
    await store.zadd("z", "m", 10)
    await store.zadd("z", "m", 50)

    assert await store.zscore("z", "m") == 50
    assert await store.zcard("z") == 1
    assert await store.zrem("z", "m") == 1
    assert await store.zscore("z", "m") is None
    assert await store.zrem("z", "m") == 0


@pytest.mark.asyncio
async def test_transaction_applies_on_exit(store):
    async with store.transaction() as tx:
        tx.set("k", "v")
        tx.rpush("q", "k")
        tx.zadd("z", "k", 1)
        assert await store.get("k") is None

    assert await store.get("k") == "v"
    assert await store.lrange("q") == ["k"]
    assert await store.zscore("z", "k") == 1


@pytest.mark.asyncio
async def test_transaction_discarded_on_error(store):
    await store.set("k", "old")

    with pytest.raises(RuntimeError):
        async with store.transaction() as tx:
            tx.set("k", "new")
            tx.delete("k")
            raise RuntimeError("abort")

    assert await store.get("k") == "old"


@pytest.mark.asyncio
async def test_transaction_delete_and_remove(store):
    await store.set("k", "v")
    await store.rpush("q", "k")
    await store.zadd("z", "k", 1)

    async with store.transaction() as tx:
        tx.delete("k")
        tx.lrem("q", "k")
        tx.zrem("z", "k")

    assert not await store.exists("k")
    assert await store.llen("q") == 0
    assert await store.zcard("z") == 0


@pytest.mark.asyncio
async def test_ping(store):
    assert await store.ping() is True


def test_create_store_memory_backend():
    assert isinstance(create_store(Settings(store_backend="memory")), InMemoryStore)
