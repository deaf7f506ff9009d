"""In-process lease store."""

import asyncio
import logging
import time
from typing import Callable, Optional

from tokengate.store.base import StoreBackend, StoreBatch

logger = logging.getLogger(__name__)


class InMemoryBatch(StoreBatch):
    """Batch applied under the in-memory store's lock."""

    def __init__(self, store: "InMemoryStore"):
        self._store = store
        self._ops: list[Callable[[], object]] = []

    def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        self._ops.append(lambda: self._store._set(key, value, ttl_seconds))

    def delete(self, *keys: str) -> None:
        self._ops.append(lambda: self._store._delete(keys))

    def rpush(self, name: str, member: str) -> None:
        self._ops.append(lambda: self._store._rpush(name, member))

    def lrem(self, name: str, member: str) -> None:
        self._ops.append(lambda: self._store._lrem(name, member))

    def zadd(self, name: str, member: str, score: float) -> None:
        self._ops.append(lambda: self._store._zadd(name, member, score))

    def zrem(self, name: str, member: str) -> None:
        self._ops.append(lambda: self._store._zrem(name, member))

    async def execute(self) -> None:
        async with self._store._lock:
            for op in self._ops:
                op()
        self._ops.clear()


class InMemoryStore(StoreBackend):
    """
    Dict-backed store with list, sorted-set and TTL semantics.

    Good for development and tests. State is lost on restart and is not
    shared between processes.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._values: dict[str, tuple[str, Optional[float]]] = {}
        self._lists: dict[str, list[str]] = {}
        self._zsets: dict[str, dict[str, float]] = {}
        self._lock = asyncio.Lock()

    # Unlocked primitives, shared with InMemoryBatch

    def _get(self, key: str) -> Optional[str]:
        entry = self._values.get(key)
        if entry is None:
            return None
        value, deadline = entry
        if deadline is not None and self._clock() >= deadline:
            del self._values[key]
            return None
        return value

    def _set(self, key: str, value: str, ttl_seconds: Optional[int]) -> None:
        deadline = self._clock() + ttl_seconds if ttl_seconds else None
        self._values[key] = (value, deadline)

    def _delete(self, keys) -> int:
        removed = 0
        for key in keys:
            if self._get(key) is not None:
                del self._values[key]
                removed += 1
            if self._lists.pop(key, None) is not None:
                removed += 1
            if self._zsets.pop(key, None) is not None:
                removed += 1
        return removed

    def _rpush(self, name: str, member: str) -> int:
        items = self._lists.setdefault(name, [])
        items.append(member)
        return len(items)

    def _lrem(self, name: str, member: str) -> int:
        items = self._lists.get(name)
        if not items:
            return 0
        kept = [item for item in items if item != member]
        removed = len(items) - len(kept)
        if kept:
            self._lists[name] = kept
        else:
            del self._lists[name]
        return removed

    def _zadd(self, name: str, member: str, score: float) -> None:
        self._zsets.setdefault(name, {})[member] = score

    def _zrem(self, name: str, member: str) -> int:
        members = self._zsets.get(name)
        if not members or member not in members:
            return 0
        del members[member]
        if not members:
            del self._zsets[name]
        return 1

    # StoreBackend

    async def get(self, key: str) -> Optional[str]:
        async with self._lock:
            return self._get(key)

    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        async with self._lock:
            self._set(key, value, ttl_seconds)

    async def delete(self, *keys: str) -> int:
        async with self._lock:
            return self._delete(keys)

    async def exists(self, key: str) -> bool:
        async with self._lock:
            return self._get(key) is not None

    async def rpush(self, name: str, member: str) -> int:
        async with self._lock:
            return self._rpush(name, member)

    async def lpush(self, name: str, member: str) -> int:
        async with self._lock:
            items = self._lists.setdefault(name, [])
            items.insert(0, member)
            return len(items)

    async def lpop(self, name: str) -> Optional[str]:
        async with self._lock:
            items = self._lists.get(name)
            if not items:
                return None
            member = items.pop(0)
            if not items:
                del self._lists[name]
            return member

    async def lrem(self, name: str, member: str) -> int:
        async with self._lock:
            return self._lrem(name, member)

    async def lrange(self, name: str) -> list[str]:
        async with self._lock:
            return list(self._lists.get(name, []))

    async def llen(self, name: str) -> int:
        async with self._lock:
            return len(self._lists.get(name, []))

    async def zadd(self, name: str, member: str, score: float) -> None:
        async with self._lock:
            self._zadd(name, member, score)

    async def zrem(self, name: str, member: str) -> int:
        async with self._lock:
            return self._zrem(name, member)

    async def zrangebyscore(
        self, name: str, min_score: float, max_score: float, limit: Optional[int] = None
    ) -> list[str]:
        async with self._lock:
            members = self._zsets.get(name, {})
            ordered = sorted(members.items(), key=lambda item: (item[1], item[0]))
            matched = [m for m, score in ordered if min_score <= score <= max_score]
            return matched[:limit] if limit is not None else matched

    async def zscore(self, name: str, member: str) -> Optional[float]:
        async with self._lock:
            return self._zsets.get(name, {}).get(member)

    async def zcard(self, name: str) -> int:
        async with self._lock:
            return len(self._zsets.get(name, {}))

    def batch(self) -> InMemoryBatch:
        return InMemoryBatch(self)

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        logger.debug("In-memory store closed")
