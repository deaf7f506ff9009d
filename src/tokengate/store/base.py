"""Store adapter contract for lease state."""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional


class StoreBatch(ABC):
    """
    Write operations queued for atomic execution.

    Nothing is applied until the owning ``StoreBackend.transaction()`` block
    exits cleanly. If the block raises, the batch is discarded.
    """

    @abstractmethod
    def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        pass

    @abstractmethod
    def delete(self, *keys: str) -> None:
        pass

    @abstractmethod
    def rpush(self, name: str, member: str) -> None:
        pass

    @abstractmethod
    def lrem(self, name: str, member: str) -> None:
        pass

    @abstractmethod
    def zadd(self, name: str, member: str, score: float) -> None:
        pass

    @abstractmethod
    def zrem(self, name: str, member: str) -> None:
        pass

    @abstractmethod
    async def execute(self) -> None:
        """Apply every queued operation as one unit."""
        pass


class StoreBackend(ABC):
    """
    Key-value store with list and sorted-set primitives.

    Implementations must surface transport failures and timeouts as
    ``tokengate.engine.errors.StoreUnavailable``.
    """

    # Key/value
    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        pass

    @abstractmethod
    async def delete(self, *keys: str) -> int:
        """Delete keys, returning how many existed."""
        pass

    @abstractmethod
    async def exists(self, key: str) -> bool:
        pass

    # Lists (FIFO: push right, pop left)
    @abstractmethod
    async def rpush(self, name: str, member: str) -> int:
        pass

    @abstractmethod
    async def lpush(self, name: str, member: str) -> int:
        """Push member onto the head of the list."""
        pass

    @abstractmethod
    async def lpop(self, name: str) -> Optional[str]:
        pass

    @abstractmethod
    async def lrem(self, name: str, member: str) -> int:
        """Remove every occurrence of member, returning the count removed."""
        pass

    @abstractmethod
    async def lrange(self, name: str) -> list[str]:
        pass

    @abstractmethod
    async def llen(self, name: str) -> int:
        pass

    # Sorted sets
    @abstractmethod
    async def zadd(self, name: str, member: str, score: float) -> None:
        pass

    @abstractmethod
    async def zrem(self, name: str, member: str) -> int:
        pass

    @abstractmethod
    async def zrangebyscore(
        self, name: str, min_score: float, max_score: float, limit: Optional[int] = None
    ) -> list[str]:
        """Members with min_score <= score <= max_score, lowest score first."""
        pass

    @abstractmethod
    async def zscore(self, name: str, member: str) -> Optional[float]:
        pass

    @abstractmethod
    async def zcard(self, name: str) -> int:
        pass

    # Transactions
    @abstractmethod
    def batch(self) -> StoreBatch:
        """Create an empty batch bound to this store."""
        pass

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[StoreBatch]:
        """
        Queue writes and apply them atomically on exit.

        Usage:
            async with store.transaction() as tx:
                tx.set(key, value)
                tx.zadd(index, key, score)
        """
        batch = self.batch()
        yield batch
        await batch.execute()

    # Lifecycle
    @abstractmethod
    async def ping(self) -> bool:
        pass

    async def close(self) -> None:
        """Release connections held by the backend."""
        return None
