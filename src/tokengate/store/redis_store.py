"""Redis-backed lease store."""

import logging
import time
from typing import Any, Optional

from redis import asyncio as aioredis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from tokengate.config import Settings
from tokengate.engine.errors import StoreUnavailable
from tokengate.observability.metrics import metrics
from tokengate.store.base import StoreBackend, StoreBatch

logger = logging.getLogger(__name__)

_SLOW_OPERATION_MS = 100.0
_TRANSPORT_ERRORS = (RedisConnectionError, RedisTimeoutError)


class RedisBatch(StoreBatch):
    """Writes queued on a MULTI/EXEC pipeline."""

    def __init__(self, redis: aioredis.Redis):
        self._pipe = redis.pipeline(transaction=True)

    def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        self._pipe.set(key, value, ex=ttl_seconds)

    def delete(self, *keys: str) -> None:
        self._pipe.delete(*keys)

    def rpush(self, name: str, member: str) -> None:
        self._pipe.rpush(name, member)

    def lrem(self, name: str, member: str) -> None:
        self._pipe.lrem(name, 0, member)

    def zadd(self, name: str, member: str, score: float) -> None:
        self._pipe.zadd(name, {member: score})

    def zrem(self, name: str, member: str) -> None:
        self._pipe.zrem(name, member)

    async def execute(self) -> None:
        start_time = time.perf_counter()
        try:
            await self._pipe.execute()
        except _TRANSPORT_ERRORS as e:
            raise StoreUnavailable("transaction", e) from e
        finally:
            await self._pipe.reset()
            _observe("MULTI", start_time)


def _observe(command: str, start_time: float) -> None:
    duration_ms = (time.perf_counter() - start_time) * 1000.0
    metrics.observe("store.operation.duration_ms", duration_ms)
    if duration_ms > _SLOW_OPERATION_MS:
        logger.warning(f"Slow Redis operation: {command} took {duration_ms:.2f}ms")


class RedisStore(StoreBackend):
    """
    Lease store on Redis lists, sorted sets and string keys.

    The client is passed in explicitly; use ``from_settings`` to build one
    with a connection pool from configuration.
    """

    def __init__(self, redis: aioredis.Redis, pool: Optional[aioredis.ConnectionPool] = None):
        self.redis = redis
        self._pool = pool

    @classmethod
    def from_settings(cls, settings: Settings) -> "RedisStore":
        pool = aioredis.ConnectionPool(
            host=settings.redis_host,
            port=settings.redis_port,
            db=settings.redis_db,
            password=settings.redis_password,
            encoding="utf-8",
            decode_responses=True,
            max_connections=settings.redis_max_connections,
            socket_connect_timeout=settings.redis_socket_connect_timeout,
            socket_timeout=settings.redis_socket_timeout,
        )
        logger.info(
            f"Redis store initialized: {settings.redis_host}:{settings.redis_port}"
            f"/{settings.redis_db}"
        )
        return cls(aioredis.Redis(connection_pool=pool), pool=pool)

    async def _call(self, command: str, *args: Any, **kwargs: Any) -> Any:
        start_time = time.perf_counter()
        try:
            return await getattr(self.redis, command)(*args, **kwargs)
        except _TRANSPORT_ERRORS as e:
            logger.error(f"Redis {command} failed: {e}")
            raise StoreUnavailable(command, e) from e
        finally:
            _observe(command, start_time)

    async def get(self, key: str) -> Optional[str]:
        return await self._call("get", key)

    async def set(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        await self._call("set", key, value, ex=ttl_seconds)

    async def delete(self, *keys: str) -> int:
        return await self._call("delete", *keys)

    async def exists(self, key: str) -> bool:
        return bool(await self._call("exists", key))

    async def rpush(self, name: str, member: str) -> int:
        return await self._call("rpush", name, member)

    async def lpush(self, name: str, member: str) -> int:
        return await self._call("lpush", name, member)

    async def lpop(self, name: str) -> Optional[str]:
        return await self._call("lpop", name)

    async def lrem(self, name: str, member: str) -> int:
        return await self._call("lrem", name, 0, member)

    async def lrange(self, name: str) -> list[str]:
        return await self._call("lrange", name, 0, -1)

    async def llen(self, name: str) -> int:
        return await self._call("llen", name)

    async def zadd(self, name: str, member: str, score: float) -> None:
        await self._call("zadd", name, {member: score})

    async def zrem(self, name: str, member: str) -> int:
        return await self._call("zrem", name, member)

    async def zrangebyscore(
        self, name: str, min_score: float, max_score: float, limit: Optional[int] = None
    ) -> list[str]:
        if limit is None:
            return await self._call("zrangebyscore", name, min_score, max_score)
        return await self._call(
            "zrangebyscore", name, min_score, max_score, start=0, num=limit
        )

    async def zscore(self, name: str, member: str) -> Optional[float]:
        return await self._call("zscore", name, member)

    async def zcard(self, name: str) -> int:
        return await self._call("zcard", name)

    def batch(self) -> RedisBatch:
        return RedisBatch(self.redis)

    async def ping(self) -> bool:
        result = await self._call("ping")
        return result is True or result == "PONG"

    async def close(self) -> None:
        """Close Redis client and pool."""
        await self.redis.aclose()
        if self._pool is not None:
            await self._pool.disconnect()
            self._pool = None
