"""Lease store backends."""

import logging

from tokengate.config import Settings, StoreBackendKind
from tokengate.store.base import StoreBackend, StoreBatch
from tokengate.store.memory import InMemoryStore

logger = logging.getLogger(__name__)


def create_store(settings: Settings) -> StoreBackend:
    """Build the store backend selected by ``settings.store_backend``."""
    if settings.store_backend == StoreBackendKind.MEMORY:
        logger.info("Using in-memory lease store (dev only)")
        return InMemoryStore()

    from tokengate.store.redis_store import RedisStore

    return RedisStore.from_settings(settings)


__all__ = [
    "InMemoryStore",
    "StoreBackend",
    "StoreBatch",
    "create_store",
]
