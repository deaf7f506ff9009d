"""TokenGate core engine - lease state machine."""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from tokengate.config import VERSION, Settings, settings as default_settings
from tokengate.engine.errors import LeaseNotFound, MalformedRecord, NoneAvailable, StoreUnavailable
from tokengate.engine.locks import KeyedLock
from tokengate.models.lease import BlockingMarker, Lease
from tokengate.observability.metrics import metrics
from tokengate.store.base import StoreBackend
from tokengate.utils.time import to_epoch_ms, utc_now

logger = logging.getLogger(__name__)

AVAILABLE_QUEUE = "leases:available"
EXPIRY_INDEX = "leases:expiry"


def lease_key(lease_id: str) -> str:
    return f"lease:{lease_id}"


def blocking_key(lease_id: str) -> str:
    return f"blocking:{lease_id}"


class LeaseManager:
    """
    Owns the lease record map, the availability queue and the expiry index.

    Every operation on an existing lease runs inside that lease's critical
    section, and each multi-key update is submitted to the store as a single
    transaction. No other component writes these structures.
    """

    def __init__(
        self,
        store: StoreBackend,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.settings = settings or default_settings
        self._clock = clock
        self._locks = KeyedLock()

    async def _load(self, lease_id: str) -> Lease:
        """Read a lease, mapping absent and undecodable records to LeaseNotFound."""
        raw = await self.store.get(lease_key(lease_id))
        if raw is None:
            raise LeaseNotFound(lease_id)
        try:
            lease = Lease.from_record(lease_id, raw)
        except MalformedRecord as e:
            logger.warning(e.message)
            raise LeaseNotFound(lease_id) from e
        lease.is_active = not lease.is_expired(self._clock())
        return lease

    async def _purge(self, lease_id: str) -> bool:
        """Remove record, marker, index and queue entries. Returns whether a record existed."""
        existed = await self.store.exists(lease_key(lease_id))
        async with self.store.transaction() as tx:
            tx.delete(lease_key(lease_id), blocking_key(lease_id))
            tx.zrem(EXPIRY_INDEX, lease_id)
            tx.lrem(AVAILABLE_QUEUE, lease_id)
        return existed

    # =========================================================================
    # Lease operations
    # =========================================================================

    async def create(self) -> Lease:
        """Mint a lease, queue it as available and index its expiry."""
        lease = Lease.create(self._clock(), self.settings.lease_ttl_seconds)

        async with self.store.transaction() as tx:
            tx.set(lease_key(lease.id), lease.to_record())
            tx.rpush(AVAILABLE_QUEUE, lease.id)
            tx.zadd(EXPIRY_INDEX, lease.id, lease.expiry_score)

        metrics.inc_counter("leases.created")
        logger.info(f"Created lease {lease.id} (expires {lease.expiry.isoformat()})")
        return lease

    async def describe(self, lease_id: str) -> Lease:
        """Return a snapshot of a lease. Does not touch queue, index or marker."""
        return await self._load(lease_id)

    async def checkout(self) -> str:
        """
        Claim the oldest available lease.

        Ids whose record is gone, undecodable, already blocked or already
        past expiry are discarded and the next id is popped. Never waits:
        an empty queue raises NoneAvailable immediately.

        If the store fails mid-claim, the id is pushed back onto the head of
        the queue before StoreUnavailable propagates.
        """
        while True:
            lease_id = await self.store.lpop(AVAILABLE_QUEUE)
            if lease_id is None:
                metrics.inc_counter("checkout.none_available")
                raise NoneAvailable()

            try:
                lease = await self._claim(lease_id)
            except StoreUnavailable:
                await self._restore(lease_id)
                raise
            if lease is not None:
                metrics.inc_counter("leases.checked_out")
                logger.info(f"Checked out lease {lease_id}")
                return lease_id

            metrics.inc_counter("leases.checkout.skipped")

    async def _restore(self, lease_id: str) -> None:
        """Best-effort return of a popped id to the head of the queue."""
        try:
            await self.store.lpush(AVAILABLE_QUEUE, lease_id)
        except StoreUnavailable as e:
            logger.error(f"Lease {lease_id} dropped from availability queue: {e.message}")
            metrics.inc_counter("leases.checkout.lost")
        else:
            logger.warning(f"Returned lease {lease_id} to availability queue after store failure")

    async def _claim(self, lease_id: str) -> Lease | None:
        """
        Block a popped lease for its new holder.

        The blocking marker is advisory: nothing reads it back, and the
        record's ``is_blocked`` flag stays set after the marker expires.
        """
        async with self._locks.hold(lease_id):
            now = self._clock()
            try:
                lease = await self._load(lease_id)
            except LeaseNotFound:
                logger.warning(f"Dropping dangling lease id {lease_id} from availability queue")
                return None

            if lease.is_blocked:
                logger.warning(f"Dropping already blocked lease {lease_id} from availability queue")
                return None

            if lease.is_expired(now):
                logger.info(f"Reclaiming expired lease {lease_id} found during checkout")
                await self._purge(lease_id)
                metrics.inc_counter("leases.expired")
                return None

            lease.is_blocked = True
            lease.blocked_at = now
            async with self.store.transaction() as tx:
                tx.set(lease_key(lease_id), lease.to_record())
                tx.set(
                    blocking_key(lease_id),
                    BlockingMarker().to_record(),
                    ttl_seconds=self.settings.blocking_ttl_seconds,
                )
            return lease

    async def release(self, lease_id: str) -> Lease:
        """Unblock a lease, optionally returning it to the availability queue."""
        async with self._locks.hold(lease_id):
            lease = await self._load(lease_id)
            lease.is_blocked = False
            lease.blocked_at = None

            async with self.store.transaction() as tx:
                tx.set(lease_key(lease_id), lease.to_record())
                tx.delete(blocking_key(lease_id))
                if self.settings.requeue_on_release:
                    tx.lrem(AVAILABLE_QUEUE, lease_id)
                    tx.rpush(AVAILABLE_QUEUE, lease_id)

        metrics.inc_counter("leases.released")
        logger.info(
            f"Released lease {lease_id}"
            + (" (requeued)" if self.settings.requeue_on_release else "")
        )
        return lease

    async def keepalive(self, lease_id: str) -> Lease:
        """Push a lease's expiry to now + TTL and move its index entry."""
        async with self._locks.hold(lease_id):
            lease = await self._load(lease_id)
            now = self._clock()
            lease.expiry = now + timedelta(seconds=self.settings.lease_ttl_seconds)
            lease.updated_at = now
            lease.is_active = True

            async with self.store.transaction() as tx:
                tx.set(lease_key(lease_id), lease.to_record())
                tx.zadd(EXPIRY_INDEX, lease_id, lease.expiry_score)

        metrics.inc_counter("leases.keepalive")
        logger.info(f"Extended lease {lease_id} to {lease.expiry.isoformat()}")
        return lease

    async def delete(self, lease_id: str) -> None:
        """
        Remove a lease and everything that refers to it.

        Stray index/queue entries are cleaned up even when the record is
        already gone, but that case still raises LeaseNotFound.
        """
        async with self._locks.hold(lease_id):
            existed = await self._purge(lease_id)

        if not existed:
            raise LeaseNotFound(lease_id)

        metrics.inc_counter("leases.deleted")
        logger.info(f"Deleted lease {lease_id}")

    # =========================================================================
    # Reclamation
    # =========================================================================

    async def expire_leases(self, now: datetime | None = None) -> int:
        """
        Delete every lease whose expiry is <= now.

        Called by the background sweep. A failure on one id is logged and
        counted; the rest of the batch is still processed and the failed id
        is retried on the next sweep.

        Returns:
            Number of leases reclaimed.
        """
        cutoff = to_epoch_ms(now or self._clock())
        batch_size = self.settings.sweep_batch_size
        count = 0

        while True:
            expired_ids = await self.store.zrangebyscore(
                EXPIRY_INDEX, 0, cutoff, limit=batch_size
            )
            progressed = False

            for lease_id in expired_ids:
                try:
                    if await self._expire_one(lease_id, cutoff):
                        count += 1
                        metrics.inc_counter("leases.expired")
                    progressed = True
                except Exception as e:
                    logger.error(f"Failed to expire lease {lease_id}: {e}", exc_info=True)
                    metrics.inc_counter("leases.expired.failed")

            if len(expired_ids) < batch_size or not progressed:
                break

        return count

    async def _expire_one(self, lease_id: str, cutoff: int) -> bool:
        async with self._locks.hold(lease_id):
            score = await self.store.zscore(EXPIRY_INDEX, lease_id)
            if score is None or score > cutoff:
                # Deleted or kept alive since the index was read
                return False
            existed = await self._purge(lease_id)

        if existed:
            logger.info(f"Expired lease {lease_id}")
        else:
            logger.warning(f"Removed index entry for missing lease {lease_id}")
        return existed

    # =========================================================================
    # Introspection
    # =========================================================================

    async def stats(self) -> dict[str, Any]:
        """Return metrics snapshot with pool size gauges."""
        available = await self.store.llen(AVAILABLE_QUEUE)
        tracked = await self.store.zcard(EXPIRY_INDEX)

        metrics.set_gauge("leases.available", available)
        metrics.set_gauge("leases.tracked", tracked)

        return {
            "metrics": metrics.snapshot(),
            "pool": {"available": available, "tracked": tracked},
        }

    def get_config(self) -> dict[str, Any]:
        """Return operational configuration."""
        return {
            "store_backend": self.settings.store_backend.value,
            "lease_ttl_seconds": self.settings.lease_ttl_seconds,
            "blocking_ttl_seconds": self.settings.blocking_ttl_seconds,
            "sweep_interval_seconds": self.settings.sweep_interval_seconds,
            "requeue_on_release": self.settings.requeue_on_release,
            "version": VERSION,
        }
