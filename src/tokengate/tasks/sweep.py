"""Lease expiry sweep background task."""

import asyncio
import logging
from time import perf_counter
from typing import Optional

from tokengate.engine.core import LeaseManager
from tokengate.observability.metrics import metrics
from tokengate.observability.trace import set_trace_id

logger = logging.getLogger("tokengate.sweep")

_sweep_task: Optional[asyncio.Task] = None
_shutdown_event: Optional[asyncio.Event] = None


async def sweep_once(manager: LeaseManager) -> int:
    """Run a single reclamation pass. Errors are logged, never raised."""
    set_trace_id()
    start_time = perf_counter()
    try:
        expired_count = await manager.expire_leases()
    except Exception as e:
        logger.error(f"Lease sweep error: {e}", exc_info=True)
        metrics.inc_counter("sweep.failed")
        return 0
    finally:
        metrics.observe("sweep.duration_ms", (perf_counter() - start_time) * 1000.0)

    if expired_count > 0:
        logger.info(f"Expired {expired_count} leases")
    return expired_count


async def lease_sweep_loop(manager: LeaseManager, interval: float, shutdown_event: asyncio.Event):
    """
    Reclaim expired leases every ``interval`` seconds until shutdown.

    Runs independently of request handling; a failed pass is retried on the
    next tick.
    """
    logger.info(f"Lease sweep loop started (interval: {interval}s)")

    while not shutdown_event.is_set():
        await sweep_once(manager)

        try:
            await asyncio.wait_for(shutdown_event.wait(), timeout=interval)
        except asyncio.TimeoutError:
            pass

    logger.info("Lease sweep loop stopped")


async def start_lease_sweep(manager: LeaseManager, interval: Optional[float] = None):
    """Start the lease sweep background task."""
    global _sweep_task, _shutdown_event

    if interval is None:
        interval = manager.settings.sweep_interval_seconds

    _shutdown_event = asyncio.Event()
    _sweep_task = asyncio.create_task(lease_sweep_loop(manager, interval, _shutdown_event))


async def stop_lease_sweep():
    """Stop the lease sweep background task."""
    global _sweep_task, _shutdown_event

    if _shutdown_event:
        _shutdown_event.set()

    if _sweep_task:
        try:
            await asyncio.wait_for(_sweep_task, timeout=10.0)
        except asyncio.TimeoutError:
            logger.warning("Lease sweep task did not stop gracefully, cancelling")
            _sweep_task.cancel()
            try:
                await _sweep_task
            except asyncio.CancelledError:
                pass

    _sweep_task = None
    _shutdown_event = None


def is_sweep_running() -> bool:
    return _sweep_task is not None and not _sweep_task.done()
