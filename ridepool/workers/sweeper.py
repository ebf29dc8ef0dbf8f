"""
Background Lifecycle Sweeper
============================

Runs every ``SWEEP_INTERVAL_SECONDS`` (default 600 s).

Promotes every ride whose scheduled date+time is strictly in the past,
and which is not already ``completed`` or ``canceled``, to ``completed``.
The status filter makes a cycle idempotent: a second run over the same
rides matches nothing.

Concurrency safety
------------------
* **Redis distributed lock** ensures only one API process sweeps per
  interval.
* The sweep is a single bulk ``UPDATE``; it relies on the database's own
  transaction isolation against concurrent bookings.  A booking that
  races the sweep either commits first (and its ride is then completed)
  or loses its seat CAS and sees the ride as completed.
"""

from __future__ import annotations

import asyncio
import datetime as dt
import logging
from typing import Optional

from ridepool.config import settings
from ridepool.infrastructure.database import async_session_factory
from ridepool.infrastructure.locks import DistributedLock, LockNotAcquired
from ridepool.infrastructure.redis_client import get_redis
from ridepool.infrastructure.repositories import RideRepository

logger = logging.getLogger(__name__)

_task: asyncio.Task | None = None
_stop_event: asyncio.Event | None = None


# ── Public API ────────────────────────────────────────────────────────


async def start_sweeper_loop() -> None:
    global _task, _stop_event
    _stop_event = asyncio.Event()
    _task = asyncio.create_task(_loop())
    logger.info(
        "Lifecycle sweeper started (interval=%ds)", settings.sweep_interval_seconds
    )


async def stop_sweeper_loop() -> None:
    if _stop_event:
        _stop_event.set()
    if _task:
        _task.cancel()
        try:
            await _task
        except asyncio.CancelledError:
            pass
    logger.info("Lifecycle sweeper stopped")


async def run_sweep_cycle(now: Optional[dt.datetime] = None) -> int:
    """
    Execute one sweep.  Returns the number of rides completed.

    Redis or database trouble is logged and the cycle skipped; the next
    cycle picks up whatever is still elapsed.
    """
    try:
        redis = await get_redis()
        async with DistributedLock(
            redis, "ride_sweeper", ttl_seconds=settings.sweep_lock_ttl_seconds
        ):
            async with async_session_factory() as session:
                completed = await RideRepository(session).complete_elapsed(
                    now or dt.datetime.now()
                )
                await session.commit()
    except LockNotAcquired:
        logger.debug("Lock held by another worker – skipping sweep")
        return 0
    except Exception:
        logger.exception("Error in sweep cycle")
        return 0

    if completed:
        logger.info("Sweep cycle: %d rides completed", completed)
    return completed


# ── Internals ─────────────────────────────────────────────────────────


async def _loop() -> None:
    """Periodic loop: run a sweep then sleep."""
    assert _stop_event is not None
    while not _stop_event.is_set():
        try:
            await run_sweep_cycle()
        except Exception:
            logger.exception("Unhandled error in sweep cycle")
        # Wait for the interval or until stop is signalled
        try:
            await asyncio.wait_for(
                _stop_event.wait(), timeout=settings.sweep_interval_seconds
            )
            break
        except asyncio.TimeoutError:
            pass  # next cycle
