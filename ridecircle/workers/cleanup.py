"""
Background Notification Cleanup Worker
======================================

Runs every ``CLEANUP_INTERVAL_SECONDS`` (default 1 h).

Notifications are append-only, so without pruning the inbox grows forever.
Each cycle:

1. Deletes notifications older than ``NOTIFICATION_RETENTION_DAYS``.
2. Keeps only the newest ``NOTIFICATION_MAX_PER_USER`` rows per user.

Concurrency safety
------------------
A **Redis distributed lock** ensures only one API process runs a cycle at a
time.  The ride and contact tables are never touched here.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
import redis.asyncio as aioredis

from ridecircle.config import settings
from ridecircle.infrastructure.database import async_session_factory
from ridecircle.infrastructure.locks import DistributedLock
from ridecircle.infrastructure.redis_client import get_redis
from ridecircle.infrastructure.repositories import NotificationRepository

logger = logging.getLogger(__name__)

_task: asyncio.Task | None = None
_stop_event: asyncio.Event | None = None


# ── Public API ────────────────────────────────────────────────────────


async def start_cleanup_loop() -> None:
    global _task, _stop_event
    _stop_event = asyncio.Event()
    _task = asyncio.create_task(_loop())
    logger.info(
        "Cleanup worker started (interval=%ds)", settings.cleanup_interval_seconds
    )


async def stop_cleanup_loop() -> None:
    if _stop_event:
        _stop_event.set()
    if _task:
        _task.cancel()
        try:
            await _task
        except asyncio.CancelledError:
            pass
    logger.info("Cleanup worker stopped")


# ── Internals ─────────────────────────────────────────────────────────


async def _loop() -> None:
    """Periodic loop: run a cleanup cycle then sleep."""
    assert _stop_event is not None
    while not _stop_event.is_set():
        try:
            await run_cleanup_cycle()
        except Exception:
            logger.exception("Unhandled error in cleanup cycle")
        try:
            await asyncio.wait_for(
                _stop_event.wait(), timeout=settings.cleanup_interval_seconds
            )
            break
        except asyncio.TimeoutError:
            pass  # next cycle


async def run_cleanup_cycle(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    redis: aioredis.Redis | None = None,
    now: datetime | None = None,
) -> int:
    """Execute one pruning cycle.  Returns the number of rows deleted."""
    redis = redis or await get_redis()
    lock = DistributedLock(redis, "notification_cleanup", ttl_seconds=60)

    if not await lock.acquire():
        logger.debug("Lock held by another worker – skipping cycle")
        return 0

    factory = session_factory or async_session_factory
    cutoff = (now or datetime.now(timezone.utc)) - timedelta(
        days=settings.notification_retention_days
    )
    deleted = 0
    try:
        async with factory() as session:
            repo = NotificationRepository(session)
            deleted += await repo.prune_older_than(cutoff)
            deleted += await repo.prune_overflow(settings.notification_max_per_user)
            await session.commit()
        if deleted:
            logger.info("Cleanup cycle: %d notifications pruned", deleted)
    except Exception:
        logger.exception("Error in cleanup cycle")
    finally:
        await lock.release()

    return deleted
