"""
Scheduler initialization and management.

The only background work is the periodic TTL cache sweep. One scheduler is
built per application in the lifespan and kept on ``app.state``.
"""

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from portal.cache import TTLCache
from portal.logging import get_logger

from . import jobs

logger = get_logger("backend.scheduler")

CACHE_CLEANUP_JOB_ID = "cache_cleanup"


def build_scheduler(cache: TTLCache, interval_seconds: int) -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler(timezone="UTC")
    scheduler.add_job(
        jobs.run_cache_cleanup_job,
        IntervalTrigger(seconds=interval_seconds),
        args=[cache],
        id=CACHE_CLEANUP_JOB_ID,
        replace_existing=True,
        coalesce=True,
        max_instances=1,
        misfire_grace_time=interval_seconds,
    )
    return scheduler


def start_scheduler(scheduler: AsyncIOScheduler) -> None:
    if scheduler.running:
        return
    scheduler.start()
    logger.info("scheduler_started", jobs=len(scheduler.get_jobs()))


def shutdown_scheduler(scheduler: AsyncIOScheduler) -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("scheduler_stopped")

