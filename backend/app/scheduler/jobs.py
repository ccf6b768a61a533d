"""
Scheduled job bodies.
"""

from portal.cache import TTLCache
from portal.logging import get_logger

logger = get_logger("backend.scheduler.jobs")


def run_cache_cleanup_job(cache: TTLCache) -> int:
    """Sweep expired TTL cache entries. Returns the number removed."""
    removed = cache.cleanup()
    logger.info("cache_cleanup_job_complete", removed=removed, entries=len(cache))
    return removed
