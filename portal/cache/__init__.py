"""
In-process caching layer.

Provides a process-local TTL cache with:
- Per-entry expiry and explicit cleanup sweeps
- Wildcard pattern invalidation
- Centralized key definitions and event-based invalidation

Usage:
    from portal.cache import TTLCache, CacheKeys, CacheInvalidator

    cache = TTLCache(default_ttl=300)
    cache.set(CacheKeys.issue_detail("abc"), issue, ttl=120)
    CacheInvalidator(cache).on_issue_mutated("abc", team_id="team-1")
"""

from portal.cache.cache_keys import CacheKeys, KVKeys
from portal.cache.invalidation import CacheInvalidator
from portal.cache.ttl_cache import MISSING, CacheEntry, CacheStats, TTLCache

__all__ = [
    "TTLCache",
    "CacheEntry",
    "CacheStats",
    "MISSING",
    "CacheKeys",
    "KVKeys",
    "CacheInvalidator",
]
