"""
Process-local TTL cache.

Provides an in-memory key/value store with:
- Per-entry expiry (lazy on read, or via an explicit cleanup sweep)
- Wildcard pattern deletion for cascading invalidation
- Hit/miss counters backing the cache performance report

Known limitation: entries live in this process only. Several API workers each
hold their own copy and invalidation in one worker is not seen by the others;
the backing key-value store remains the source of truth and TTLs bound how
long a worker can serve stale data.
"""

import re
import threading
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass
from typing import Any

from portal.logging import get_logger

logger = get_logger("cache.ttl")

MISSING = object()


@dataclass
class CacheEntry:
    """A cached value with its creation and expiry timestamps."""

    value: Any
    created_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


@dataclass
class CacheStats:
    """Counters reported by TTLCache.get_stats()."""

    hits: int = 0
    misses: int = 0
    entries: int = 0

    @property
    def hit_ratio(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["hit_ratio"] = self.hit_ratio
        return data


def compile_pattern(pattern: str) -> re.Pattern[str]:
    """
    Compile a simple wildcard pattern into an anchored regex.

    Only ``*`` is special; it matches any run of characters (including none).
    A pattern without ``*`` matches exactly one key.

    Examples:
        "admin:users*"   -> every key starting with "admin:users"
        "team-issues:*:by-state" -> every team's issues-by-state entry
    """
    parts = (re.escape(part) for part in pattern.split("*"))
    return re.compile("^" + ".*".join(parts) + "$", re.DOTALL)


class TTLCache:
    """
    Thread-safe in-memory cache with per-entry TTL.

    Construct one instance per process and pass it to the components that
    need it.

    Usage:
        cache = TTLCache(default_ttl=300, max_entries=100)
        cache.set("team_ownership_map:all", mapping, ttl=300)
        mapping = cache.get("team_ownership_map:all")  # None on miss
        cache.delete_pattern("team-issues:*")
    """

    def __init__(
        self,
        default_ttl: float = 300,
        max_entries: int = 100,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.default_ttl = default_ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    # =========================================================================
    # Core Operations
    # =========================================================================

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """
        Store a value with ``expires_at = now + ttl``.

        At capacity, expired entries are swept first. Live entries are never
        evicted; TTLs bound growth.
        """
        ttl = self.default_ttl if ttl is None else ttl
        with self._lock:
            now = self._clock()
            if key not in self._entries and len(self._entries) >= self.max_entries:
                removed = self._cleanup_locked(now)
                logger.debug("cache_capacity_cleanup", removed=removed, size=len(self._entries))
            self._entries[key] = CacheEntry(value=value, created_at=now, expires_at=now + ttl)

    def get(self, key: str, default: Any = None) -> Any:
        """Return the cached value, or ``default`` on a miss or expired entry."""
        value = self.lookup(key)
        return default if value is MISSING else value

    def lookup(self, key: str) -> Any:
        """Like get(), but returns MISSING on a miss so ``None`` can be cached."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return MISSING
            if entry.is_expired(self._clock()):
                del self._entries[key]
                self._misses += 1
                return MISSING
            self._hits += 1
            return entry.value

    def has(self, key: str) -> bool:
        """Check for a live entry without touching the hit/miss counters."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False
            if entry.is_expired(self._clock()):
                del self._entries[key]
                return False
            return True

    def delete(self, key: str) -> bool:
        """Remove one entry. Returns False if it was not present."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def delete_pattern(self, pattern: str) -> int:
        """
        Delete every key matching a wildcard pattern.

        Args:
            pattern: Key pattern where ``*`` matches any characters

        Returns:
            Number of keys deleted
        """
        regex = compile_pattern(pattern)
        with self._lock:
            matched = [key for key in self._entries if regex.match(key)]
            for key in matched:
                del self._entries[key]
        if matched:
            logger.debug("cache_pattern_invalidated", pattern=pattern, removed=len(matched))
        return len(matched)

    def cleanup(self) -> int:
        """Remove all expired entries. Returns the number removed."""
        with self._lock:
            before = len(self._entries)
            removed = self._cleanup_locked(self._clock())
            after = len(self._entries)
        logger.debug("cache_cleanup", removed=removed, before=before, after=after)
        return removed

    def clear(self) -> None:
        """Drop every entry and reset the counters."""
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def _cleanup_locked(self, now: float) -> int:
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    # =========================================================================
    # Introspection
    # =========================================================================

    def keys(self) -> list[str]:
        """Snapshot of current keys (expired entries included until swept)."""
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get_stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(hits=self._hits, misses=self._misses, entries=len(self._entries))

    def get_hit_ratio(self) -> float:
        return self.get_stats().hit_ratio

    def performance_report(self) -> dict[str, Any]:
        """Hit ratio, efficiency label and tuning recommendations."""
        stats = self.get_stats()
        hit_ratio = stats.hit_ratio
        if hit_ratio > 0.8:
            efficiency = "excellent"
        elif hit_ratio > 0.6:
            efficiency = "good"
        elif hit_ratio > 0.4:
            efficiency = "fair"
        else:
            efficiency = "poor"

        return {
            **stats.to_dict(),
            "max_entries": self.max_entries,
            "efficiency": efficiency,
            "recommendations": _recommendations(stats, hit_ratio, self.max_entries),
        }


def _recommendations(stats: CacheStats, hit_ratio: float, max_entries: int) -> list[str]:
    recommendations = []
    if stats.hits + stats.misses > 0 and hit_ratio < 0.5:
        recommendations.append("Consider increasing cache TTL for frequently accessed data")
    if stats.entries >= max_entries:
        recommendations.append("Cache is at capacity; live entries are not evicted before expiry")
    if stats.misses > stats.hits * 2:
        recommendations.append("High miss rate detected - review cache warming strategies")
    if not recommendations:
        recommendations.append("Cache performance is optimal")
    return recommendations


__all__ = ["TTLCache", "CacheEntry", "CacheStats", "compile_pattern", "MISSING"]
