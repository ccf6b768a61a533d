"""
Cache invalidation by semantic event.

Every mutation path calls exactly one of these methods after its write
succeeds. The table below is the full list of keys each event clears:

    on_team_ownership_changed  ownership index, every customer view
    on_issue_mutated           issue detail, the team's issues-by-state
    on_team_issues_changed     the team's issues-by-state, listed issue details
    on_team_catalog_changed    team catalog, every customer view
    on_team_config_changed     team config, the team's issues-by-state
    on_customer_changed        that customer's views
    clear_all                  everything
"""

from collections.abc import Iterable

from portal.logging import get_logger

from .cache_keys import CacheKeys
from .ttl_cache import TTLCache

logger = get_logger("cache.invalidation")


class CacheInvalidator:
    """Single invalidation API over a TTLCache instance."""

    def __init__(self, cache: TTLCache):
        self.cache = cache
        # Incremented by every event. A value rebuilt while the generation
        # changed must not be cached.
        self.generation = 0

    def on_team_ownership_changed(self, team_id: str, customer_id: str) -> int:
        """A team was assigned to, moved between, or removed from customers."""
        self.generation += 1
        removed = int(self.cache.delete(CacheKeys.OWNERSHIP_MAP))
        # Availability for every customer depends on the ownership index.
        removed += self.cache.delete_pattern(CacheKeys.all_customer_views_pattern())
        logger.info(
            "cache_invalidated",
            invalidation="team_ownership_changed",
            team_id=team_id,
            customer_id=customer_id,
            removed=removed,
        )
        return removed

    def on_issue_mutated(self, issue_id: str, team_id: str | None = None) -> int:
        """State change, comment, label, assignee, priority or attachment on one issue."""
        self.generation += 1
        removed = int(self.cache.delete(CacheKeys.issue_detail(issue_id)))
        if team_id:
            removed += self.cache.delete_pattern(CacheKeys.team_issues_pattern(team_id))
        logger.info(
            "cache_invalidated",
            invalidation="issue_mutated",
            issue_id=issue_id,
            team_id=team_id,
            removed=removed,
        )
        return removed

    def on_team_issues_changed(self, team_id: str, issue_ids: Iterable[str] = ()) -> int:
        """Bulk change to a team's issues (sync, import, manual refresh)."""
        self.generation += 1
        removed = self.cache.delete_pattern(CacheKeys.team_issues_pattern(team_id))
        for issue_id in issue_ids:
            removed += int(self.cache.delete(CacheKeys.issue_detail(issue_id)))
        logger.info("cache_invalidated", invalidation="team_issues_changed", team_id=team_id, removed=removed)
        return removed

    def on_all_issue_details_stale(self) -> int:
        """Fallback when the set of affected issues cannot be listed."""
        self.generation += 1
        removed = self.cache.delete_pattern(CacheKeys.all_issue_details_pattern())
        logger.warning("cache_invalidated", invalidation="all_issue_details_stale", removed=removed)
        return removed

    def on_team_catalog_changed(self) -> int:
        self.generation += 1
        removed = int(self.cache.delete(CacheKeys.TEAM_CATALOG))
        removed += self.cache.delete_pattern(CacheKeys.all_customer_views_pattern())
        logger.info("cache_invalidated", invalidation="team_catalog_changed", removed=removed)
        return removed

    def on_team_config_changed(self, team_id: str) -> int:
        """Workflow states added, renamed or removed for a team."""
        self.generation += 1
        removed = self.cache.delete_pattern(CacheKeys.team_config_pattern(team_id))
        removed += self.cache.delete_pattern(CacheKeys.team_issues_pattern(team_id))
        logger.info("cache_invalidated", invalidation="team_config_changed", team_id=team_id, removed=removed)
        return removed

    def on_customer_changed(self, customer_id: str) -> int:
        self.generation += 1
        removed = self.cache.delete_pattern(CacheKeys.customer_pattern(customer_id))
        logger.info("cache_invalidated", invalidation="customer_changed", customer_id=customer_id, removed=removed)
        return removed

    def clear_all(self) -> int:
        self.generation += 1
        removed = len(self.cache)
        self.cache.clear()
        logger.warning("cache_invalidated", invalidation="clear_all", removed=removed)
        return removed
