"""
Service facade over the caching and hierarchy engine.

Every public method returns a ServiceResult. Engine errors become failed
envelopes carrying their user-safe message; anything unexpected is logged
with its traceback and reported generically.
"""

from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, TypeVar

from portal.aggregator import StateAggregator
from portal.cache import MISSING, CacheInvalidator, CacheKeys, TTLCache
from portal.errors import PortalError, UpstreamError
from portal.linear import IssueDetailService, IssueSource, TeamCatalog
from portal.logging import get_logger
from portal.ownership import OwnershipIndex

from .result import ServiceResult

logger = get_logger("services.portal")

F = TypeVar("F", bound=Callable[..., Awaitable[Any]])


def service_call(operation: str) -> Callable[[F], F]:
    """Wrap an async method so it returns a ServiceResult and never raises."""

    def decorator(func: F) -> F:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> ServiceResult:
            try:
                data = await func(*args, **kwargs)
            except PortalError as e:
                logger.warning("service_call_failed", operation=operation, error_code=e.code, error=e.message)
                return ServiceResult.from_error(e)
            except Exception as e:
                logger.exception("service_call_error", operation=operation, error_type=type(e).__name__)
                return ServiceResult.fail(PortalError.default_message)
            return ServiceResult.ok(data)

        return wrapper  # type: ignore[return-value]

    return decorator


class PortalService:
    """
    Cache-facing query interface used by the HTTP layer.

    Usage:
        result = await service.get_team_issues_by_state("team-1")
        if result.success:
            board = result.data
    """

    def __init__(
        self,
        cache: TTLCache,
        invalidator: CacheInvalidator,
        ownership: OwnershipIndex,
        aggregator: StateAggregator,
        source: IssueSource,
        issue_details: IssueDetailService,
        catalog: TeamCatalog,
        issues_by_state_ttl: float = 300,
    ):
        self.cache = cache
        self.invalidator = invalidator
        self.ownership = ownership
        self.aggregator = aggregator
        self.source = source
        self.issue_details = issue_details
        self.catalog = catalog
        self.issues_by_state_ttl = issues_by_state_ttl

    # =========================================================================
    # Team Ownership
    # =========================================================================

    @service_call("get_team_available_for_customer")
    async def get_team_available_for_customer(self, customer_id: str) -> dict[str, Any]:
        available = await self.ownership.get_available_teams(customer_id)
        return available.to_dict()

    @service_call("assign_team_to_customer")
    async def assign_team_to_customer(self, team_id: str, customer_id: str) -> dict[str, Any]:
        record = await self.ownership.assign(team_id, customer_id)
        return {"team_id": record.team_id, "customer_id": record.owner_id}

    @service_call("remove_team_from_customer")
    async def remove_team_from_customer(self, team_id: str, customer_id: str) -> dict[str, Any]:
        deleted = await self.ownership.remove(team_id, customer_id)
        return {"team_id": team_id, "customer_id": customer_id, "ownership_removed": deleted}

    @service_call("sync_team_catalog")
    async def sync_team_catalog(self) -> dict[str, Any]:
        return {"synced": await self.catalog.sync_from_upstream()}

    # =========================================================================
    # Issues
    # =========================================================================

    @service_call("get_team_issues_by_state")
    async def get_team_issues_by_state(self, team_id: str, bypass_cache: bool = False) -> dict[str, Any]:
        """
        Kanban board for a team, read through the cache.

        Boards with failed states are returned but never cached.
        """
        key = CacheKeys.team_issues_by_state(team_id)
        if not bypass_cache:
            cached = self.cache.lookup(key)
            if cached is not MISSING:
                return {**cached, "from_cache": True}

        board = await self.aggregator.resolve_team_by_state(team_id)
        data = board.to_dict()
        if not board.failed_states:
            self.cache.set(key, data, ttl=self.issues_by_state_ttl)
        return {**data, "from_cache": False}

    @service_call("invalidate_issue_cache")
    async def invalidate_issue_cache(self, team_id: str) -> dict[str, Any]:
        """
        Drop the team's boards and the detail entries of its issues.

        If the team's issue ids cannot be listed, every detail entry is
        dropped instead.
        """
        try:
            issue_ids = await self.source.get_team_issue_ids(team_id)
        except UpstreamError as e:
            logger.warning("issue_ids_unavailable", team_id=team_id, error_code=e.code)
            removed = self.invalidator.on_team_issues_changed(team_id)
            removed += self.invalidator.on_all_issue_details_stale()
            return {"team_id": team_id, "removed": removed, "issue_count": None, "fallback": True}

        removed = self.invalidator.on_team_issues_changed(team_id, issue_ids)
        return {"team_id": team_id, "removed": removed, "issue_count": len(issue_ids), "fallback": False}

    @service_call("get_issue_detail")
    async def get_issue_detail(self, issue_id: str, bypass_cache: bool = False) -> dict[str, Any]:
        issue = await self.issue_details.get_issue_detail(issue_id, bypass_cache=bypass_cache)
        return issue.model_dump(mode="json", by_alias=True)

    @service_call("update_issue_state")
    async def update_issue_state(self, issue_id: str, state_id: str, team_id: str | None = None) -> dict[str, Any]:
        return await self.issue_details.update_issue_state(issue_id, state_id, team_id=team_id)

    @service_call("add_comment")
    async def add_comment(self, issue_id: str, body: str, team_id: str | None = None) -> dict[str, Any]:
        return await self.issue_details.add_comment(issue_id, body, team_id=team_id)

    @service_call("add_label")
    async def add_label(self, issue_id: str, label_id: str, team_id: str | None = None) -> dict[str, Any]:
        return await self.issue_details.add_label(issue_id, label_id, team_id=team_id)

    @service_call("update_assignee")
    async def update_assignee(self, issue_id: str, assignee_id: str, team_id: str | None = None) -> dict[str, Any]:
        return await self.issue_details.update_assignee(issue_id, assignee_id, team_id=team_id)

    @service_call("update_priority")
    async def update_priority(self, issue_id: str, priority: int, team_id: str | None = None) -> dict[str, Any]:
        return await self.issue_details.update_priority(issue_id, priority, team_id=team_id)

    @service_call("record_attachment")
    async def record_attachment(
        self, issue_id: str, url: str, title: str, team_id: str | None = None
    ) -> dict[str, Any]:
        return await self.issue_details.record_attachment(issue_id, url, title, team_id=team_id)

    # =========================================================================
    # Cache Administration
    # =========================================================================

    @service_call("get_cache_stats")
    async def get_cache_stats(self) -> dict[str, Any]:
        return self.cache.performance_report()

    @service_call("cleanup_cache")
    async def cleanup_cache(self) -> dict[str, Any]:
        removed = self.cache.cleanup()
        return {"removed": removed, "entries": len(self.cache)}

    @service_call("clear_cache")
    async def clear_cache(self) -> dict[str, Any]:
        return {"removed": self.invalidator.clear_all()}
