"""
Single-issue lookups and issue mutations.

Detail lookups are cached briefly. Every mutation invalidates the issue's
detail entry (and the team board when the team is known) only after Linear
confirms the write.
"""

from typing import Any

from portal.cache import MISSING, CacheInvalidator, CacheKeys, TTLCache
from portal.errors import NotFoundError, UpstreamError
from portal.logging import get_logger, log_timing

from .client import LinearClient
from .models import Issue, parse_payload
from .queries import (
    ADD_COMMENT_MUTATION,
    ADD_LABEL_MUTATION,
    CREATE_ATTACHMENT_MUTATION,
    GET_ISSUE_DETAIL_QUERY,
    UPDATE_ASSIGNEE_MUTATION,
    UPDATE_ISSUE_STATE_MUTATION,
    UPDATE_PRIORITY_MUTATION,
)

logger = get_logger("linear.issue_detail")


class IssueDetailService:
    def __init__(
        self,
        client: LinearClient,
        cache: TTLCache,
        invalidator: CacheInvalidator,
        ttl: float = 120,
    ):
        self.client = client
        self.cache = cache
        self.invalidator = invalidator
        self.ttl = ttl

    @log_timing("get_issue_detail")
    async def get_issue_detail(self, issue_id: str, bypass_cache: bool = False) -> Issue:
        """
        Fetch one issue with comments, attachments and children.

        Args:
            issue_id: Linear issue id
            bypass_cache: Skip the cached copy and refresh it

        Raises:
            NotFoundError: If Linear has no such issue
        """
        key = CacheKeys.issue_detail(issue_id)
        if not bypass_cache:
            cached = self.cache.lookup(key)
            if cached is not MISSING:
                logger.debug("issue_detail_cache_hit", issue_id=issue_id)
                return cached

        data = await self.client.execute(GET_ISSUE_DETAIL_QUERY, {"issueId": issue_id})
        node = data.get("issue")
        if not node:
            raise NotFoundError("Issue not found")

        issue = parse_payload(Issue, node)
        self.cache.set(key, issue, ttl=self.ttl)
        return issue

    # =========================================================================
    # Mutations
    # =========================================================================

    async def _mutate(
        self,
        operation: str,
        mutation: str,
        variables: dict[str, Any],
        issue_id: str,
        team_id: str | None,
    ) -> dict[str, Any]:
        data = await self.client.execute(mutation, variables, mutation=True)
        payload = data.get(operation) or {}
        if not payload.get("success"):
            logger.error("issue_mutation_rejected", operation=operation, issue_id=issue_id)
            raise UpstreamError("Issue tracker rejected the change", retriable=False)

        self.invalidator.on_issue_mutated(issue_id, team_id=team_id)
        logger.info("issue_mutated", operation=operation, issue_id=issue_id, team_id=team_id)
        return payload

    async def update_issue_state(self, issue_id: str, state_id: str, team_id: str | None = None) -> dict[str, Any]:
        payload = await self._mutate(
            "issueUpdate",
            UPDATE_ISSUE_STATE_MUTATION,
            {"issueId": issue_id, "stateId": state_id},
            issue_id,
            team_id,
        )
        return payload.get("issue") or {}

    async def add_comment(self, issue_id: str, body: str, team_id: str | None = None) -> dict[str, Any]:
        payload = await self._mutate(
            "commentCreate",
            ADD_COMMENT_MUTATION,
            {"issueId": issue_id, "body": body},
            issue_id,
            team_id,
        )
        return payload.get("comment") or {}

    async def add_label(self, issue_id: str, label_id: str, team_id: str | None = None) -> dict[str, Any]:
        payload = await self._mutate(
            "issueAddLabel",
            ADD_LABEL_MUTATION,
            {"issueId": issue_id, "labelId": label_id},
            issue_id,
            team_id,
        )
        return payload.get("issue") or {}

    async def update_assignee(self, issue_id: str, assignee_id: str, team_id: str | None = None) -> dict[str, Any]:
        payload = await self._mutate(
            "issueUpdate",
            UPDATE_ASSIGNEE_MUTATION,
            {"issueId": issue_id, "assigneeId": assignee_id},
            issue_id,
            team_id,
        )
        return payload.get("issue") or {}

    async def update_priority(self, issue_id: str, priority: int, team_id: str | None = None) -> dict[str, Any]:
        payload = await self._mutate(
            "issueUpdate",
            UPDATE_PRIORITY_MUTATION,
            {"issueId": issue_id, "priority": priority},
            issue_id,
            team_id,
        )
        return payload.get("issue") or {}

    async def record_attachment(
        self, issue_id: str, url: str, title: str, team_id: str | None = None
    ) -> dict[str, Any]:
        """Link an uploaded file to the issue."""
        payload = await self._mutate(
            "attachmentCreate",
            CREATE_ATTACHMENT_MUTATION,
            {"issueId": issue_id, "url": url, "title": title},
            issue_id,
            team_id,
        )
        return payload.get("attachment") or {}
