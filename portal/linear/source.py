"""
Issue fetches used by the state aggregator and cache invalidation.
"""

from typing import Protocol

from portal.cache import MISSING, CacheKeys, TTLCache
from portal.errors import MalformedDataError, NotFoundError
from portal.logging import get_logger

from .client import LinearClient
from .models import Issue, Team, TeamConfig, parse_payload
from .queries import (
    GET_ISSUES_IN_STATE_QUERY,
    GET_TEAM_CONFIG_QUERY,
    GET_TEAM_ISSUE_IDS_QUERY,
    GET_TEAMS_QUERY,
)

logger = get_logger("linear.source")


class IssueSource(Protocol):
    """What the aggregator and invalidation paths need from the issue tracker."""

    async def get_team_config(self, team_id: str) -> TeamConfig: ...

    async def get_issues_in_state(self, team_id: str, state_id: str) -> list[Issue]: ...

    async def get_team_issue_ids(self, team_id: str) -> list[str]: ...

    async def list_teams(self) -> list[Team]: ...


class LinearIssueSource:
    """
    IssueSource backed by the Linear API.

    Team configuration is cached; issue buckets are not, since the assembled
    issues-by-state result is cached one level up.
    """

    def __init__(
        self,
        client: LinearClient,
        cache: TTLCache,
        page_size: int = 100,
        config_ttl: float = 300,
    ):
        self.client = client
        self.cache = cache
        self.page_size = page_size
        self.config_ttl = config_ttl

    async def get_team_config(self, team_id: str) -> TeamConfig:
        key = CacheKeys.team_config(team_id)
        cached = self.cache.lookup(key)
        if cached is not MISSING:
            return cached

        data = await self.client.execute(GET_TEAM_CONFIG_QUERY, {"teamId": team_id})
        team = data.get("team")
        if not team:
            raise NotFoundError("Team not found")
        if not isinstance(team, dict):
            raise MalformedDataError("Team configuration has an unexpected shape")

        config = parse_payload(TeamConfig, team)
        self.cache.set(key, config, ttl=self.config_ttl)
        logger.debug("team_config_fetched", team_id=team_id, states=len(config.states))
        return config

    async def get_issues_in_state(self, team_id: str, state_id: str) -> list[Issue]:
        issues = []
        async for node in self.client.paginate(
            GET_ISSUES_IN_STATE_QUERY,
            {"teamId": team_id, "stateId": state_id},
            ("issues",),
            page_size=self.page_size,
        ):
            issues.append(parse_payload(Issue, node))
        return issues

    async def get_team_issue_ids(self, team_id: str) -> list[str]:
        return [
            node["id"]
            async for node in self.client.paginate(
                GET_TEAM_ISSUE_IDS_QUERY,
                {"teamId": team_id},
                ("issues",),
                page_size=self.page_size,
            )
            if node.get("id")
        ]

    async def list_teams(self) -> list[Team]:
        return [
            parse_payload(Team, node)
            async for node in self.client.paginate(GET_TEAMS_QUERY, {}, ("teams",), page_size=self.page_size)
        ]
