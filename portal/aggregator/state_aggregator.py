"""
Kanban assembly: runs the hierarchy resolver over every workflow state of a
team.

State buckets are fetched concurrently. Each bucket is resolved on its own and
the results are only merged once every fetch has settled.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from portal.errors import PortalError
from portal.hierarchy import HierarchyNode, HierarchyResolver
from portal.linear.models import TeamConfig, WorkflowState
from portal.linear.source import IssueSource
from portal.logging import LogContext, get_logger, log_timing

logger = get_logger("aggregator")


@dataclass
class StateBucket:
    state: WorkflowState
    roots: list[HierarchyNode] = field(default_factory=list)
    error: str | None = None

    @property
    def root_count(self) -> int:
        return len(self.roots)

    @property
    def sub_issue_count(self) -> int:
        return sum(len(root.visible_children) for root in self.roots)

    @property
    def total_count(self) -> int:
        return self.root_count + self.sub_issue_count

    def to_dict(self) -> dict[str, Any]:
        data = {
            "state": self.state.model_dump(mode="json"),
            "issues": [root.to_dict() for root in self.roots],
            "total_count": self.total_count,
            "root_count": self.root_count,
            "sub_issue_count": self.sub_issue_count,
        }
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class TeamBoard:
    team: TeamConfig
    states: list[StateBucket]
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def total_issues(self) -> int:
        return sum(bucket.total_count for bucket in self.states)

    @property
    def failed_states(self) -> list[str]:
        return [bucket.state.id for bucket in self.states if bucket.error is not None]

    def to_dict(self) -> dict[str, Any]:
        return {
            "team": self.team.summary(),
            "states": [bucket.to_dict() for bucket in self.states],
            "total_issues": self.total_issues,
            "failed_states": self.failed_states,
            "timestamp": self.timestamp,
        }


class StateAggregator:
    """
    Builds a TeamBoard for a team.

    Args:
        source: Issue fetches (team config and per-state buckets)
        resolver: Hierarchy resolver applied to each bucket
        partial: When True, a failed state is reported on its bucket and the
            rest of the board is still returned. When False, any failed state
            fails the whole call.
    """

    def __init__(self, source: IssueSource, resolver: HierarchyResolver, partial: bool = False):
        self.source = source
        self.resolver = resolver
        self.partial = partial

    @log_timing("resolve_team_by_state")
    async def resolve_team_by_state(self, team_id: str) -> TeamBoard:
        with LogContext(team_id=team_id):
            config = await self.source.get_team_config(team_id)
            states = config.ordered_states()

            results = await asyncio.gather(
                *(self._resolve_state(team_id, state) for state in states),
                return_exceptions=True,
            )

            buckets = []
            for state, result in zip(states, results):
                if isinstance(result, BaseException):
                    if not self.partial or not isinstance(result, PortalError):
                        raise result
                    logger.warning("state_bucket_failed", state_id=state.id, error=result.code)
                    buckets.append(StateBucket(state=state, error=result.message))
                else:
                    buckets.append(result)

            board = TeamBoard(team=config, states=buckets)
            logger.info(
                "team_board_resolved",
                states=len(buckets),
                total_issues=board.total_issues,
                failed_states=len(board.failed_states),
            )
            return board

    async def _resolve_state(self, team_id: str, state: WorkflowState) -> StateBucket:
        issues = await self.source.get_issues_in_state(team_id, state.id)
        roots = self.resolver.resolve(issues)
        return StateBucket(state=state, roots=roots)
