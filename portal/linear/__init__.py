"""Linear issue-tracker integration."""

from portal.linear.catalog import TeamCatalog
from portal.linear.client import LinearClient
from portal.linear.issue_detail import IssueDetailService
from portal.linear.models import Issue, ParentRef, Team, TeamConfig, WorkflowState
from portal.linear.source import IssueSource, LinearIssueSource

__all__ = [
    "LinearClient",
    "LinearIssueSource",
    "IssueSource",
    "IssueDetailService",
    "TeamCatalog",
    "Issue",
    "ParentRef",
    "Team",
    "TeamConfig",
    "WorkflowState",
]
