"""
Cache key management.

Centralized key definitions to:
- Prevent key collisions
- Enable pattern-based invalidation
- Document cache and store structure
"""


class CacheKeys:
    """
    Keys for the in-process TTL cache.

    Naming convention: {domain}:{id}:{subtype}

    Examples:
        - team_ownership_map:all -> derived team -> owner index
        - team-issues:abc:by-state -> assembled Kanban result for team abc
        - linear:issue-detail:xyz -> single issue lookup
    """

    # Singletons
    OWNERSHIP_MAP = "team_ownership_map:all"
    TEAM_CATALOG = "linear_teams:catalog"

    @staticmethod
    def team_issues_by_state(team_id: str) -> str:
        """Assembled issues-by-state result for a team."""
        return f"team-issues:{team_id}:by-state"

    @staticmethod
    def team_config(team_id: str) -> str:
        """Team configuration (workflow states) from the issue tracker."""
        return f"linear:team:{team_id}:config"

    @staticmethod
    def issue_detail(issue_id: str) -> str:
        return f"linear:issue-detail:{issue_id}"

    @staticmethod
    def customer_view(customer_id: str, view: str) -> str:
        """Per-customer derived view (e.g. available teams)."""
        return f"customer:{customer_id}:{view}"

    # Pattern keys for bulk invalidation
    @staticmethod
    def team_issues_pattern(team_id: str) -> str:
        return f"team-issues:{team_id}:*"

    @staticmethod
    def team_config_pattern(team_id: str) -> str:
        return f"linear:team:{team_id}:*"

    @staticmethod
    def customer_pattern(customer_id: str) -> str:
        return f"customer:{customer_id}:*"

    @staticmethod
    def all_customer_views_pattern() -> str:
        return "customer:*"

    @staticmethod
    def all_issue_details_pattern() -> str:
        return "linear:issue-detail:*"


class KVKeys:
    """
    Keys in the backing key-value store.

    The store is the system of record; these keys are never cached blindly.
    """

    TEAM_PREFIX = "team:"
    LINEAR_TEAM_PREFIX = "linear_teams:"
    CUSTOMER_PREFIX = "customer:"
    OWNERSHIP_SNAPSHOT = "team_ownership_map:all"

    @staticmethod
    def team_owner(team_id: str) -> str:
        """Ownership record: team -> owning customer id."""
        return f"team:{team_id}:customer"

    @staticmethod
    def customer(customer_id: str) -> str:
        return f"customer:{customer_id}"

    @staticmethod
    def customer_teams(customer_id: str) -> str:
        return f"customer:{customer_id}:teams"

    @staticmethod
    def customer_team_members(customer_id: str, team_id: str) -> str:
        """Membership sub-record scoped under a customer+team pair."""
        return f"customer:{customer_id}:team:{team_id}:members"

    @staticmethod
    def linear_team(team_id: str) -> str:
        return f"linear_teams:{team_id}"

    @staticmethod
    def parse_team_owner_key(key: str) -> str | None:
        """Extract the team id from ``team:{teamId}:customer``, or None for other keys."""
        parts = key.split(":")
        if len(parts) == 3 and parts[0] == "team" and parts[2] == "customer" and parts[1]:
            return parts[1]
        return None

    @staticmethod
    def parse_linear_team_key(key: str) -> str | None:
        """Extract the team id from ``linear_teams:{teamId}``."""
        if not key.startswith(KVKeys.LINEAR_TEAM_PREFIX):
            return None
        team_id = key[len(KVKeys.LINEAR_TEAM_PREFIX):]
        if not team_id or ":" in team_id or team_id in ("all", "catalog"):
            return None
        return team_id
