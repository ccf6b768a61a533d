"""
Team catalog mirrored from Linear into the key-value store.
"""

from portal.cache import MISSING, CacheInvalidator, CacheKeys, KVKeys, TTLCache
from portal.errors import MalformedDataError
from portal.kv import KVStore, TeamRecord, decode_record
from portal.logging import get_logger

from .source import IssueSource

logger = get_logger("linear.catalog")


class TeamCatalog:
    """
    Every known team, read from ``linear_teams:{teamId}`` records.

    The list is cached for ``ttl`` seconds and dropped on
    ``on_team_catalog_changed``.
    """

    def __init__(
        self,
        store: KVStore,
        cache: TTLCache,
        invalidator: CacheInvalidator,
        source: IssueSource | None = None,
        ttl: float = 300,
    ):
        self.store = store
        self.cache = cache
        self.invalidator = invalidator
        self.source = source
        self.ttl = ttl

    async def list_teams(self) -> list[TeamRecord]:
        cached = self.cache.lookup(CacheKeys.TEAM_CATALOG)
        if cached is not MISSING:
            return cached

        keys = [
            key
            for key in await self.store.get_by_prefix(KVKeys.LINEAR_TEAM_PREFIX)
            if KVKeys.parse_linear_team_key(key)
        ]
        values = await self.store.mget(keys)

        teams = []
        for key, raw in zip(keys, values):
            try:
                team = decode_record(TeamRecord, raw, key=key)
            except MalformedDataError:
                # One unreadable record must not hide the rest of the catalog.
                logger.warning("team_record_skipped", key=key)
                continue
            if team is not None:
                teams.append(team)

        teams.sort(key=lambda team: (team.name.lower(), team.id))
        self.cache.set(CacheKeys.TEAM_CATALOG, teams, ttl=self.ttl)
        logger.info("team_catalog_loaded", count=len(teams))
        return teams

    async def get_team(self, team_id: str) -> TeamRecord | None:
        """Read one team straight from the store."""
        key = KVKeys.linear_team(team_id)
        return decode_record(TeamRecord, await self.store.get(key), key=key)

    async def sync_from_upstream(self) -> int:
        """Write every team Linear reports into the store. Returns the count."""
        if self.source is None:
            raise RuntimeError("TeamCatalog has no issue source to sync from")

        teams = await self.source.list_teams()
        for team in teams:
            record = TeamRecord(id=team.id, name=team.name, key=team.key, description=team.description)
            await self.store.set(KVKeys.linear_team(team.id), record.model_dump())

        self.invalidator.on_team_catalog_changed()
        logger.info("team_catalog_synced", count=len(teams))
        return len(teams)
