"""
Application-lifetime wiring.

One PortalContainer is built at process start and closed at exit. Components
receive their collaborators from here; nothing in the engine is a module-level
singleton.

Usage:
    container = PortalContainer.from_settings(get_settings())
    await container.start()
    result = await container.service.get_cache_stats()
    await container.close()
"""

from portal.aggregator import StateAggregator
from portal.cache import CacheInvalidator, TTLCache
from portal.config import Settings
from portal.hierarchy import HierarchyResolver
from portal.kv import KVStore, RedisKVStore
from portal.linear import IssueDetailService, IssueSource, LinearClient, LinearIssueSource, TeamCatalog
from portal.logging import get_logger
from portal.ownership import OwnershipIndex
from portal.services import PortalService

logger = get_logger("container")


class PortalContainer:
    def __init__(
        self,
        settings: Settings,
        store: KVStore,
        client: LinearClient,
        cache: TTLCache | None = None,
        source: IssueSource | None = None,
    ):
        self.settings = settings
        self.store = store
        self.client = client
        self.cache = cache if cache is not None else TTLCache(
            default_ttl=settings.cache_default_ttl,
            max_entries=settings.cache_max_entries,
        )
        self.invalidator = CacheInvalidator(self.cache)
        self.source = source if source is not None else LinearIssueSource(
            client,
            self.cache,
            page_size=settings.linear_page_size,
            config_ttl=settings.cache_default_ttl,
        )
        self.catalog = TeamCatalog(
            store,
            self.cache,
            self.invalidator,
            source=self.source,
            ttl=settings.team_catalog_ttl,
        )
        self.ownership = OwnershipIndex(
            store,
            self.cache,
            self.catalog,
            self.invalidator,
            ttl=settings.ownership_cache_ttl,
        )
        self.resolver = HierarchyResolver(max_depth=settings.hierarchy_max_depth)
        self.aggregator = StateAggregator(
            self.source,
            self.resolver,
            partial=settings.issues_by_state_partial,
        )
        self.issue_details = IssueDetailService(
            client,
            self.cache,
            self.invalidator,
            ttl=settings.issue_detail_ttl,
        )
        self.service = PortalService(
            cache=self.cache,
            invalidator=self.invalidator,
            ownership=self.ownership,
            aggregator=self.aggregator,
            source=self.source,
            issue_details=self.issue_details,
            catalog=self.catalog,
            issues_by_state_ttl=settings.issues_by_state_ttl,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "PortalContainer":
        store = RedisKVStore.from_url(settings.redis_url, namespace=settings.kv_namespace)
        client = LinearClient(
            settings.linear_api_key,
            api_url=settings.linear_api_url,
            timeout=settings.linear_timeout_seconds,
            max_retries=settings.linear_max_retries,
            max_concurrent=settings.linear_max_concurrent,
        )
        return cls(settings, store, client)

    async def start(self) -> None:
        await self.client.open()
        if not await self.store.ping():
            logger.warning("backing_store_unavailable")
        logger.info("container_started")

    async def close(self) -> None:
        await self.client.close()
        await self.store.close()
        self.cache.clear()
        logger.info("container_closed")
