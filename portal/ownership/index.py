"""
Team ownership index.

Each assigned team has one ownership record in the backing store
(``team:{teamId}:customer -> customerId``). The index is the derived
``teamId -> customerId`` map built by scanning those records, cached in the
TTL cache and dropped whenever an assignment changes.

A team belongs to at most one customer. Writes enforce this in three layers:
an in-process lock serializes administrative mutations, the ownership record
is claimed with set-if-absent, and the record is read back after every write
so a lost race surfaces as CacheWriteFailure instead of two owners.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any

from portal.cache import MISSING, CacheInvalidator, CacheKeys, KVKeys, TTLCache
from portal.errors import CacheWriteFailure, ConflictError, NotFoundError
from portal.kv import (
    Customer,
    KVStore,
    OwnershipRecord,
    OwnershipSnapshot,
    decode_id_list,
    decode_owner_id,
    decode_record,
)
from portal.linear.catalog import TeamCatalog
from portal.logging import get_logger

logger = get_logger("ownership")


@dataclass
class AvailableTeams:
    customer_id: str
    available: list[dict[str, Any]] = field(default_factory=list)
    total_teams: int = 0

    @property
    def count(self) -> int:
        return len(self.available)

    def to_dict(self) -> dict[str, Any]:
        return {
            "customer_id": self.customer_id,
            "available": self.available,
            "count": self.count,
            "total_teams": self.total_teams,
        }


class OwnershipIndex:
    def __init__(
        self,
        store: KVStore,
        cache: TTLCache,
        catalog: TeamCatalog,
        invalidator: CacheInvalidator,
        ttl: float = 300,
    ):
        self.store = store
        self.cache = cache
        self.catalog = catalog
        self.invalidator = invalidator
        self.ttl = ttl
        self._write_lock = asyncio.Lock()

    # =========================================================================
    # Reads
    # =========================================================================

    async def get_ownership_map(self) -> dict[str, str]:
        """
        Return ``{team_id: customer_id}`` for every owned team.

        Served from the cache while younger than the TTL, otherwise rebuilt
        from the ownership records in the store.
        """
        cached = self.cache.lookup(CacheKeys.OWNERSHIP_MAP)
        if cached is not MISSING:
            return cached.to_mapping()

        generation = self.invalidator.generation
        snapshot = await self._rebuild()
        if self.invalidator.generation == generation:
            self.cache.set(CacheKeys.OWNERSHIP_MAP, snapshot, ttl=self.ttl)
        else:
            logger.info("ownership_index_rebuild_superseded")
        return snapshot.to_mapping()

    async def _rebuild(self) -> OwnershipSnapshot:
        keys = []
        team_ids = []
        for key in await self.store.get_by_prefix(KVKeys.TEAM_PREFIX):
            team_id = KVKeys.parse_team_owner_key(key)
            if team_id:
                keys.append(key)
                team_ids.append(team_id)

        values = await self.store.mget(keys)
        mapping = {}
        for team_id, key, raw in zip(team_ids, keys, values):
            owner_id = decode_owner_id(raw, key=key)
            if owner_id:
                mapping[team_id] = owner_id

        logger.info("ownership_index_rebuilt", records=len(keys), owned=len(mapping))
        return OwnershipSnapshot.from_mapping(mapping, timestamp=time.time())

    async def get_team_owner(self, team_id: str) -> str | None:
        """Owner straight from the ownership record, bypassing the index."""
        key = KVKeys.team_owner(team_id)
        return decode_owner_id(await self.store.get(key), key=key)

    async def get_available_teams(self, customer_id: str) -> AvailableTeams:
        """Teams that are unowned or already owned by ``customer_id``."""
        view_key = CacheKeys.customer_view(customer_id, "available-teams")
        cached = self.cache.lookup(view_key)
        if cached is not MISSING:
            return cached

        generation = self.invalidator.generation
        teams = await self.catalog.list_teams()
        ownership = await self.get_ownership_map()

        available = []
        for team in teams:
            owner_id = ownership.get(team.id)
            if owner_id is None or owner_id == customer_id:
                available.append(
                    {
                        **team.model_dump(),
                        "is_assigned_to_this_customer": owner_id == customer_id,
                    }
                )

        logger.debug(
            "available_teams_computed",
            customer_id=customer_id,
            available=len(available),
            total=len(teams),
        )
        result = AvailableTeams(customer_id=customer_id, available=available, total_teams=len(teams))
        if self.invalidator.generation == generation:
            self.cache.set(view_key, result, ttl=self.ttl)
        return result

    # =========================================================================
    # Writes
    # =========================================================================

    async def assign(self, team_id: str, customer_id: str) -> OwnershipRecord:
        """
        Assign ``team_id`` to ``customer_id``. Idempotent for the same owner.

        Raises:
            NotFoundError: Unknown customer or team
            ConflictError: The team is owned by a different customer
            CacheWriteFailure: The ownership record did not read back as written
        """
        async with self._write_lock:
            customer_key = KVKeys.customer(customer_id)
            if decode_record(Customer, await self.store.get(customer_key), key=customer_key) is None:
                raise NotFoundError("Customer not found")
            if await self.catalog.get_team(team_id) is None:
                raise NotFoundError("Team not found")

            owner_key = KVKeys.team_owner(team_id)
            current = decode_owner_id(await self.store.get(owner_key), key=owner_key)
            if current is None:
                if not await self.store.set_if_absent(owner_key, customer_id):
                    # Claimed by another writer since the read above.
                    current = decode_owner_id(await self.store.get(owner_key), key=owner_key)
            if current is not None and current != customer_id:
                logger.info("team_assignment_conflict", team_id=team_id, customer_id=customer_id, owner_id=current)
                raise ConflictError(team_id=team_id, owner_id=current)

            # The team list is only touched once the ownership record is confirmed.
            persisted = decode_owner_id(await self.store.get(owner_key), key=owner_key)
            if persisted != customer_id:
                self.invalidator.on_team_ownership_changed(team_id, customer_id)
                logger.error(
                    "ownership_write_unverified",
                    team_id=team_id,
                    customer_id=customer_id,
                    persisted=persisted,
                )
                raise CacheWriteFailure()

            teams_key = KVKeys.customer_teams(customer_id)
            teams = decode_id_list(await self.store.get(teams_key), key=teams_key)
            if team_id not in teams:
                await self.store.set(teams_key, [*teams, team_id])
            self.invalidator.on_team_ownership_changed(team_id, customer_id)

            logger.info("team_assigned", team_id=team_id, customer_id=customer_id)
            return OwnershipRecord(team_id=team_id, owner_id=customer_id)

    async def remove(self, team_id: str, customer_id: str) -> bool:
        """
        Detach ``team_id`` from ``customer_id``.

        The ownership record is deleted only if it points at ``customer_id``.
        The customer's team list and membership sub-record are cleaned up
        either way.

        Returns:
            True if an ownership record was deleted
        """
        async with self._write_lock:
            owner_key = KVKeys.team_owner(team_id)
            current = decode_owner_id(await self.store.get(owner_key), key=owner_key)

            deleted = False
            if current == customer_id:
                deleted = await self.store.delete(owner_key)
            elif current is not None:
                logger.info("team_owned_elsewhere", team_id=team_id, customer_id=customer_id, owner_id=current)

            teams_key = KVKeys.customer_teams(customer_id)
            teams = decode_id_list(await self.store.get(teams_key), key=teams_key)
            if team_id in teams:
                await self.store.set(teams_key, [tid for tid in teams if tid != team_id])

            await self.store.delete(KVKeys.customer_team_members(customer_id, team_id))

            self.invalidator.on_team_ownership_changed(team_id, customer_id)
            logger.info("team_removed", team_id=team_id, customer_id=customer_id, record_deleted=deleted)
            return deleted
