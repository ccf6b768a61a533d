"""
Tests for team ownership: the derived index, available teams and
assign/remove.
"""

import asyncio

import pytest

from portal.cache import CacheKeys, KVKeys
from portal.errors import CacheWriteFailure, ConflictError, MalformedDataError, NotFoundError
from portal.kv import InMemoryKVStore
from portal.linear.catalog import TeamCatalog
from portal.ownership import OwnershipIndex


def _seed(store_cls=InMemoryKVStore):
    return store_cls(
        {
            KVKeys.customer("cust-a"): {"id": "cust-a", "name": "Acme"},
            KVKeys.customer("cust-b"): {"id": "cust-b", "name": "Globex"},
            KVKeys.linear_team("t1"): {"id": "t1", "name": "Alpha", "key": "ALP"},
            KVKeys.linear_team("t2"): {"id": "t2", "name": "Bravo", "key": "BRV"},
            KVKeys.linear_team("t3"): {"id": "t3", "name": "Charlie", "key": "CHA"},
            KVKeys.team_owner("t1"): "cust-a",
            KVKeys.team_owner("t2"): "cust-b",
            KVKeys.customer_teams("cust-a"): ["t1"],
            KVKeys.customer_teams("cust-b"): ["t2"],
        }
    )


def _index(store, cache, invalidator):
    catalog = TeamCatalog(store, cache, invalidator)
    return OwnershipIndex(store, cache, catalog, invalidator)


@pytest.fixture
def seeded_store():
    return _seed()


@pytest.fixture
def index(seeded_store, cache, invalidator):
    return _index(seeded_store, cache, invalidator)


class SpyStore(InMemoryKVStore):
    def __init__(self, initial=None):
        super().__init__(initial)
        self.prefix_scans = 0

    async def get_by_prefix(self, prefix):
        if prefix == KVKeys.TEAM_PREFIX:
            self.prefix_scans += 1
        return await super().get_by_prefix(prefix)


class LossyStore(InMemoryKVStore):
    """Reports a successful claim but never persists it."""

    async def set_if_absent(self, key, value):
        return True


class HijackedStore(InMemoryKVStore):
    """Another writer takes the ownership record right after our claim."""

    async def set_if_absent(self, key, value):
        created = await super().set_if_absent(key, value)
        await self.set(key, "cust-b")
        return created


class InterleavingStore(InMemoryKVStore):
    """Runs ``on_owner_scan`` once, between the ownership scan and its mget."""

    on_owner_scan = None

    async def mget(self, keys):
        hook = self.on_owner_scan
        if hook is not None and any(KVKeys.parse_team_owner_key(key) for key in keys):
            self.on_owner_scan = None
            await hook()
        return await super().mget(keys)


class TestOwnershipMap:
    def test_map_built_from_ownership_records(self, index):
        assert asyncio.run(index.get_ownership_map()) == {"t1": "cust-a", "t2": "cust-b"}

    def test_map_served_from_cache_until_expiry(self, cache, invalidator, clock):
        store = _seed(SpyStore)
        index = _index(store, cache, invalidator)

        asyncio.run(index.get_ownership_map())
        asyncio.run(index.get_ownership_map())
        assert store.prefix_scans == 1

        clock.advance(300)
        asyncio.run(index.get_ownership_map())
        assert store.prefix_scans == 2

    def test_legacy_encodings_are_read(self, cache, invalidator):
        store = InMemoryKVStore(
            {
                KVKeys.team_owner("t1"): '"cust-a"',
                KVKeys.team_owner("t2"): {"customerId": "cust-b"},
                "team:t2:members": ["u1"],
            }
        )
        index = _index(store, cache, invalidator)

        assert asyncio.run(index.get_ownership_map()) == {"t1": "cust-a", "t2": "cust-b"}

    def test_malformed_ownership_record_propagates(self, cache, invalidator):
        store = InMemoryKVStore({KVKeys.team_owner("t1"): 42})
        index = _index(store, cache, invalidator)

        with pytest.raises(MalformedDataError):
            asyncio.run(index.get_ownership_map())

    def test_get_team_owner(self, index):
        assert asyncio.run(index.get_team_owner("t2")) == "cust-b"
        assert asyncio.run(index.get_team_owner("t3")) is None


class TestAvailableTeams:
    def test_own_and_unowned_teams_are_available(self, index):
        result = asyncio.run(index.get_available_teams("cust-a"))

        assert [team["id"] for team in result.available] == ["t1", "t3"]
        assert [team["is_assigned_to_this_customer"] for team in result.available] == [True, False]
        assert result.count == 2
        assert result.total_teams == 3

    def test_new_customer_sees_only_unowned_teams(self, index):
        result = asyncio.run(index.get_available_teams("cust-new"))

        assert [team["id"] for team in result.available] == ["t3"]

    def test_to_dict(self, index):
        data = asyncio.run(index.get_available_teams("cust-b")).to_dict()

        assert data["customer_id"] == "cust-b"
        assert data["count"] == 2
        assert data["available"][0]["name"] == "Bravo"

    def test_view_is_cached_per_customer(self, index, cache):
        asyncio.run(index.get_available_teams("cust-a"))

        assert cache.has(CacheKeys.customer_view("cust-a", "available-teams"))
        assert not cache.has(CacheKeys.customer_view("cust-b", "available-teams"))


class TestAssign:
    def test_assign_unowned_team(self, index, seeded_store):
        record = asyncio.run(index.assign("t3", "cust-a"))

        assert (record.team_id, record.owner_id) == ("t3", "cust-a")
        stored = seeded_store.dump()
        assert stored[KVKeys.team_owner("t3")] == "cust-a"
        assert stored[KVKeys.customer_teams("cust-a")] == ["t1", "t3"]

    def test_assign_refreshes_views(self, index):
        async def scenario():
            before = await index.get_available_teams("cust-b")
            await index.assign("t3", "cust-a")
            after = await index.get_available_teams("cust-b")
            ownership = await index.get_ownership_map()
            return before, after, ownership

        before, after, ownership = asyncio.run(scenario())

        assert [team["id"] for team in before.available] == ["t2", "t3"]
        assert [team["id"] for team in after.available] == ["t2"]
        assert ownership["t3"] == "cust-a"

    def test_assign_owned_team_conflicts(self, index, seeded_store):
        with pytest.raises(ConflictError) as exc_info:
            asyncio.run(index.assign("t1", "cust-b"))

        assert exc_info.value.owner_id == "cust-a"
        assert seeded_store.dump()[KVKeys.team_owner("t1")] == "cust-a"
        assert seeded_store.dump()[KVKeys.customer_teams("cust-b")] == ["t2"]

    def test_reassign_to_same_owner_is_idempotent(self, index, seeded_store):
        asyncio.run(index.assign("t1", "cust-a"))

        assert seeded_store.dump()[KVKeys.customer_teams("cust-a")] == ["t1"]

    def test_concurrent_assign_has_one_winner(self, index):
        async def scenario():
            return await asyncio.gather(
                index.assign("t3", "cust-a"),
                index.assign("t3", "cust-b"),
                return_exceptions=True,
            )

        results = asyncio.run(scenario())

        assert sum(isinstance(result, ConflictError) for result in results) == 1
        assert asyncio.run(index.get_team_owner("t3")) in ("cust-a", "cust-b")

    def test_unknown_customer(self, index):
        with pytest.raises(NotFoundError) as exc_info:
            asyncio.run(index.assign("t3", "cust-missing"))

        assert exc_info.value.message == "Customer not found"

    def test_unknown_team(self, index):
        with pytest.raises(NotFoundError) as exc_info:
            asyncio.run(index.assign("t-missing", "cust-a"))

        assert exc_info.value.message == "Team not found"

    def test_unverified_write_fails_after_invalidating(self, cache, invalidator):
        index = _index(_seed(LossyStore), cache, invalidator)
        asyncio.run(index.get_ownership_map())

        with pytest.raises(CacheWriteFailure):
            asyncio.run(index.assign("t3", "cust-a"))

        assert not cache.has(CacheKeys.OWNERSHIP_MAP)

    def test_hijacked_claim_leaves_team_list_untouched(self, cache, invalidator):
        store = _seed(HijackedStore)
        index = _index(store, cache, invalidator)

        with pytest.raises(CacheWriteFailure):
            asyncio.run(index.assign("t3", "cust-a"))

        stored = store.dump()
        assert stored[KVKeys.team_owner("t3")] == "cust-b"
        assert stored[KVKeys.customer_teams("cust-a")] == ["t1"]


class TestRebuildRacingWrites:
    def test_rebuild_overlapping_assign_is_not_cached(self, cache, invalidator):
        store = _seed(InterleavingStore)
        index = _index(store, cache, invalidator)

        async def assign_mid_rebuild():
            await index.assign("t3", "cust-a")

        store.on_owner_scan = assign_mid_rebuild

        async def scenario():
            during = await index.get_ownership_map()
            after = await index.get_ownership_map()
            return during, after

        during, after = asyncio.run(scenario())

        assert "t3" not in during
        assert after == {"t1": "cust-a", "t2": "cust-b", "t3": "cust-a"}

    def test_available_view_overlapping_assign_is_not_cached(self, cache, invalidator):
        store = _seed(InterleavingStore)
        index = _index(store, cache, invalidator)

        async def assign_mid_rebuild():
            await index.assign("t3", "cust-a")

        store.on_owner_scan = assign_mid_rebuild

        async def scenario():
            await index.get_available_teams("cust-b")
            return await index.get_available_teams("cust-b")

        result = asyncio.run(scenario())

        assert [team["id"] for team in result.available] == ["t2"]
        assert cache.has(CacheKeys.customer_view("cust-b", "available-teams"))


class TestRemove:
    def test_remove_owned_team(self, index, seeded_store):
        seeded_store._data[KVKeys.customer_team_members("cust-a", "t1")] = '["u1"]'

        assert asyncio.run(index.remove("t1", "cust-a")) is True

        stored = seeded_store.dump()
        assert KVKeys.team_owner("t1") not in stored
        assert stored[KVKeys.customer_teams("cust-a")] == []
        assert KVKeys.customer_team_members("cust-a", "t1") not in stored

    def test_remove_team_owned_elsewhere_keeps_record(self, index, seeded_store):
        assert asyncio.run(index.remove("t2", "cust-a")) is False

        assert seeded_store.dump()[KVKeys.team_owner("t2")] == "cust-b"

    def test_remove_cleans_stale_team_list(self, index, seeded_store):
        seeded_store._data[KVKeys.customer_teams("cust-a")] = '["t1", "t3"]'

        assert asyncio.run(index.remove("t3", "cust-a")) is False

        assert seeded_store.dump()[KVKeys.customer_teams("cust-a")] == ["t1"]

    def test_removed_team_becomes_available(self, index):
        async def scenario():
            await index.get_available_teams("cust-b")
            await index.remove("t1", "cust-a")
            return await index.get_available_teams("cust-b")

        result = asyncio.run(scenario())

        assert [team["id"] for team in result.available] == ["t1", "t2", "t3"]


def test_available_teams_after_assignment(cache, invalidator):
    store = InMemoryKVStore(
        {
            KVKeys.customer("c1"): {"id": "c1"},
            KVKeys.customer("c2"): {"id": "c2"},
            KVKeys.linear_team("T1"): {"id": "T1", "name": "T1"},
            KVKeys.linear_team("T2"): {"id": "T2", "name": "T2"},
            KVKeys.linear_team("T3"): {"id": "T3", "name": "T3"},
        }
    )
    index = _index(store, cache, invalidator)

    async def scenario():
        await index.assign("T1", "c1")
        return await index.get_available_teams("c1"), await index.get_available_teams("c2")

    for_c1, for_c2 = asyncio.run(scenario())

    assert [team["id"] for team in for_c1.available] == ["T1", "T2", "T3"]
    assert [team["id"] for team in for_c2.available] == ["T2", "T3"]
