"""
Tests for issue detail lookups, mutations and the team catalog.
"""

import asyncio

import pytest

from fakes import FakeLinearClient
from portal.cache import CacheKeys, KVKeys
from portal.errors import MalformedDataError, NotFoundError, UpstreamError
from portal.kv import InMemoryKVStore
from portal.linear import IssueDetailService, Team, TeamCatalog


def _detail(issue_id="i1"):
    return {
        "issue": {
            "id": issue_id,
            "identifier": "ENG-1",
            "title": "Broken login",
            "state": {"id": "s-todo", "name": "Todo"},
            "comments": {"nodes": [{"id": "c1", "body": "Seen on mobile"}]},
            "attachments": {"nodes": []},
            "children": {"nodes": [{"id": "i2", "children": {"nodes": []}}]},
        }
    }


class TestIssueDetail:
    def test_detail_is_cached(self, cache, invalidator):
        client = FakeLinearClient([_detail()])
        service = IssueDetailService(client, cache, invalidator)

        first = asyncio.run(service.get_issue_detail("i1"))
        second = asyncio.run(service.get_issue_detail("i1"))

        assert first is second
        assert first.comments == [{"id": "c1", "body": "Seen on mobile"}]
        assert [child.id for child in first.direct_children] == ["i2"]
        assert len(client.calls) == 1

    def test_bypass_refreshes_the_cached_copy(self, cache, invalidator):
        client = FakeLinearClient([_detail(), _detail()])
        service = IssueDetailService(client, cache, invalidator)

        asyncio.run(service.get_issue_detail("i1"))
        asyncio.run(service.get_issue_detail("i1", bypass_cache=True))

        assert len(client.calls) == 2
        assert cache.has(CacheKeys.issue_detail("i1"))

    def test_detail_expires_after_ttl(self, cache, invalidator, clock):
        client = FakeLinearClient([_detail(), _detail()])
        service = IssueDetailService(client, cache, invalidator, ttl=120)

        asyncio.run(service.get_issue_detail("i1"))
        clock.advance(120)
        asyncio.run(service.get_issue_detail("i1"))

        assert len(client.calls) == 2

    def test_missing_issue(self, cache, invalidator):
        service = IssueDetailService(FakeLinearClient([{"issue": None}]), cache, invalidator)

        with pytest.raises(NotFoundError):
            asyncio.run(service.get_issue_detail("ghost"))

    def test_malformed_issue_is_not_cached(self, cache, invalidator):
        client = FakeLinearClient([{"issue": {"title": "no id", "children": {"nodes": []}}}])
        service = IssueDetailService(client, cache, invalidator)

        with pytest.raises(MalformedDataError):
            asyncio.run(service.get_issue_detail("i1"))

        assert not cache.has(CacheKeys.issue_detail("i1"))

    def test_mutation_invalidates_detail_and_board(self, cache, invalidator):
        cache.set(CacheKeys.issue_detail("i1"), "detail", ttl=60)
        cache.set(CacheKeys.team_issues_by_state("t1"), "board", ttl=60)
        client = FakeLinearClient([{"issueUpdate": {"success": True, "issue": {"id": "i1"}}}])
        service = IssueDetailService(client, cache, invalidator)

        result = asyncio.run(service.update_issue_state("i1", "s-done", team_id="t1"))

        assert result == {"id": "i1"}
        assert client.calls[0]["mutation"] is True
        assert client.calls[0]["variables"] == {"issueId": "i1", "stateId": "s-done"}
        assert not cache.has(CacheKeys.issue_detail("i1"))
        assert not cache.has(CacheKeys.team_issues_by_state("t1"))

    def test_rejected_mutation_keeps_cache(self, cache, invalidator):
        cache.set(CacheKeys.issue_detail("i1"), "detail", ttl=60)
        client = FakeLinearClient([{"commentCreate": {"success": False}}])
        service = IssueDetailService(client, cache, invalidator)

        with pytest.raises(UpstreamError):
            asyncio.run(service.add_comment("i1", "hello"))

        assert cache.has(CacheKeys.issue_detail("i1"))

    def test_failed_mutation_keeps_cache(self, cache, invalidator):
        cache.set(CacheKeys.issue_detail("i1"), "detail", ttl=60)
        client = FakeLinearClient([UpstreamError(status=503)])
        service = IssueDetailService(client, cache, invalidator)

        with pytest.raises(UpstreamError):
            asyncio.run(service.update_priority("i1", 2))

        assert cache.has(CacheKeys.issue_detail("i1"))

    @pytest.mark.parametrize(
        "method,args,operation,result_field",
        [
            ("add_comment", ("i1", "hello"), "commentCreate", "comment"),
            ("add_label", ("i1", "lbl-1"), "issueAddLabel", "issue"),
            ("update_assignee", ("i1", "user-1"), "issueUpdate", "issue"),
            ("update_priority", ("i1", 1), "issueUpdate", "issue"),
            ("record_attachment", ("i1", "https://files/x.png", "x.png"), "attachmentCreate", "attachment"),
        ],
    )
    def test_each_mutation_returns_its_entity(self, cache, invalidator, method, args, operation, result_field):
        client = FakeLinearClient([{operation: {"success": True, result_field: {"id": "new"}}}])
        service = IssueDetailService(client, cache, invalidator)

        result = asyncio.run(getattr(service, method)(*args))

        assert result == {"id": "new"}


class FakeTeamSource:
    def __init__(self, teams):
        self.teams = teams

    async def list_teams(self):
        return self.teams


class TestTeamCatalog:
    def test_lists_teams_sorted_and_skips_malformed(self, cache, invalidator):
        store = InMemoryKVStore(
            {
                KVKeys.linear_team("t2"): {"id": "t2", "name": "beta"},
                KVKeys.linear_team("t1"): '{"id": "t1", "name": "Alpha"}',
                KVKeys.linear_team("t3"): ["garbage"],
                "linear_teams:catalog": {"ignored": True},
            }
        )
        catalog = TeamCatalog(store, cache, invalidator)

        teams = asyncio.run(catalog.list_teams())

        assert [team.id for team in teams] == ["t1", "t2"]
        assert cache.has(CacheKeys.TEAM_CATALOG)

    def test_sync_writes_records_and_invalidates(self, cache, invalidator):
        store = InMemoryKVStore()
        source = FakeTeamSource([Team(id="t1", name="Alpha", key="ALP")])
        catalog = TeamCatalog(store, cache, invalidator, source=source)
        asyncio.run(catalog.list_teams())
        cache.set(CacheKeys.customer_view("c1", "available-teams"), [], ttl=60)

        assert asyncio.run(catalog.sync_from_upstream()) == 1

        assert store.dump()[KVKeys.linear_team("t1")]["name"] == "Alpha"
        assert not cache.has(CacheKeys.TEAM_CATALOG)
        assert not cache.has(CacheKeys.customer_view("c1", "available-teams"))
        assert [team.id for team in asyncio.run(catalog.list_teams())] == ["t1"]

    def test_sync_without_source(self, cache, invalidator):
        catalog = TeamCatalog(InMemoryKVStore(), cache, invalidator)

        with pytest.raises(RuntimeError):
            asyncio.run(catalog.sync_from_upstream())
