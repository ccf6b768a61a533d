"""
Tests for the Linear GraphQL client and the issue source built on it.

The aiohttp session is replaced with a scripted fake; nothing touches the
network.
"""

import asyncio

import aiohttp
import pytest

from fakes import FakeLinearClient
from portal.cache import CacheKeys
from portal.errors import MalformedDataError, NotFoundError, UpstreamError, UpstreamTimeoutError
from portal.linear import LinearClient, LinearIssueSource
from portal.linear.queries import GET_TEAMS_QUERY


class FakeResponse:
    def __init__(self, status=200, payload=None, text=""):
        self.status = status
        self._payload = payload if payload is not None else {}
        self._text = text

    async def json(self):
        return self._payload

    async def text(self):
        return self._text


class FakeRequest:
    def __init__(self, outcome):
        self.outcome = outcome

    async def __aenter__(self):
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return self.outcome

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return False


class FakeSession:
    """Stands in for aiohttp.ClientSession; replays one outcome per post()."""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.posts = []
        self.closed = False

    def post(self, url, json=None):
        self.posts.append(json)
        return FakeRequest(self.outcomes.pop(0))

    async def close(self):
        self.closed = True


def _ok(data):
    return FakeResponse(payload={"data": data})


def _client(outcomes, max_retries=3):
    session = FakeSession(outcomes)
    return LinearClient("lin_api_test", max_retries=max_retries, retry_backoff=0, session=session), session


class TestExecute:
    def test_returns_data(self):
        client, session = _client([_ok({"team": {"id": "t1"}})])

        data = asyncio.run(client.execute("query", {"teamId": "t1"}))

        assert data == {"team": {"id": "t1"}}
        assert session.posts == [{"query": "query", "variables": {"teamId": "t1"}}]

    def test_retries_retriable_status(self):
        client, session = _client([FakeResponse(status=503), FakeResponse(status=429), _ok({"ok": True})])

        assert asyncio.run(client.execute("query", {})) == {"ok": True}
        assert len(session.posts) == 3

    def test_gives_up_after_max_retries(self):
        client, session = _client([FakeResponse(status=500)] * 3)

        with pytest.raises(UpstreamError) as exc_info:
            asyncio.run(client.execute("query", {}))

        assert exc_info.value.status == 500
        assert len(session.posts) == 3

    def test_client_error_status_is_not_retried(self):
        client, session = _client([FakeResponse(status=400, text="bad query")])

        with pytest.raises(UpstreamError) as exc_info:
            asyncio.run(client.execute("query", {}))

        assert exc_info.value.retriable is False
        assert len(session.posts) == 1

    def test_timeout_retried_then_raised(self):
        client, session = _client([asyncio.TimeoutError(), asyncio.TimeoutError()], max_retries=2)

        with pytest.raises(UpstreamTimeoutError):
            asyncio.run(client.execute("query", {}))

        assert len(session.posts) == 2

    def test_connection_error_is_retried(self):
        client, _ = _client([aiohttp.ClientConnectionError("reset"), _ok({"ok": True})])

        assert asyncio.run(client.execute("query", {})) == {"ok": True}

    def test_graphql_not_found(self):
        client, session = _client([FakeResponse(payload={"errors": [{"message": "Entity not found"}]})])

        with pytest.raises(NotFoundError):
            asyncio.run(client.execute("query", {}))

        assert len(session.posts) == 1

    def test_graphql_error_is_not_retried(self):
        client, session = _client([FakeResponse(payload={"errors": [{"message": "Argument invalid"}]})])

        with pytest.raises(UpstreamError):
            asyncio.run(client.execute("query", {}))

        assert len(session.posts) == 1

    def test_mutation_is_attempted_once(self):
        client, session = _client([FakeResponse(status=503), _ok({})])

        with pytest.raises(UpstreamError):
            asyncio.run(client.execute("mutation", {}, mutation=True))

        assert len(session.posts) == 1

    def test_uninitialized_client(self):
        client = LinearClient("lin_api_test")

        with pytest.raises(RuntimeError):
            asyncio.run(client.execute("query", {}))

    def test_injected_session_is_not_closed(self):
        client, session = _client([])

        asyncio.run(client.close())

        assert session.closed is False


class TestPaginate:
    def test_follows_cursor(self):
        pages = [
            _ok({"teams": {"nodes": [{"id": "t1"}], "pageInfo": {"hasNextPage": True, "endCursor": "c1"}}}),
            _ok({"teams": {"nodes": [{"id": "t2"}], "pageInfo": {"hasNextPage": False, "endCursor": None}}}),
        ]
        client, session = _client(pages)

        async def collect():
            return [node["id"] async for node in client.paginate(GET_TEAMS_QUERY, {}, ("teams",), page_size=1)]

        assert asyncio.run(collect()) == ["t1", "t2"]
        assert session.posts[0]["variables"] == {"first": 1, "after": None}
        assert session.posts[1]["variables"] == {"first": 1, "after": "c1"}

    def test_missing_connection_ends_iteration(self):
        client, _ = _client([_ok({"teams": None})])

        async def collect():
            return [node async for node in client.paginate(GET_TEAMS_QUERY, {}, ("teams",))]

        assert asyncio.run(collect()) == []


def _team_payload():
    return {
        "team": {
            "id": "t1",
            "name": "Core",
            "key": "CORE",
            "states": {
                "nodes": [
                    {"id": "s-done", "name": "Done", "type": "completed", "position": 3},
                    {"id": "s-todo", "name": "Todo", "type": "unstarted", "position": 1},
                ]
            },
        }
    }


class TestLinearIssueSource:
    def test_team_config_is_cached(self, cache):
        client = FakeLinearClient([_team_payload()])
        source = LinearIssueSource(client, cache)

        first = asyncio.run(source.get_team_config("t1"))
        second = asyncio.run(source.get_team_config("t1"))

        assert first is second
        assert [state.name for state in first.ordered_states()] == ["Todo", "Done"]
        assert len(client.calls) == 1
        assert cache.has(CacheKeys.team_config("t1"))

    def test_missing_team(self, cache):
        source = LinearIssueSource(FakeLinearClient([{"team": None}]), cache)

        with pytest.raises(NotFoundError):
            asyncio.run(source.get_team_config("nope"))

    def test_malformed_team(self, cache):
        source = LinearIssueSource(FakeLinearClient([{"team": ["not", "an", "object"]}]), cache)

        with pytest.raises(MalformedDataError):
            asyncio.run(source.get_team_config("t1"))

    def test_issues_in_state_flatten_children(self, cache):
        page = {
            "issues": {
                "nodes": [
                    {
                        "id": "A",
                        "identifier": "ENG-1",
                        "title": "Parent",
                        "state": {"id": "s-todo", "name": "Todo"},
                        "parent": None,
                        "children": {"nodes": [{"id": "B", "children": {"nodes": []}}]},
                    }
                ],
                "pageInfo": {"hasNextPage": False, "endCursor": None},
            }
        }
        client = FakeLinearClient([page])
        source = LinearIssueSource(client, cache, page_size=50)

        issues = asyncio.run(source.get_issues_in_state("t1", "s-todo"))

        assert [issue.id for issue in issues] == ["A"]
        assert [child.id for child in issues[0].direct_children] == ["B"]
        assert client.calls[0]["variables"] == {"teamId": "t1", "stateId": "s-todo", "first": 50, "after": None}

    def test_team_issue_ids(self, cache):
        page = {"issues": {"nodes": [{"id": "i1"}, {"id": "i2"}], "pageInfo": {"hasNextPage": False}}}
        source = LinearIssueSource(FakeLinearClient([page]), cache)

        assert asyncio.run(source.get_team_issue_ids("t1")) == ["i1", "i2"]

    def test_issue_node_without_id_is_malformed(self, cache):
        page = {"issues": {"nodes": [{"title": "no id"}], "pageInfo": {"hasNextPage": False}}}
        source = LinearIssueSource(FakeLinearClient([page]), cache)

        with pytest.raises(MalformedDataError):
            asyncio.run(source.get_issues_in_state("t1", "s-todo"))

    def test_team_state_with_bad_position_is_malformed(self, cache):
        payload = _team_payload()
        payload["team"]["states"]["nodes"][0]["position"] = "first"
        source = LinearIssueSource(FakeLinearClient([payload]), cache)

        with pytest.raises(MalformedDataError):
            asyncio.run(source.get_team_config("t1"))

        assert not cache.has(CacheKeys.team_config("t1"))
