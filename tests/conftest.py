"""
Pytest fixtures for the client portal engine.

Collaborators are faked in memory: no Redis, no network.
"""

import pytest

from portal.cache import CacheInvalidator, TTLCache
from portal.config import Settings
from portal.container import PortalContainer
from portal.kv import InMemoryKVStore

from fakes import FakeClock, FakeIssueSource, FakeLinearClient


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return TTLCache(default_ttl=300, max_entries=100, clock=clock)


@pytest.fixture
def invalidator(cache):
    return CacheInvalidator(cache)


@pytest.fixture
def store():
    return InMemoryKVStore()


@pytest.fixture
def issue_source():
    return FakeIssueSource()


@pytest.fixture
def linear_client():
    return FakeLinearClient()


@pytest.fixture
def settings():
    return Settings(
        LINEAR_API_KEY="lin_api_test",
        ENABLE_CACHE_CLEANUP=False,
        ISSUES_BY_STATE_PARTIAL=False,
    )


@pytest.fixture
def container(settings, store, linear_client, cache, issue_source):
    """Fully wired engine over in-memory fakes."""
    return PortalContainer(settings, store, linear_client, cache=cache, source=issue_source)
