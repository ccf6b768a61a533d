from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from backend.app.main import create_app
from portal.cache import KVKeys
from portal.kv import InMemoryKVStore


@pytest.fixture
def store() -> InMemoryKVStore:
    return InMemoryKVStore(
        {
            KVKeys.customer("cust-a"): {"id": "cust-a", "name": "Acme"},
            KVKeys.customer("cust-b"): {"id": "cust-b", "name": "Globex"},
            KVKeys.linear_team("t1"): {"id": "t1", "name": "Alpha", "key": "ALP"},
            KVKeys.linear_team("t2"): {"id": "t2", "name": "Bravo", "key": "BRV"},
            KVKeys.team_owner("t2"): "cust-b",
        }
    )


@pytest.fixture
def api_client(container, settings) -> Iterator[TestClient]:
    app = create_app(container=container, settings=settings, enable_scheduler=False)

    with TestClient(app) as client:
        yield client
