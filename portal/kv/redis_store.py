"""
Redis-backed key-value store.

Provides:
- Connection pooling through redis.asyncio
- JSON serialization at the store boundary
- Key namespacing so several deployments can share one Redis database
- SCAN-based prefix listing and SET NX for compare-and-set
"""

import json
from collections.abc import Sequence
from typing import Any

import redis.asyncio as redis
from redis.exceptions import ConnectionError, RedisError, TimeoutError

from portal.errors import MalformedDataError, PortalError
from portal.logging import get_logger

from .base import KVStore

logger = get_logger("kv.redis")


class RedisKVStore(KVStore):
    """
    Backing store on Redis.

    Usage:
        store = RedisKVStore.from_url(settings.redis_url, namespace="portal")
        await store.set("team:abc:customer", "cust-1")
        owner = await store.get("team:abc:customer")
    """

    def __init__(self, client: "redis.Redis", namespace: str = ""):
        self.client = client
        self.namespace = namespace

    @classmethod
    def from_url(cls, url: str, namespace: str = "", max_connections: int = 50) -> "RedisKVStore":
        client = redis.from_url(
            url,
            max_connections=max_connections,
            socket_timeout=5,
            socket_connect_timeout=5,
            decode_responses=True,
        )
        return cls(client, namespace=namespace)

    # =========================================================================
    # Key Namespacing
    # =========================================================================

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}" if self.namespace else key

    def _strip(self, key: str) -> str:
        if self.namespace and key.startswith(self.namespace + ":"):
            return key[len(self.namespace) + 1:]
        return key

    @staticmethod
    def _decode(key: str, raw: str | None) -> Any | None:
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("kv_decode_error", key=key, error=str(e))
            raise MalformedDataError("Stored record could not be decoded") from e

    # =========================================================================
    # KVStore
    # =========================================================================

    async def get(self, key: str) -> Any | None:
        try:
            raw = await self.client.get(self._key(key))
        except (ConnectionError, TimeoutError) as e:
            logger.error("kv_get_error", key=key, error=str(e))
            raise PortalError("Backing store unavailable") from e
        return self._decode(key, raw)

    async def set(self, key: str, value: Any) -> None:
        try:
            await self.client.set(self._key(key), json.dumps(value))
        except (ConnectionError, TimeoutError) as e:
            logger.error("kv_set_error", key=key, error=str(e))
            raise PortalError("Backing store unavailable") from e

    async def delete(self, key: str) -> bool:
        try:
            return bool(await self.client.delete(self._key(key)))
        except (ConnectionError, TimeoutError) as e:
            logger.error("kv_delete_error", key=key, error=str(e))
            raise PortalError("Backing store unavailable") from e

    async def get_by_prefix(self, prefix: str) -> list[str]:
        keys = []
        try:
            async for key in self.client.scan_iter(match=self._key(prefix) + "*", count=500):
                keys.append(self._strip(key))
        except (ConnectionError, TimeoutError) as e:
            logger.error("kv_scan_error", prefix=prefix, error=str(e))
            raise PortalError("Backing store unavailable") from e
        return sorted(keys)

    async def mget(self, keys: Sequence[str]) -> list[Any | None]:
        if not keys:
            return []
        try:
            raws = await self.client.mget([self._key(key) for key in keys])
        except (ConnectionError, TimeoutError) as e:
            logger.error("kv_mget_error", count=len(keys), error=str(e))
            raise PortalError("Backing store unavailable") from e
        return [self._decode(key, raw) for key, raw in zip(keys, raws)]

    async def set_if_absent(self, key: str, value: Any) -> bool:
        try:
            created = await self.client.set(self._key(key), json.dumps(value), nx=True)
        except (ConnectionError, TimeoutError) as e:
            logger.error("kv_set_nx_error", key=key, error=str(e))
            raise PortalError("Backing store unavailable") from e
        return bool(created)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def ping(self) -> bool:
        try:
            return bool(await self.client.ping())
        except RedisError as e:
            logger.warning("redis_connection_failed", error=str(e))
            return False

    async def close(self) -> None:
        await self.client.aclose()
