"""
Process-local key-value store.

Used by tests and local development. Values are round-tripped through JSON on
write so callers cannot mutate stored state through a shared reference, the
same behaviour a networked store gives.
"""

import asyncio
import json
from collections.abc import Sequence
from typing import Any

from .base import KVStore


class InMemoryKVStore(KVStore):
    def __init__(self, initial: dict[str, Any] | None = None):
        self._data: dict[str, str] = {}
        self._lock = asyncio.Lock()
        for key, value in (initial or {}).items():
            self._data[key] = json.dumps(value)

    async def get(self, key: str) -> Any | None:
        async with self._lock:
            raw = self._data.get(key)
        return None if raw is None else json.loads(raw)

    async def set(self, key: str, value: Any) -> None:
        encoded = json.dumps(value)
        async with self._lock:
            self._data[key] = encoded

    async def delete(self, key: str) -> bool:
        async with self._lock:
            return self._data.pop(key, None) is not None

    async def get_by_prefix(self, prefix: str) -> list[str]:
        async with self._lock:
            return sorted(key for key in self._data if key.startswith(prefix))

    async def mget(self, keys: Sequence[str]) -> list[Any | None]:
        async with self._lock:
            raws = [self._data.get(key) for key in keys]
        return [None if raw is None else json.loads(raw) for raw in raws]

    async def set_if_absent(self, key: str, value: Any) -> bool:
        encoded = json.dumps(value)
        async with self._lock:
            if key in self._data:
                return False
            self._data[key] = encoded
            return True

    def dump(self) -> dict[str, Any]:
        """Decoded snapshot of the whole store."""
        return {key: json.loads(raw) for key, raw in self._data.items()}
