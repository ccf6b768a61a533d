"""Abstract backing key-value store."""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any


class KVStore(ABC):
    """
    Async key-value store holding the system of record.

    Values are JSON-compatible objects. Implementations serialize at their
    own boundary; callers never see encoded strings. The store has no TTL
    support; expiry is handled by the in-process cache.
    """

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Return the stored value or None."""

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """Store a value, replacing any existing one."""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove a key. Returns False if it was not present."""

    @abstractmethod
    async def get_by_prefix(self, prefix: str) -> list[str]:
        """List every key starting with ``prefix``."""

    @abstractmethod
    async def mget(self, keys: Sequence[str]) -> list[Any | None]:
        """Fetch several keys at once; missing keys yield None in place."""

    @abstractmethod
    async def set_if_absent(self, key: str, value: Any) -> bool:
        """
        Store ``value`` only if ``key`` does not exist.

        Returns True if this call created the key.
        """

    async def close(self) -> None:
        """Release connections. No-op by default."""
        return None

    async def ping(self) -> bool:
        return True
