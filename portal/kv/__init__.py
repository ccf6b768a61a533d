"""Backing key-value store boundary."""

from portal.kv.base import KVStore
from portal.kv.memory import InMemoryKVStore
from portal.kv.redis_store import RedisKVStore
from portal.kv.records import (
    Customer,
    OwnershipRecord,
    OwnershipSnapshot,
    TeamRecord,
    decode_id_list,
    decode_owner_id,
    decode_record,
)

__all__ = [
    "KVStore",
    "InMemoryKVStore",
    "RedisKVStore",
    "Customer",
    "OwnershipRecord",
    "OwnershipSnapshot",
    "TeamRecord",
    "decode_record",
    "decode_owner_id",
    "decode_id_list",
]
