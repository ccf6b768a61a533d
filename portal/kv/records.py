"""
Typed records stored in the backing key-value store.

Older writers stored some records as JSON-encoded strings rather than
objects. Decoding accepts both once, here, so nothing downstream re-parses.
"""

import json
import time
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from portal.errors import MalformedDataError
from portal.logging import get_logger

logger = get_logger("kv.records")

RecordT = TypeVar("RecordT", bound=BaseModel)


class Record(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class OwnershipRecord(Record):
    """team -> owning customer. At most one per team."""

    team_id: str
    owner_id: str


class OwnershipSnapshot(Record):
    """Serialized ownership index: ``{data: [[teamId, customerId], ...], timestamp}``."""

    data: list[tuple[str, str]] = Field(default_factory=list)
    timestamp: float = Field(default_factory=time.time)

    @classmethod
    def from_mapping(cls, mapping: dict[str, str], timestamp: float | None = None) -> "OwnershipSnapshot":
        return cls(
            data=sorted(mapping.items()),
            timestamp=time.time() if timestamp is None else timestamp,
        )

    def to_mapping(self) -> dict[str, str]:
        return dict(self.data)


class Customer(Record):
    id: str
    name: str = ""
    status: str = "active"
    description: str | None = None


class TeamRecord(Record):
    """Issue-tracker team as mirrored into the store under ``linear_teams:{id}``."""

    id: str
    name: str = ""
    key: str = ""
    description: str | None = None


def _unwrap(raw: Any) -> Any:
    if isinstance(raw, (str, bytes)):
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise MalformedDataError("Stored record is not valid JSON") from e
    return raw


def decode_record(model: type[RecordT], raw: Any, key: str = "") -> RecordT | None:
    """
    Decode a stored value into ``model``.

    Args:
        model: Record class to validate against
        raw: Value returned by the store (object, JSON string or None)
        key: Store key, for log context only

    Returns:
        Validated record, or None when nothing is stored

    Raises:
        MalformedDataError: If the value has the wrong shape
    """
    if raw is None:
        return None
    value = _unwrap(raw)
    if not isinstance(value, dict):
        logger.warning("kv_record_malformed", key=key, model=model.__name__, type=type(value).__name__)
        raise MalformedDataError(f"Stored {model.__name__} has an unexpected shape")
    try:
        return model.model_validate(value)
    except ValidationError as e:
        logger.warning("kv_record_malformed", key=key, model=model.__name__, errors=e.error_count())
        raise MalformedDataError(f"Stored {model.__name__} has an unexpected shape") from e


def decode_owner_id(raw: Any, key: str = "") -> str | None:
    """
    Decode an ownership value: the owning customer id.

    Accepts a bare id, a doubly encoded id (``'"cust-1"'``) or an object
    carrying ``customerId``/``owner_id``.
    """
    if raw is None:
        return None
    value = raw
    if isinstance(value, str) and value.startswith(("\"", "{")):
        value = _unwrap(value)
    if isinstance(value, dict):
        value = value.get("owner_id") or value.get("customerId") or value.get("customer_id")
    if isinstance(value, str) and value:
        return value
    logger.warning("kv_owner_malformed", key=key, type=type(raw).__name__)
    raise MalformedDataError("Stored ownership record has an unexpected shape")


def decode_id_list(raw: Any, key: str = "") -> list[str]:
    """Decode a stored list of ids (e.g. a customer's team list). Missing is empty."""
    if raw is None:
        return []
    value = _unwrap(raw)
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        logger.warning("kv_id_list_malformed", key=key, type=type(value).__name__)
        raise MalformedDataError("Stored id list has an unexpected shape")
    return value


__all__ = [
    "OwnershipRecord",
    "OwnershipSnapshot",
    "Customer",
    "TeamRecord",
    "decode_record",
    "decode_owner_id",
    "decode_id_list",
]
