"""
Pydantic models for Linear API payloads.

GraphQL connections arrive as ``{"nodes": [...]}``; validators flatten them so
the rest of the engine works with plain lists.
"""

from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from portal.errors import MalformedDataError
from portal.logging import get_logger

logger = get_logger("linear.models")

ModelT = TypeVar("ModelT", bound=BaseModel)


def _nodes(value: Any) -> Any:
    if isinstance(value, dict) and "nodes" in value:
        return value["nodes"] or []
    return value


class WorkflowState(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str = ""
    type: str = ""
    color: str | None = None
    position: float = 0.0


class ParentRef(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    identifier: str | None = None
    title: str | None = None


class Issue(BaseModel):
    """
    An issue as fetched for a board column or detail view.

    ``direct_children`` is the upstream children list, which may include
    issues outside the current state bucket.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    identifier: str = ""
    title: str = ""
    priority: int | None = None
    url: str | None = None
    state: WorkflowState | None = None
    parent: ParentRef | None = None
    direct_children: list["Issue"] = Field(default_factory=list, alias="children")

    @model_validator(mode="before")
    @classmethod
    def _flatten_connections(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for field in ("children", "labels", "comments", "attachments"):
            if field in data:
                data[field] = _nodes(data[field])
        if "direct_children" in data and "children" not in data:
            data["children"] = data.pop("direct_children")
        if data.get("children") is None:
            data["children"] = []
        return data

    @property
    def parent_id(self) -> str | None:
        return self.parent.id if self.parent else None

    @property
    def state_name(self) -> str:
        return self.state.name if self.state and self.state.name else "unknown"

    def to_dict(self) -> dict[str, Any]:
        """Serializable card view; children are summarized, not inlined."""
        data = self.model_dump(mode="json", exclude={"direct_children"})
        data["children_count"] = len(self.direct_children)
        return data


class Team(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str = ""
    key: str = ""
    description: str | None = None


class TeamConfig(BaseModel):
    """A team with its workflow states, ordered by board position."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str = ""
    key: str = ""
    states: list[WorkflowState] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _flatten_states(cls, data: Any) -> Any:
        if isinstance(data, dict) and "states" in data:
            data = dict(data)
            data["states"] = _nodes(data["states"]) or []
        return data

    def ordered_states(self) -> list[WorkflowState]:
        return sorted(self.states, key=lambda state: state.position)

    def summary(self) -> dict[str, str]:
        return {"id": self.id, "name": self.name, "key": self.key}


Issue.model_rebuild()


def parse_payload(model: type[ModelT], payload: Any) -> ModelT:
    """
    Validate one upstream payload node.

    Raises:
        MalformedDataError: If the node does not fit ``model``
    """
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        logger.warning("linear_payload_malformed", model=model.__name__, errors=e.error_count())
        raise MalformedDataError(f"Issue tracker returned a malformed {model.__name__}") from e
