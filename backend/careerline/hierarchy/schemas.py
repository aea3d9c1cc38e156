"""Request and response schemas for timeline node endpoints."""

from typing import Any

from pydantic import BaseModel, Field

from careerline.models import NodeType

# -- Requests --


class CreateNodeRequest(BaseModel):
    type: NodeType
    parent_id: str | None = None
    meta: dict[str, Any] = Field(default_factory=dict)


class PatchNodeRequest(BaseModel):
    """Meta keys to overwrite. Keys absent from the body are kept as stored."""

    meta: dict[str, Any] = Field(default_factory=dict)


class MoveNodeRequest(BaseModel):
    new_parent_id: str | None = None


# -- Responses --


class NodeResponse(BaseModel):
    id: str
    type: str
    owner_id: str
    parent_id: str | None = None
    meta: dict[str, Any] = Field(default_factory=dict)
    created_at: str
    updated_at: str


class TreeNodeResponse(NodeResponse):
    children: list["TreeNodeResponse"] = Field(default_factory=list)


class HierarchyStatsResponse(BaseModel):
    total_nodes: int
    nodes_by_type: dict[str, int]
    root_nodes: int
    max_depth: int
