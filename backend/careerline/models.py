"""Canonical data structures for Careerline.

Defined once here, referenced everywhere else. Rows read from SQLite are
converted into these models at the service boundary.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field

from careerline.utils.json import parse_json_field, parse_json_list

NodeType = Literal["job", "education", "project", "event", "action", "careerTransition"]

NODE_TYPES: tuple[str, ...] = (
    "job",
    "education",
    "project",
    "event",
    "action",
    "careerTransition",
)


class TimelineNode(BaseModel):
    id: str
    type: NodeType
    owner_id: str
    parent_id: str | None = None
    meta: dict[str, Any] = Field(default_factory=dict)
    created_at: str
    updated_at: str

    @classmethod
    def from_row(cls, row) -> "TimelineNode":
        return cls(
            id=row["node_id"],
            type=row["type"],
            owner_id=row["owner_id"],
            parent_id=row["parent_id"],
            meta=parse_json_field(row["meta"]) or {},
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )


class ClosureEntry(BaseModel):
    ancestor_id: str
    descendant_id: str
    depth: int = Field(ge=0)


class Insight(BaseModel):
    id: str
    node_id: str
    author_id: str
    content: str
    resources: list[str] = Field(default_factory=list)
    created_at: str
    updated_at: str

    @classmethod
    def from_row(cls, row) -> "Insight":
        return cls(
            id=row["insight_id"],
            node_id=row["node_id"],
            author_id=row["author_id"],
            content=row["content"],
            resources=parse_json_list(row["resources"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )


class TreeNode(BaseModel):
    """A node with its children attached, as returned by build_tree."""

    node: TimelineNode
    children: list["TreeNode"] = Field(default_factory=list)


class HierarchyStats(BaseModel):
    total_nodes: int
    nodes_by_type: dict[str, int]
    root_nodes: int
    max_depth: int


class ClosureReport(BaseModel):
    """Differences between stored closure rows and those implied by parent pointers."""

    owner_id: str
    missing: list[ClosureEntry] = Field(default_factory=list)
    unexpected: list[ClosureEntry] = Field(default_factory=list)

    @property
    def consistent(self) -> bool:
        return not self.missing and not self.unexpected
