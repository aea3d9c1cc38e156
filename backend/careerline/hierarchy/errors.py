"""Domain errors raised by the hierarchy engine and the insight store.

Routers translate these to HTTP status codes; services never catch them.
"""

from typing import Any


class HierarchyError(Exception):
    """Base class for every domain error."""

    status_code: int = 500


class ValidationError(HierarchyError):
    """Malformed or incomplete payload (node meta, insight content)."""

    status_code = 400

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None) -> None:
        self.errors = errors or []
        super().__init__(message)


class NotFoundError(HierarchyError):
    status_code = 404

    def __init__(self, kind: str, item_id: str) -> None:
        self.kind = kind
        self.item_id = item_id
        super().__init__(f"{kind.capitalize()} not found: {item_id}")


class ForbiddenError(HierarchyError):
    status_code = 403

    def __init__(self, kind: str, item_id: str) -> None:
        self.kind = kind
        self.item_id = item_id
        super().__init__(f"Not allowed to modify {kind} {item_id}")


class HierarchyViolation(HierarchyError):
    """The target parent's type does not accept this child."""

    status_code = 422

    def __init__(self, parent_type: str, child_type: str | None = None) -> None:
        self.parent_type = parent_type
        self.child_type = child_type
        if child_type is None:
            message = f"Node type '{parent_type}' cannot have children"
        else:
            message = f"Node type '{child_type}' cannot be child of '{parent_type}'"
        super().__init__(message)


class CycleError(HierarchyError):
    status_code = 422

    def __init__(self, node_id: str, proposed_parent_id: str) -> None:
        self.node_id = node_id
        self.proposed_parent_id = proposed_parent_id
        if node_id == proposed_parent_id:
            message = f"Node {node_id} cannot be its own parent"
        else:
            message = (
                f"Moving node {node_id} under {proposed_parent_id} would create a cycle"
            )
        super().__init__(message)


class ConflictError(HierarchyError):
    """A concurrent structural change invalidated the operation."""

    status_code = 409
