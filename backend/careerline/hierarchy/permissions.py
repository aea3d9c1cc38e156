"""Viewer-side filtering of node lists through an external access policy."""

import inspect
from collections.abc import Awaitable, Callable

from careerline.models import TimelineNode

# can_view(viewer_id, owner_id, node_id); sync or async
CanView = Callable[[str, str, str], bool | Awaitable[bool]]


def owner_only(viewer_id: str, owner_id: str, node_id: str) -> bool:
    """Default policy: users see only their own nodes."""
    return viewer_id == owner_id


class PermissionFilter:
    """Reduces node lists to what a viewer may see.

    Links are never touched: a visible node whose parent is hidden keeps its
    parent_id, and callers rebuild whatever structure they need from the
    filtered list.
    """

    def __init__(self, can_view: CanView = owner_only) -> None:
        self._can_view = can_view

    async def can_view(self, viewer_id: str, node: TimelineNode) -> bool:
        result = self._can_view(viewer_id, node.owner_id, node.id)
        if inspect.isawaitable(result):
            result = await result
        return bool(result)

    async def filter_visible(
        self, nodes: list[TimelineNode], viewer_id: str,
    ) -> list[TimelineNode]:
        return [n for n in nodes if await self.can_view(viewer_id, n)]
