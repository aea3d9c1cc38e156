"""Read-side tree queries answered from the closure index."""

from collections import defaultdict

from careerline.db.connection import Database
from careerline.hierarchy.errors import NotFoundError
from careerline.models import HierarchyStats, TimelineNode, TreeNode

_NODE_COLUMNS = "n.node_id, n.type, n.owner_id, n.parent_id, n.meta, n.created_at, n.updated_at"


class TreeQueryService:
    """Children / ancestors / descendants / roots / forest queries.

    Point queries join the closure table to timeline_nodes, so none of them
    walk the parent chain. They never write.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    async def get_node(self, node_id: str) -> TimelineNode:
        row = await self._db.fetchone(
            "SELECT * FROM timeline_nodes WHERE node_id = ?", (node_id,),
        )
        if row is None:
            raise NotFoundError("node", node_id)
        return TimelineNode.from_row(row)

    async def _require_node(self, node_id: str) -> None:
        row = await self._db.fetchone(
            "SELECT 1 FROM timeline_nodes WHERE node_id = ?", (node_id,),
        )
        if row is None:
            raise NotFoundError("node", node_id)

    async def get_children(self, node_id: str) -> list[TimelineNode]:
        """Direct children, oldest first."""
        await self._require_node(node_id)
        rows = await self._db.fetchall(
            f"""
            SELECT {_NODE_COLUMNS}
            FROM timeline_node_closure AS c
            JOIN timeline_nodes AS n ON n.node_id = c.descendant_id
            WHERE c.ancestor_id = ? AND c.depth = 1
            ORDER BY n.created_at, n.rowid
            """,
            (node_id,),
        )
        return [TimelineNode.from_row(r) for r in rows]

    async def get_descendants(self, node_id: str) -> list[TimelineNode]:
        """All strict descendants, shallowest first."""
        await self._require_node(node_id)
        rows = await self._db.fetchall(
            f"""
            SELECT {_NODE_COLUMNS}
            FROM timeline_node_closure AS c
            JOIN timeline_nodes AS n ON n.node_id = c.descendant_id
            WHERE c.ancestor_id = ? AND c.depth > 0
            ORDER BY c.depth, n.created_at, n.rowid
            """,
            (node_id,),
        )
        return [TimelineNode.from_row(r) for r in rows]

    async def get_descendant_ids(self, node_id: str) -> list[str]:
        """Ids of the subtree rooted at node_id, node_id itself first."""
        rows = await self._db.fetchall(
            """
            SELECT descendant_id FROM timeline_node_closure
            WHERE ancestor_id = ?
            ORDER BY depth
            """,
            (node_id,),
        )
        return [r["descendant_id"] for r in rows]

    async def get_ancestors(self, node_id: str) -> list[TimelineNode]:
        """Strict ancestors, nearest parent first."""
        await self._require_node(node_id)
        rows = await self._db.fetchall(
            f"""
            SELECT {_NODE_COLUMNS}
            FROM timeline_node_closure AS c
            JOIN timeline_nodes AS n ON n.node_id = c.ancestor_id
            WHERE c.descendant_id = ? AND c.depth > 0
            ORDER BY c.depth
            """,
            (node_id,),
        )
        return [TimelineNode.from_row(r) for r in rows]

    async def get_subtree(
        self, node_id: str, max_depth: int | None = None,
    ) -> list[TimelineNode]:
        """The node followed by its descendants down to max_depth levels."""
        await self._require_node(node_id)
        sql = f"""
            SELECT {_NODE_COLUMNS}
            FROM timeline_node_closure AS c
            JOIN timeline_nodes AS n ON n.node_id = c.descendant_id
            WHERE c.ancestor_id = ?
        """
        params: list[str | int] = [node_id]
        if max_depth is not None:
            sql += " AND c.depth <= ?"
            params.append(max_depth)
        sql += " ORDER BY c.depth, n.created_at, n.rowid"
        rows = await self._db.fetchall(sql, tuple(params))
        return [TimelineNode.from_row(r) for r in rows]

    async def get_roots(self, owner_id: str) -> list[TimelineNode]:
        rows = await self._db.fetchall(
            """
            SELECT * FROM timeline_nodes
            WHERE owner_id = ? AND parent_id IS NULL
            ORDER BY created_at, rowid
            """,
            (owner_id,),
        )
        return [TimelineNode.from_row(r) for r in rows]

    async def get_nodes(
        self, owner_id: str, node_type: str | None = None,
    ) -> list[TimelineNode]:
        """Flat list of an owner's nodes in creation order, optionally by type."""
        if node_type is None:
            rows = await self._db.fetchall(
                "SELECT * FROM timeline_nodes WHERE owner_id = ? ORDER BY created_at, rowid",
                (owner_id,),
            )
        else:
            rows = await self._db.fetchall(
                """
                SELECT * FROM timeline_nodes
                WHERE owner_id = ? AND type = ?
                ORDER BY created_at, rowid
                """,
                (owner_id, node_type),
            )
        return [TimelineNode.from_row(r) for r in rows]

    async def build_tree(self, owner_id: str) -> list[TreeNode]:
        """The owner's whole forest."""
        return build_forest(await self.get_nodes(owner_id))

    async def get_stats(self, owner_id: str) -> HierarchyStats:
        nodes = await self.get_nodes(owner_id)
        by_type: dict[str, int] = defaultdict(int)
        for node in nodes:
            by_type[node.type] += 1

        row = await self._db.fetchone(
            """
            SELECT COALESCE(MAX(c.depth), 0) AS max_depth
            FROM timeline_node_closure AS c
            JOIN timeline_nodes AS n ON n.node_id = c.descendant_id
            WHERE n.owner_id = ?
            """,
            (owner_id,),
        )
        return HierarchyStats(
            total_nodes=len(nodes),
            nodes_by_type=dict(by_type),
            root_nodes=sum(1 for n in nodes if n.parent_id is None),
            max_depth=row["max_depth"] if row is not None else 0,
        )


def build_forest(nodes: list[TimelineNode]) -> list[TreeNode]:
    """Assemble a forest from a flat node list in one pass.

    Input order is kept among siblings. A node whose parent is not in the
    list (e.g. filtered out) is returned as a root.
    """
    wrapped = {n.id: TreeNode(node=n) for n in nodes}
    roots: list[TreeNode] = []
    for n in nodes:
        parent = wrapped.get(n.parent_id) if n.parent_id else None
        if parent is None:
            roots.append(wrapped[n.id])
        else:
            parent.children.append(wrapped[n.id])
    return roots
