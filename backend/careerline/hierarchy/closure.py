"""Closure table maintenance.

The timeline_nodes.parent_id column is the structural source of truth;
timeline_node_closure is a derived index holding one row per
(ancestor, descendant) pair with the number of parent links between them,
including a depth-0 self row for every node. Every method that writes here
must run inside the Database.transaction() of the structural change it
derives from.
"""

import logging

from careerline.db.connection import Database
from careerline.models import ClosureEntry, ClosureReport

logger = logging.getLogger(__name__)


def compute_closure(parents: dict[str, str | None]) -> set[tuple[str, str, int]]:
    """Expected closure rows for a node_id -> parent_id mapping.

    Walks each parent chain; chains leaving the mapping stop there, and a
    revisited node ends the walk so corrupt pointer loops cannot hang it.
    """
    rows: set[tuple[str, str, int]] = set()
    for node_id in parents:
        rows.add((node_id, node_id, 0))
        seen = {node_id}
        depth = 1
        current = parents[node_id]
        while current is not None and current in parents and current not in seen:
            rows.add((current, node_id, depth))
            seen.add(current)
            current = parents[current]
            depth += 1
    return rows


class ClosureMaintainer:
    """Keeps timeline_node_closure consistent with the parent pointers."""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def insert_closures_for_new_node(
        self, node_id: str, parent_id: str | None = None,
    ) -> None:
        """Insert the self row plus one row per ancestor inherited from the parent."""
        await self._db.execute(
            "INSERT INTO timeline_node_closure (ancestor_id, descendant_id, depth) "
            "VALUES (?, ?, 0)",
            (node_id, node_id),
        )
        if parent_id is None:
            return
        # The parent's rows as descendant are its whole chain, itself at depth 0
        await self._db.execute(
            """
            INSERT INTO timeline_node_closure (ancestor_id, descendant_id, depth)
            SELECT ancestor_id, ?, depth + 1
            FROM timeline_node_closure
            WHERE descendant_id = ?
            """,
            (node_id, parent_id),
        )

    async def remove_closures_for_subtree(self, node_ids: list[str]) -> int:
        """Delete every row touching any of node_ids. Returns the row count."""
        if not node_ids:
            return 0
        placeholders = ", ".join("?" for _ in node_ids)
        cursor = await self._db.execute(
            f"""
            DELETE FROM timeline_node_closure
            WHERE ancestor_id IN ({placeholders}) OR descendant_id IN ({placeholders})
            """,
            (*node_ids, *node_ids),
        )
        return cursor.rowcount

    async def rewrite_subtree_on_move(
        self, root_id: str, new_parent_id: str | None,
    ) -> None:
        """Re-link the subtree under root_id to the ancestors of new_parent_id.

        Rows internal to the subtree keep their depths. Each subtree member S
        at depth ds below the root gets (P, S, dp + ds + 1) for every ancestor
        P of the new parent at depth dp (the new parent itself at dp = 0).
        """
        # Drop links from outside the subtree into it (the old ancestors)
        await self._db.execute(
            """
            DELETE FROM timeline_node_closure
            WHERE descendant_id IN (
                SELECT descendant_id FROM timeline_node_closure WHERE ancestor_id = ?
            )
            AND ancestor_id NOT IN (
                SELECT descendant_id FROM timeline_node_closure WHERE ancestor_id = ?
            )
            """,
            (root_id, root_id),
        )
        if new_parent_id is None:
            return
        await self._db.execute(
            """
            INSERT INTO timeline_node_closure (ancestor_id, descendant_id, depth)
            SELECT p.ancestor_id, s.descendant_id, p.depth + s.depth + 1
            FROM timeline_node_closure AS p
            CROSS JOIN timeline_node_closure AS s
            WHERE p.descendant_id = ? AND s.ancestor_id = ?
            """,
            (new_parent_id, root_id),
        )

    async def get_entries(self, owner_id: str) -> list[ClosureEntry]:
        """All closure rows whose descendant belongs to owner_id."""
        rows = await self._db.fetchall(
            """
            SELECT c.ancestor_id, c.descendant_id, c.depth
            FROM timeline_node_closure AS c
            JOIN timeline_nodes AS n ON n.node_id = c.descendant_id
            WHERE n.owner_id = ?
            ORDER BY c.depth, c.ancestor_id, c.descendant_id
            """,
            (owner_id,),
        )
        return [
            ClosureEntry(
                ancestor_id=r["ancestor_id"],
                descendant_id=r["descendant_id"],
                depth=r["depth"],
            )
            for r in rows
        ]

    async def _owner_parents(self, owner_id: str) -> dict[str, str | None]:
        rows = await self._db.fetchall(
            "SELECT node_id, parent_id FROM timeline_nodes WHERE owner_id = ?",
            (owner_id,),
        )
        return {r["node_id"]: r["parent_id"] for r in rows}

    async def find_inconsistencies(self, owner_id: str) -> ClosureReport:
        """Compare stored rows against the closure implied by parent pointers."""
        expected = compute_closure(await self._owner_parents(owner_id))
        stored = {
            (e.ancestor_id, e.descendant_id, e.depth)
            for e in await self.get_entries(owner_id)
        }

        def entries(rows: set[tuple[str, str, int]]) -> list[ClosureEntry]:
            return [
                ClosureEntry(ancestor_id=a, descendant_id=d, depth=depth)
                for a, d, depth in sorted(rows, key=lambda r: (r[2], r[0], r[1]))
            ]

        report = ClosureReport(
            owner_id=owner_id,
            missing=entries(expected - stored),
            unexpected=entries(stored - expected),
        )
        if not report.consistent:
            logger.warning(
                "Closure inconsistent for owner %s: %d missing, %d unexpected",
                owner_id, len(report.missing), len(report.unexpected),
            )
        return report

    async def rebuild_for_owner(self, owner_id: str) -> int:
        """Replace the owner's closure rows with those derived from parent pointers.

        Returns the number of rows written.
        """
        async with self._db.transaction():
            parents = await self._owner_parents(owner_id)
            expected = compute_closure(parents)
            await self.remove_closures_for_subtree(list(parents))
            await self._db.executemany(
                "INSERT INTO timeline_node_closure (ancestor_id, descendant_id, depth) "
                "VALUES (?, ?, ?)",
                sorted(expected),
            )
        logger.info("Rebuilt closure for owner %s: %d rows", owner_id, len(expected))
        return len(expected)
