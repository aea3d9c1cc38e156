"""Node store: owner-scoped create/update/move/delete of timeline nodes.

Every structural write and its closure maintenance share one transaction.
"""

import json
import logging
import sqlite3
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from careerline.db.connection import Database
from careerline.hierarchy.closure import ClosureMaintainer
from careerline.hierarchy.errors import (
    ConflictError,
    ForbiddenError,
    ValidationError,
)
from careerline.hierarchy.meta import MetaValidator, validate_meta
from careerline.hierarchy.queries import TreeQueryService
from careerline.hierarchy.rules import HierarchyValidator
from careerline.models import NODE_TYPES, TimelineNode

logger = logging.getLogger(__name__)


class NodeService:
    """Coordinates validator, closure maintainer and queries for node mutations."""

    def __init__(
        self,
        db: Database,
        validator: HierarchyValidator | None = None,
        meta_validator: MetaValidator = validate_meta,
    ) -> None:
        self._db = db
        self._validator = validator or HierarchyValidator(db)
        self._meta_validator = meta_validator
        self._closure = ClosureMaintainer(db)
        self._queries = TreeQueryService(db)

    async def _load_owned(self, node_id: str, owner_id: str) -> TimelineNode:
        """Load a node, requiring it to exist and belong to owner_id."""
        node = await self._queries.get_node(node_id)
        if node.owner_id != owner_id:
            raise ForbiddenError("node", node_id)
        return node

    async def get_node(self, node_id: str, owner_id: str) -> TimelineNode:
        return await self._load_owned(node_id, owner_id)

    async def create_node(
        self,
        node_type: str,
        meta: dict[str, Any],
        owner_id: str,
        parent_id: str | None = None,
    ) -> TimelineNode:
        """Create a node, optionally under parent_id, and index it in the closure table."""
        if node_type not in NODE_TYPES:
            raise ValidationError(f"Unknown node type: {node_type}")
        meta = self._meta_validator(node_type, dict(meta))

        logger.debug(
            "Creating %s node for owner %s under parent %s", node_type, owner_id, parent_id,
        )
        node_id = str(uuid4())
        now = datetime.now(UTC).isoformat()

        async with self._db.transaction():
            if parent_id is not None:
                parent = await self._queries.get_node(parent_id)
                if parent.owner_id != owner_id:
                    raise ForbiddenError("node", parent_id)
                self._validator.validate_new_edge(parent.type, node_type)

            try:
                await self._db.execute(
                    """
                    INSERT INTO timeline_nodes
                        (node_id, type, owner_id, parent_id, meta, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (node_id, node_type, owner_id, parent_id, json.dumps(meta), now, now),
                )
            except sqlite3.IntegrityError as e:
                raise ConflictError(f"Parent {parent_id} changed during create") from e
            await self._closure.insert_closures_for_new_node(node_id, parent_id)

        logger.info("Node created: %s (%s) owner=%s", node_id, node_type, owner_id)
        return TimelineNode(
            id=node_id,
            type=node_type,
            owner_id=owner_id,
            parent_id=parent_id,
            meta=meta,
            created_at=now,
            updated_at=now,
        )

    async def update_node(
        self, node_id: str, meta_patch: dict[str, Any], owner_id: str,
    ) -> TimelineNode:
        """Patch meta: supplied keys overwrite, omitted keys are kept.

        The merged result is validated as a whole. Structure is untouched.
        """
        async with self._db.transaction():
            node = await self._load_owned(node_id, owner_id)

            merged = dict(node.meta)
            for key, value in meta_patch.items():
                merged[key] = value
            merged = self._meta_validator(node.type, merged)

            now = datetime.now(UTC).isoformat()
            cursor = await self._db.execute(
                "UPDATE timeline_nodes SET meta = ?, updated_at = ? WHERE node_id = ?",
                (json.dumps(merged), now, node_id),
            )
            if cursor.rowcount == 0:
                raise ConflictError(f"Node {node_id} was removed during update")

        logger.info("Node updated: %s fields=%s", node_id, sorted(meta_patch))
        return node.model_copy(update={"meta": merged, "updated_at": now})

    async def delete_node(self, node_id: str, owner_id: str) -> list[str]:
        """Delete the node, all descendants, their insights and closure rows.

        Returns the deleted ids, node_id first.
        """
        logger.debug("Deleting node %s for owner %s", node_id, owner_id)
        async with self._db.transaction():
            await self._load_owned(node_id, owner_id)
            subtree_ids = await self._queries.get_descendant_ids(node_id)
            placeholders = ", ".join("?" for _ in subtree_ids)

            await self._closure.remove_closures_for_subtree(subtree_ids)
            await self._db.execute(
                f"DELETE FROM node_insights WHERE node_id IN ({placeholders})",
                tuple(subtree_ids),
            )
            try:
                await self._db.execute(
                    f"DELETE FROM timeline_nodes WHERE node_id IN ({placeholders})",
                    tuple(subtree_ids),
                )
            except sqlite3.IntegrityError as e:
                # A child outside the indexed subtree still points in here
                raise ConflictError(f"Subtree of {node_id} changed during delete") from e

        logger.info("Node deleted: %s (%d nodes in subtree)", node_id, len(subtree_ids))
        return subtree_ids

    async def move_node(
        self, node_id: str, new_parent_id: str | None, owner_id: str,
    ) -> TimelineNode:
        """Re-parent a node (None makes it a root) and rewrite its subtree's closure rows."""
        logger.debug("Moving node %s under %s for owner %s", node_id, new_parent_id, owner_id)
        async with self._db.transaction():
            node = await self._load_owned(node_id, owner_id)

            if new_parent_id is not None:
                parent = await self._queries.get_node(new_parent_id)
                if parent.owner_id != owner_id:
                    raise ForbiddenError("node", new_parent_id)
                await self._validator.validate_no_cycle(node_id, new_parent_id)
                self._validator.validate_new_edge(parent.type, node.type)

            if node.parent_id == new_parent_id:
                return node

            now = datetime.now(UTC).isoformat()
            cursor = await self._db.execute(
                """
                UPDATE timeline_nodes SET parent_id = ?, updated_at = ?
                WHERE node_id = ? AND owner_id = ?
                """,
                (new_parent_id, now, node_id, owner_id),
            )
            if cursor.rowcount == 0:
                raise ConflictError(f"Node {node_id} was removed during move")
            await self._closure.rewrite_subtree_on_move(node_id, new_parent_id)

        logger.info("Node moved: %s -> parent %s", node_id, new_parent_id)
        return node.model_copy(update={"parent_id": new_parent_id, "updated_at": now})
