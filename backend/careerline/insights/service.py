"""Insight attachment store: free-text notes bound to a single node."""

import json
import logging
from datetime import UTC, datetime
from uuid import uuid4

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from careerline.db.connection import Database
from careerline.hierarchy.errors import ForbiddenError, NotFoundError, ValidationError
from careerline.hierarchy.permissions import PermissionFilter
from careerline.hierarchy.queries import TreeQueryService
from careerline.models import Insight

logger = logging.getLogger(__name__)


class InsightFields(BaseModel):
    content: str = Field(min_length=1, max_length=2000)
    resources: list[str] = Field(default_factory=list, max_length=10)


def _check_fields(content: str, resources: list[str]) -> InsightFields:
    try:
        return InsightFields(content=content, resources=resources)
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid insight",
            errors=e.errors(include_url=False, include_context=False),
        ) from e


class InsightService:
    """CRUD for insights. Writes are author-only; reads follow node visibility.

    Insights are deleted with their node by NodeService.delete_node.
    """

    def __init__(
        self, db: Database, permissions: PermissionFilter | None = None,
    ) -> None:
        self._db = db
        self._permissions = permissions or PermissionFilter()
        self._queries = TreeQueryService(db)

    async def _get_row(self, insight_id: str):
        row = await self._db.fetchone(
            "SELECT * FROM node_insights WHERE insight_id = ?", (insight_id,),
        )
        if row is None:
            raise NotFoundError("insight", insight_id)
        return row

    async def create_insight(
        self,
        node_id: str,
        content: str,
        author_id: str,
        resources: list[str] | None = None,
    ) -> Insight:
        fields = _check_fields(content, list(resources or []))
        insight_id = str(uuid4())
        now = datetime.now(UTC).isoformat()

        async with self._db.transaction():
            node = await self._queries.get_node(node_id)
            if node.owner_id != author_id:
                raise ForbiddenError("node", node_id)
            await self._db.execute(
                """
                INSERT INTO node_insights
                    (insight_id, node_id, author_id, content, resources, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    insight_id,
                    node_id,
                    author_id,
                    fields.content,
                    json.dumps(fields.resources),
                    now,
                    now,
                ),
            )

        logger.info("Insight created: %s on node %s", insight_id, node_id)
        return Insight(
            id=insight_id,
            node_id=node_id,
            author_id=author_id,
            content=fields.content,
            resources=fields.resources,
            created_at=now,
            updated_at=now,
        )

    async def list_insights(self, node_id: str, viewer_id: str) -> list[Insight]:
        """Insights on a node, oldest first. Hidden nodes look missing."""
        node = await self._queries.get_node(node_id)
        if not await self._permissions.can_view(viewer_id, node):
            raise NotFoundError("node", node_id)
        rows = await self._db.fetchall(
            "SELECT * FROM node_insights WHERE node_id = ? ORDER BY created_at, rowid",
            (node_id,),
        )
        return [Insight.from_row(r) for r in rows]

    async def update_insight(
        self,
        insight_id: str,
        author_id: str,
        content: str | None = None,
        resources: list[str] | None = None,
    ) -> Insight:
        async with self._db.transaction():
            current = Insight.from_row(await self._get_row(insight_id))
            if current.author_id != author_id:
                raise ForbiddenError("insight", insight_id)

            fields = _check_fields(
                content if content is not None else current.content,
                resources if resources is not None else current.resources,
            )
            now = datetime.now(UTC).isoformat()
            await self._db.execute(
                """
                UPDATE node_insights SET content = ?, resources = ?, updated_at = ?
                WHERE insight_id = ?
                """,
                (fields.content, json.dumps(fields.resources), now, insight_id),
            )

        logger.info("Insight updated: %s", insight_id)
        return current.model_copy(update={
            "content": fields.content,
            "resources": fields.resources,
            "updated_at": now,
        })

    async def delete_insight(self, insight_id: str, author_id: str) -> None:
        async with self._db.transaction():
            row = await self._get_row(insight_id)
            if row["author_id"] != author_id:
                raise ForbiddenError("insight", insight_id)
            await self._db.execute(
                "DELETE FROM node_insights WHERE insight_id = ?", (insight_id,),
            )
        logger.info("Insight deleted: %s", insight_id)
