"""Shared test helpers."""

from typing import Any

from httpx import AsyncClient

from careerline.db.connection import Database
from careerline.hierarchy.service import NodeService
from careerline.models import TimelineNode

OWNER = "user-1"
OTHER_OWNER = "user-2"


def make_meta(title: str = "Milestone", **extra: Any) -> dict[str, Any]:
    return {"title": title, **extra}


async def create_chain(
    service: NodeService,
    types: list[str],
    owner_id: str = OWNER,
) -> list[TimelineNode]:
    """Create a single parent chain of the given types, root first."""
    nodes: list[TimelineNode] = []
    parent_id: str | None = None
    for i, node_type in enumerate(types):
        node = await service.create_node(
            node_type, make_meta(f"{node_type} {i}"), owner_id, parent_id=parent_id,
        )
        nodes.append(node)
        parent_id = node.id
    return nodes


async def closure_rows(db: Database) -> set[tuple[str, str, int]]:
    """Every row of the closure table as (ancestor, descendant, depth)."""
    rows = await db.fetchall(
        "SELECT ancestor_id, descendant_id, depth FROM timeline_node_closure"
    )
    return {(r["ancestor_id"], r["descendant_id"], r["depth"]) for r in rows}


async def node_count(db: Database) -> int:
    row = await db.fetchone("SELECT COUNT(*) AS cnt FROM timeline_nodes")
    assert row is not None
    return row["cnt"]


# -- API-level helpers --


def auth(user_id: str = OWNER) -> dict[str, str]:
    return {"X-User-Id": user_id}


async def api_create_node(
    client: AsyncClient,
    node_type: str,
    title: str = "Milestone",
    parent_id: str | None = None,
    user_id: str = OWNER,
    **meta: Any,
) -> dict:
    """Create a node via the API and return the response JSON."""
    body: dict[str, Any] = {"type": node_type, "meta": {"title": title, **meta}}
    if parent_id is not None:
        body["parent_id"] = parent_id
    resp = await client.post("/api/v2/timeline/nodes", json=body, headers=auth(user_id))
    assert resp.status_code == 201, resp.text
    return resp.json()


async def api_create_career(client: AsyncClient, user_id: str = OWNER) -> dict:
    """Create job -> (action -> project, event) plus a second root education.

    Returns {"job": ..., "action": ..., "project": ..., "event": ..., "education": ...}
    with node ids as values.
    """
    job = await api_create_node(client, "job", "Engineer", company="Acme", user_id=user_id)
    action = await api_create_node(client, "action", "Led migration", parent_id=job["id"], user_id=user_id)
    project = await api_create_node(client, "project", "Search rewrite", parent_id=action["id"], user_id=user_id)
    event = await api_create_node(client, "event", "Conference talk", parent_id=job["id"], user_id=user_id)
    education = await api_create_node(client, "education", "BSc", user_id=user_id)
    return {
        "job": job["id"],
        "action": action["id"],
        "project": project["id"],
        "event": event["id"],
        "education": education["id"],
    }
