"""FastAPI routes for timeline node CRUD, moves, and tree queries."""

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Response, status

from careerline.hierarchy.errors import HierarchyError, NotFoundError, ValidationError
from careerline.hierarchy.permissions import PermissionFilter
from careerline.hierarchy.queries import TreeQueryService, build_forest
from careerline.hierarchy.schemas import (
    CreateNodeRequest,
    HierarchyStatsResponse,
    MoveNodeRequest,
    NodeResponse,
    PatchNodeRequest,
    TreeNodeResponse,
)
from careerline.hierarchy.service import NodeService
from careerline.models import NodeType, TimelineNode, TreeNode

router = APIRouter(prefix="/api/v2/timeline", tags=["timeline"])


def get_node_service() -> NodeService:
    """Dependency placeholder, replaced at app startup."""
    raise RuntimeError("NodeService not initialized")


def get_query_service() -> TreeQueryService:
    """Dependency placeholder, replaced at app startup."""
    raise RuntimeError("TreeQueryService not initialized")


def get_permission_filter() -> PermissionFilter:
    """Dependency placeholder, replaced at app startup."""
    raise RuntimeError("PermissionFilter not initialized")


async def get_current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Caller identity. Authentication happens upstream; it forwards the user id."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id


def http_error(error: HierarchyError) -> HTTPException:
    """Translate a domain error to its HTTP status."""
    if isinstance(error, ValidationError) and error.errors:
        return HTTPException(
            status_code=error.status_code,
            detail={"message": str(error), "errors": error.errors},
        )
    return HTTPException(status_code=error.status_code, detail=str(error))


def _node_response(node: TimelineNode) -> NodeResponse:
    return NodeResponse(**node.model_dump())


def _tree_response(tree: TreeNode) -> TreeNodeResponse:
    return TreeNodeResponse(
        **tree.node.model_dump(),
        children=[_tree_response(c) for c in tree.children],
    )


async def _visible_node(
    node_id: str, user_id: str, queries: TreeQueryService, permissions: PermissionFilter,
) -> TimelineNode:
    node = await queries.get_node(node_id)
    if not await permissions.can_view(user_id, node):
        raise NotFoundError("node", node_id)
    return node


@router.post("/nodes", status_code=status.HTTP_201_CREATED)
async def create_node(
    request: CreateNodeRequest,
    user_id: str = Depends(get_current_user_id),
    service: NodeService = Depends(get_node_service),
) -> NodeResponse:
    try:
        node = await service.create_node(
            request.type, request.meta, user_id, parent_id=request.parent_id,
        )
    except HierarchyError as e:
        raise http_error(e)
    return _node_response(node)


@router.get("/nodes")
async def list_nodes(
    node_type: NodeType | None = Query(default=None, alias="type"),
    user_id: str = Depends(get_current_user_id),
    queries: TreeQueryService = Depends(get_query_service),
) -> list[NodeResponse]:
    nodes = await queries.get_nodes(user_id, node_type=node_type)
    return [_node_response(n) for n in nodes]


@router.get("/tree")
async def get_tree(
    user_id: str = Depends(get_current_user_id),
    queries: TreeQueryService = Depends(get_query_service),
) -> list[TreeNodeResponse]:
    return [_tree_response(t) for t in await queries.build_tree(user_id)]


@router.get("/roots")
async def get_roots(
    user_id: str = Depends(get_current_user_id),
    queries: TreeQueryService = Depends(get_query_service),
) -> list[NodeResponse]:
    return [_node_response(n) for n in await queries.get_roots(user_id)]


@router.get("/stats")
async def get_stats(
    user_id: str = Depends(get_current_user_id),
    queries: TreeQueryService = Depends(get_query_service),
) -> HierarchyStatsResponse:
    stats = await queries.get_stats(user_id)
    return HierarchyStatsResponse(**stats.model_dump())


@router.get("/users/{owner_id}/tree")
async def get_user_tree(
    owner_id: str,
    user_id: str = Depends(get_current_user_id),
    queries: TreeQueryService = Depends(get_query_service),
    permissions: PermissionFilter = Depends(get_permission_filter),
) -> list[TreeNodeResponse]:
    """Another user's forest as the caller may see it; hidden parents promote children to roots."""
    visible = await permissions.filter_visible(await queries.get_nodes(owner_id), user_id)
    return [_tree_response(t) for t in build_forest(visible)]


@router.get("/users/{owner_id}/nodes")
async def get_user_nodes(
    owner_id: str,
    user_id: str = Depends(get_current_user_id),
    queries: TreeQueryService = Depends(get_query_service),
    permissions: PermissionFilter = Depends(get_permission_filter),
) -> list[NodeResponse]:
    visible = await permissions.filter_visible(await queries.get_nodes(owner_id), user_id)
    return [_node_response(n) for n in visible]


@router.get("/nodes/{node_id}")
async def get_node(
    node_id: str,
    user_id: str = Depends(get_current_user_id),
    queries: TreeQueryService = Depends(get_query_service),
    permissions: PermissionFilter = Depends(get_permission_filter),
) -> NodeResponse:
    try:
        return _node_response(await _visible_node(node_id, user_id, queries, permissions))
    except HierarchyError as e:
        raise http_error(e)


@router.patch("/nodes/{node_id}")
async def update_node(
    node_id: str,
    request: PatchNodeRequest,
    user_id: str = Depends(get_current_user_id),
    service: NodeService = Depends(get_node_service),
) -> NodeResponse:
    try:
        return _node_response(await service.update_node(node_id, request.meta, user_id))
    except HierarchyError as e:
        raise http_error(e)


@router.delete("/nodes/{node_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_node(
    node_id: str,
    user_id: str = Depends(get_current_user_id),
    service: NodeService = Depends(get_node_service),
) -> Response:
    try:
        await service.delete_node(node_id, user_id)
    except HierarchyError as e:
        raise http_error(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/nodes/{node_id}/move")
async def move_node(
    node_id: str,
    request: MoveNodeRequest,
    user_id: str = Depends(get_current_user_id),
    service: NodeService = Depends(get_node_service),
) -> NodeResponse:
    try:
        return _node_response(
            await service.move_node(node_id, request.new_parent_id, user_id)
        )
    except HierarchyError as e:
        raise http_error(e)


@router.get("/nodes/{node_id}/children")
async def get_children(
    node_id: str,
    user_id: str = Depends(get_current_user_id),
    queries: TreeQueryService = Depends(get_query_service),
    permissions: PermissionFilter = Depends(get_permission_filter),
) -> list[NodeResponse]:
    try:
        await _visible_node(node_id, user_id, queries, permissions)
        nodes = await queries.get_children(node_id)
    except HierarchyError as e:
        raise http_error(e)
    return [_node_response(n) for n in await permissions.filter_visible(nodes, user_id)]


@router.get("/nodes/{node_id}/ancestors")
async def get_ancestors(
    node_id: str,
    user_id: str = Depends(get_current_user_id),
    queries: TreeQueryService = Depends(get_query_service),
    permissions: PermissionFilter = Depends(get_permission_filter),
) -> list[NodeResponse]:
    try:
        await _visible_node(node_id, user_id, queries, permissions)
        nodes = await queries.get_ancestors(node_id)
    except HierarchyError as e:
        raise http_error(e)
    return [_node_response(n) for n in await permissions.filter_visible(nodes, user_id)]


@router.get("/nodes/{node_id}/descendants")
async def get_descendants(
    node_id: str,
    user_id: str = Depends(get_current_user_id),
    queries: TreeQueryService = Depends(get_query_service),
    permissions: PermissionFilter = Depends(get_permission_filter),
) -> list[NodeResponse]:
    try:
        await _visible_node(node_id, user_id, queries, permissions)
        nodes = await queries.get_descendants(node_id)
    except HierarchyError as e:
        raise http_error(e)
    return [_node_response(n) for n in await permissions.filter_visible(nodes, user_id)]


@router.get("/nodes/{node_id}/subtree")
async def get_subtree(
    node_id: str,
    max_depth: int = Query(default=10, ge=1, le=20),
    user_id: str = Depends(get_current_user_id),
    queries: TreeQueryService = Depends(get_query_service),
    permissions: PermissionFilter = Depends(get_permission_filter),
) -> list[TreeNodeResponse]:
    try:
        await _visible_node(node_id, user_id, queries, permissions)
        nodes = await queries.get_subtree(node_id, max_depth=max_depth)
    except HierarchyError as e:
        raise http_error(e)
    visible = await permissions.filter_visible(nodes, user_id)
    return [_tree_response(t) for t in build_forest(visible)]
