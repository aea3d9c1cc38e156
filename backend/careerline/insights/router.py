"""FastAPI routes for node insights."""

from fastapi import APIRouter, Depends, Response, status

from careerline.hierarchy.errors import HierarchyError
from careerline.hierarchy.router import get_current_user_id, http_error
from careerline.insights.schemas import (
    CreateInsightRequest,
    InsightResponse,
    UpdateInsightRequest,
)
from careerline.insights.service import InsightService
from careerline.models import Insight

router = APIRouter(prefix="/api/v2/timeline", tags=["insights"])


def get_insight_service() -> InsightService:
    """Dependency placeholder, replaced at app startup."""
    raise RuntimeError("InsightService not initialized")


def _insight_response(insight: Insight) -> InsightResponse:
    return InsightResponse(**insight.model_dump())


@router.get("/nodes/{node_id}/insights")
async def list_insights(
    node_id: str,
    user_id: str = Depends(get_current_user_id),
    service: InsightService = Depends(get_insight_service),
) -> list[InsightResponse]:
    try:
        insights = await service.list_insights(node_id, user_id)
    except HierarchyError as e:
        raise http_error(e)
    return [_insight_response(i) for i in insights]


@router.post("/nodes/{node_id}/insights", status_code=status.HTTP_201_CREATED)
async def create_insight(
    node_id: str,
    request: CreateInsightRequest,
    user_id: str = Depends(get_current_user_id),
    service: InsightService = Depends(get_insight_service),
) -> InsightResponse:
    try:
        insight = await service.create_insight(
            node_id, request.content, user_id, resources=request.resources,
        )
    except HierarchyError as e:
        raise http_error(e)
    return _insight_response(insight)


@router.put("/insights/{insight_id}")
async def update_insight(
    insight_id: str,
    request: UpdateInsightRequest,
    user_id: str = Depends(get_current_user_id),
    service: InsightService = Depends(get_insight_service),
) -> InsightResponse:
    try:
        insight = await service.update_insight(
            insight_id, user_id, content=request.content, resources=request.resources,
        )
    except HierarchyError as e:
        raise http_error(e)
    return _insight_response(insight)


@router.delete("/insights/{insight_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_insight(
    insight_id: str,
    user_id: str = Depends(get_current_user_id),
    service: InsightService = Depends(get_insight_service),
) -> Response:
    try:
        await service.delete_insight(insight_id, user_id)
    except HierarchyError as e:
        raise http_error(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
