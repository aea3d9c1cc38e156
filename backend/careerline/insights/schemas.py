"""Request and response schemas for insight endpoints."""

from pydantic import BaseModel, Field

# -- Requests --


class CreateInsightRequest(BaseModel):
    content: str
    resources: list[str] = Field(default_factory=list)


class UpdateInsightRequest(BaseModel):
    """Fields left out of the body keep their stored value."""

    content: str | None = None
    resources: list[str] | None = None


# -- Responses --


class InsightResponse(BaseModel):
    id: str
    node_id: str
    author_id: str
    content: str
    resources: list[str] = Field(default_factory=list)
    created_at: str
    updated_at: str
