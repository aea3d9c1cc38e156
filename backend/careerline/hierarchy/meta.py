"""Default per-type meta schemas for timeline nodes.

Meta is stored as the caller supplied it (camelCase keys, extra keys kept);
these models only check it. Applications with their own schemas pass a
different ``MetaValidator`` to NodeService.
"""

import re
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from careerline.hierarchy.errors import ValidationError

MetaValidator = Callable[[str, dict[str, Any]], dict[str, Any]]

_MONTH_RE = re.compile(r"^\d{4}-\d{2}$")


class BaseMeta(BaseModel):
    model_config = ConfigDict(extra="allow")

    title: str = Field(min_length=1)
    description: str | None = None
    start_date: str | None = Field(default=None, alias="startDate")
    end_date: str | None = Field(default=None, alias="endDate")

    @model_validator(mode="before")
    @classmethod
    def _reject_field_names(cls, data: Any) -> Any:
        # Meta is stored as given, so only the camelCase key may be used
        if isinstance(data, dict):
            for name, field in cls.model_fields.items():
                if field.alias and field.alias != name and name in data:
                    raise ValueError(f"Use '{field.alias}' instead of '{name}'")
        return data

    @field_validator("start_date", "end_date")
    @classmethod
    def _check_month(cls, value: str | None) -> str | None:
        if value and not _MONTH_RE.match(value):
            raise ValueError("Date must be in YYYY-MM format or empty")
        return value

    @model_validator(mode="after")
    def _check_range(self) -> "BaseMeta":
        # YYYY-MM strings compare correctly as text
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("endDate must not be before startDate")
        return self


class JobMeta(BaseMeta):
    company: str | None = None
    role: str | None = None
    location: str | None = None


class EducationMeta(BaseMeta):
    institution: str | None = None
    degree: str | None = None
    field: str | None = None


class ProjectMeta(BaseMeta):
    technologies: list[str] = Field(default_factory=list)
    project_type: str | None = Field(default=None, alias="projectType")


class EventMeta(BaseMeta):
    event_type: str | None = Field(default=None, alias="eventType")
    location: str | None = None


class ActionMeta(BaseMeta):
    category: str | None = None


class CareerTransitionMeta(BaseMeta):
    from_role: str | None = Field(default=None, alias="fromRole")
    to_role: str | None = Field(default=None, alias="toRole")


META_SCHEMAS: dict[str, type[BaseMeta]] = {
    "job": JobMeta,
    "education": EducationMeta,
    "project": ProjectMeta,
    "event": EventMeta,
    "action": ActionMeta,
    "careerTransition": CareerTransitionMeta,
}


def validate_meta(node_type: str, meta: dict[str, Any]) -> dict[str, Any]:
    """Check meta against the schema for node_type and return it unchanged.

    Raises ValidationError with pydantic's error list on failure.
    """
    schema = META_SCHEMAS.get(node_type)
    if schema is None:
        raise ValidationError(f"Unknown node type: {node_type}")
    try:
        schema.model_validate(meta)
    except PydanticValidationError as e:
        raise ValidationError(
            f"Invalid meta for {node_type} node",
            errors=e.errors(include_url=False, include_context=False),
        ) from e
    return meta
