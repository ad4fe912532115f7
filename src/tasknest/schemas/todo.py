"""Todo schemas."""

from datetime import datetime

from pydantic import Field, field_validator

from tasknest.schemas.base import BaseSchema
from tasknest.schemas.tag import TagResponse


def _clean_title(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("Title is required")
    if len(value) > 200:
        raise ValueError("Title cannot be more than 200 characters")
    return value


def _clean_description(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    if len(value) > 1000:
        raise ValueError("Description cannot be more than 1000 characters")
    return value or None


class TodoCreate(BaseSchema):
    """Schema for creating a todo."""

    title: str
    description: str | None = None
    parent_id: str | None = Field(None, alias="parent")
    tag_ids: list[str] = Field(default_factory=list, alias="tags")

    @field_validator("title")
    @classmethod
    def clean_title(cls, value: str) -> str:
        return _clean_title(value)

    @field_validator("description")
    @classmethod
    def clean_description(cls, value: str | None) -> str | None:
        return _clean_description(value)


class TodoUpdate(BaseSchema):
    """Schema for a partial todo update; omitted fields keep their value."""

    title: str | None = None
    description: str | None = None
    tag_ids: list[str] | None = Field(None, alias="tags")

    @field_validator("title")
    @classmethod
    def clean_title(cls, value: str | None) -> str | None:
        return None if value is None else _clean_title(value)

    @field_validator("description")
    @classmethod
    def clean_description(cls, value: str | None) -> str | None:
        return _clean_description(value)


class TodoResponse(BaseSchema):
    """Schema for todo responses, children resolved recursively."""

    id: str
    title: str
    description: str | None = None
    is_completed: bool
    completed_at: datetime | None = None
    is_priority: bool = False
    parent_id: str | None = None
    order: int | None = None
    created_at: datetime
    updated_at: datetime | None = None

    # Nested relationships
    tags: list[TagResponse] = Field(default_factory=list)
    children: list["TodoResponse"] = Field(default_factory=list)


class TodoListResponse(BaseSchema):
    """Schema for the ordered root todo tree."""

    todos: list[TodoResponse]


class ReorderRequest(BaseSchema):
    """Ids of root todos in their new display order."""

    todo_ids: list[str]


class PriorityUpdate(BaseSchema):
    """Set or clear the priority flag."""

    is_priority: bool


# Needed for self-referential model
TodoResponse.model_rebuild()
