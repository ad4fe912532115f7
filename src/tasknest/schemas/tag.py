"""Tag schemas."""

from datetime import datetime

from pydantic import Field, field_validator

from tasknest.schemas.base import BaseSchema

HEX_COLOR = r"^#[0-9A-Fa-f]{6}$"


class TagCreate(BaseSchema):
    """Schema for creating a tag."""

    name: str = Field(..., max_length=50)
    color: str | None = Field(None, pattern=HEX_COLOR)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Tag name is required")
        return value


class TagUpdate(BaseSchema):
    """Schema for updating a tag."""

    name: str | None = Field(None, max_length=50)
    color: str | None = Field(None, pattern=HEX_COLOR)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        if not value:
            raise ValueError("Tag name cannot be empty")
        return value


class TagResponse(BaseSchema):
    """Schema for tag responses."""

    id: str
    name: str
    color: str
    created_at: datetime
