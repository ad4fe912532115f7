"""Base schemas and utilities."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BaseSchema(BaseModel):
    """Base schema with common configuration.

    Fields are snake_case in Python and camelCase on the wire.
    """

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class MessageResponse(BaseSchema):
    """Plain acknowledgement."""

    message: str


class DeleteCountResponse(MessageResponse):
    """Acknowledgement of a bulk delete."""

    deleted_count: int
