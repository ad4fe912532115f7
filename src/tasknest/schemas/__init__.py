"""Pydantic schemas for the TaskNest API."""

from tasknest.schemas.auth import (
    AuthResponse,
    ProfileResponse,
    UserCreate,
    UserLogin,
    UserResponse,
)
from tasknest.schemas.base import DeleteCountResponse, MessageResponse
from tasknest.schemas.todo import (
    PriorityUpdate,
    ReorderRequest,
    TodoCreate,
    TodoUpdate,
    TodoResponse,
    TodoListResponse,
)
from tasknest.schemas.tag import TagCreate, TagUpdate, TagResponse

__all__ = [
    "AuthResponse",
    "ProfileResponse",
    "UserCreate",
    "UserLogin",
    "UserResponse",
    "DeleteCountResponse",
    "MessageResponse",
    "PriorityUpdate",
    "ReorderRequest",
    "TodoCreate",
    "TodoUpdate",
    "TodoResponse",
    "TodoListResponse",
    "TagCreate",
    "TagUpdate",
    "TagResponse",
]
