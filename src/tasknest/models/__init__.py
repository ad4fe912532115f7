"""SQLAlchemy models for TaskNest."""

from tasknest.models.base import Base
from tasknest.models.user import User
from tasknest.models.tag import Tag
from tasknest.models.todo import Todo, TodoTag

__all__ = [
    "Base",
    "User",
    "Tag",
    "Todo",
    "TodoTag",
]
