"""Business logic services for TaskNest."""

from tasknest.services.auth_service import AuthService
from tasknest.services.todo_service import TagService, TodoService

__all__ = ["AuthService", "TagService", "TodoService"]
