"""Client for the TaskNest API and the views derived from its todo tree."""

from tasknest.client.api import ApiClient, ApiError
from tasknest.client.projection import TodoView, project
from tasknest.client.store import EditingConflict, EditingSession, TodoStore

__all__ = [
    "ApiClient",
    "ApiError",
    "EditingConflict",
    "EditingSession",
    "TodoStore",
    "TodoView",
    "project",
]
