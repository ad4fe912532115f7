"""Display order of root todos.

Shared by the server, which sorts the tree it returns, and the client,
which layers the priority split on top of the server's order.
"""

from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Protocol, TypeVar


class Orderable(Protocol):
    id: str
    is_completed: bool
    completed_at: datetime | None
    is_priority: bool
    order: int | None
    created_at: datetime


T = TypeVar("T", bound=Orderable)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC.

    SQLite hands back naive values even for timezone-aware columns.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _timestamp(value: datetime | None) -> float:
    if value is None:
        return 0.0
    return ensure_aware(value).timestamp()


def root_sort_key(todo: Orderable) -> tuple:
    """Sort key for root todos.

    Open before completed. Completed: newest completion first. Open: todos
    with an explicit order first, ascending; the rest newest first. The id
    breaks any remaining tie.
    """
    if todo.is_completed:
        return (1, 0, -_timestamp(todo.completed_at), todo.id)
    if todo.order is not None:
        return (0, 0, todo.order, todo.id)
    return (0, 1, -_timestamp(todo.created_at), todo.id)


def sort_roots(todos: Iterable[T]) -> list[T]:
    return sorted(todos, key=root_sort_key)


def partition_priority(todos: Iterable[T]) -> tuple[list[T], list[T]]:
    """Split open todos into (priority, regular), keeping their relative order."""
    priority: list[T] = []
    regular: list[T] = []
    for todo in todos:
        if todo.is_completed:
            continue
        (priority if todo.is_priority else regular).append(todo)
    return priority, regular
