"""Rebuild a user's todo tree from the flat set of stored records."""

import logging
from collections.abc import Iterable

from tasknest.errors import HierarchyError
from tasknest.models import Todo
from tasknest.ordering import sort_roots
from tasknest.schemas.todo import TodoResponse

logger = logging.getLogger(__name__)


def build_nodes(todos: Iterable[Todo], max_depth: int | None = None) -> dict[str, TodoResponse]:
    """Resolve ``child_ids`` into nested nodes, keyed by todo id.

    Child ids that do not resolve to a loaded record are dropped. A cycle in
    the child references, or a chain deeper than ``max_depth`` levels below a
    record, raises ``HierarchyError`` instead of recursing forever.
    """
    records = list(todos)
    by_id = {todo.id: todo for todo in records}
    built: dict[str, TodoResponse] = {}
    heights: dict[str, int] = {}
    path: set[str] = set()

    def build(todo: Todo) -> TodoResponse:
        if todo.id in built:
            return built[todo.id]
        if todo.id in path:
            logger.error("Cycle in todo hierarchy", extra={"todo_id": todo.id})
            raise HierarchyError(f"Cycle detected at todo {todo.id}")

        path.add(todo.id)
        node = TodoResponse.model_validate(todo)
        children = []
        height = 0
        for child_id in todo.child_ids or []:
            child = by_id.get(child_id)
            if child is None:
                logger.warning(
                    "Dropping dangling child reference",
                    extra={"todo_id": todo.id, "child_id": child_id},
                )
                continue
            children.append(build(child))
            height = max(height, heights[child_id] + 1)
        path.discard(todo.id)

        if max_depth is not None and height > max_depth:
            raise HierarchyError(f"Todo {todo.id} is nested deeper than {max_depth} levels")

        node.children = children
        built[todo.id] = node
        heights[todo.id] = height
        return node

    for todo in records:
        build(todo)
    return built


def assemble_tree(todos: Iterable[Todo], max_depth: int | None = None) -> list[TodoResponse]:
    """Build every node and return the root todos in display order."""
    records = list(todos)
    built = build_nodes(records, max_depth)
    return sort_roots(built[todo.id] for todo in records if todo.parent_id is None)
