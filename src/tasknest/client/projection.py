"""Views derived from the todo tree the server returns.

Nothing here changes the tree. Every function takes the root list in the
server's order and returns a filtered or grouped copy of it.
"""

from collections.abc import Collection, Iterable
from dataclasses import dataclass, field
from datetime import date

from tasknest.ordering import ensure_aware, partition_priority
from tasknest.schemas.todo import TodoResponse

MIN_SEARCH_LENGTH = 2


def open_roots(todos: Iterable[TodoResponse]) -> list[TodoResponse]:
    return [t for t in todos if not t.is_completed and t.parent_id is None]


def completed_roots(todos: Iterable[TodoResponse]) -> list[TodoResponse]:
    return [t for t in todos if t.is_completed and t.parent_id is None]


def _text_matches(todo: TodoResponse, needle: str) -> bool:
    haystacks = [todo.title, todo.description or "", *(tag.name for tag in todo.tags)]
    return any(needle in text.lower() for text in haystacks)


def matches_search(todo: TodoResponse, query: str) -> bool:
    """Case-insensitive match on title, description and tag names, one level into children."""
    needle = query.strip().lower()
    if _text_matches(todo, needle):
        return True
    return any(_text_matches(child, needle) for child in todo.children)


def search(todos: Iterable[TodoResponse], query: str | None) -> list[TodoResponse]:
    """Filter by text; queries shorter than two characters leave the list alone."""
    if not query or len(query.strip()) < MIN_SEARCH_LENGTH:
        return list(todos)
    return [todo for todo in todos if matches_search(todo, query)]


def filter_by_tags(todos: Iterable[TodoResponse], tag_ids: Collection[str]) -> list[TodoResponse]:
    """Keep todos where the todo or one of its children has any selected tag."""
    if not tag_ids:
        return list(todos)
    wanted = set(tag_ids)

    def has_tag(todo: TodoResponse) -> bool:
        return any(tag.id in wanted for tag in todo.tags)

    return [
        todo
        for todo in todos
        if has_tag(todo) or any(has_tag(child) for child in todo.children)
    ]


def group_completed_by_day(
    todos: Iterable[TodoResponse],
) -> list[tuple[date, list[TodoResponse]]]:
    """Group completed todos by local calendar day of completion.

    Most recent day first; within a day, most recently completed first.
    """
    groups: dict[date, list[TodoResponse]] = {}
    for todo in todos:
        if not todo.is_completed or todo.completed_at is None:
            continue
        day = ensure_aware(todo.completed_at).astimezone().date()
        groups.setdefault(day, []).append(todo)

    result = []
    for day in sorted(groups, reverse=True):
        items = sorted(
            groups[day],
            key=lambda t: ensure_aware(t.completed_at),
            reverse=True,
        )
        result.append((day, items))
    return result


@dataclass
class TodoView:
    """Everything a screen of todos needs."""

    priority: list[TodoResponse] = field(default_factory=list)
    regular: list[TodoResponse] = field(default_factory=list)
    completed: list[tuple[date, list[TodoResponse]]] = field(default_factory=list)

    @property
    def open_count(self) -> int:
        return len(self.priority) + len(self.regular)

    @property
    def completed_count(self) -> int:
        return sum(len(items) for _, items in self.completed)


def project(
    todos: Iterable[TodoResponse],
    query: str | None = None,
    tag_ids: Collection[str] = (),
) -> TodoView:
    """Apply search and tag filters, then split into priority, regular and completed."""
    visible = filter_by_tags(search(todos, query), tag_ids)
    priority, regular = partition_priority(open_roots(visible))
    return TodoView(
        priority=priority,
        regular=regular,
        completed=group_completed_by_day(completed_roots(visible)),
    )
