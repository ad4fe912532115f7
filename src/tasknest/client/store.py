"""Client-side copy of the todo tree.

Every mutation is sent to the server, awaited, and followed by a full
refetch that replaces the local tree. The tree is never patched locally, so
a failed write leaves the previous state untouched.
"""

import logging
import uuid
from collections.abc import Collection
from dataclasses import dataclass, field
from datetime import date

from tasknest.client.api import ApiClient
from tasknest.client.projection import TodoView, project
from tasknest.ordering import partition_priority
from tasknest.schemas.tag import TagResponse
from tasknest.schemas.todo import TodoResponse

logger = logging.getLogger(__name__)


class EditingConflict(Exception):
    """Another todo is already being edited."""


@dataclass(frozen=True)
class EditingSession:
    """Handle for one open edit form."""

    todo_id: str
    token: str = field(default_factory=lambda: uuid.uuid4().hex)


class TodoStore:
    """Fire-and-refetch state container over an ``ApiClient``."""

    def __init__(self, api: ApiClient):
        self.api = api
        self.todos: list[TodoResponse] = []
        self.tags: list[TagResponse] = []
        self.loading = False
        self._editing: EditingSession | None = None

    # Reads

    async def refresh(self) -> list[TodoResponse]:
        """Replace the local tree with the server's."""
        self.loading = True
        try:
            self.todos = await self.api.list_todos()
        finally:
            self.loading = False
        return self.todos

    async def refresh_tags(self) -> list[TagResponse]:
        self.tags = await self.api.list_tags()
        return self.tags

    def view(self, query: str | None = None, tag_ids: Collection[str] = ()) -> TodoView:
        return project(self.todos, query=query, tag_ids=tag_ids)

    def find(self, todo_id: str) -> TodoResponse | None:
        """Look a todo up anywhere in the local tree."""
        stack = list(self.todos)
        while stack:
            todo = stack.pop()
            if todo.id == todo_id:
                return todo
            stack.extend(todo.children)
        return None

    # Editing sessions

    def begin_edit(self, todo_id: str) -> EditingSession:
        """Open an edit session; only one may be open at a time."""
        if self._editing is not None and self._editing.todo_id != todo_id:
            raise EditingConflict(f"Todo {self._editing.todo_id} is being edited")
        if self._editing is None:
            self._editing = EditingSession(todo_id)
        return self._editing

    def end_edit(self, session: EditingSession) -> None:
        if self._editing == session:
            self._editing = None

    def is_editing(self, todo_id: str | None = None) -> bool:
        if self._editing is None:
            return False
        return todo_id is None or self._editing.todo_id == todo_id

    # Mutations

    async def create(
        self,
        title: str,
        description: str | None = None,
        parent: str | None = None,
        tags: list[str] | None = None,
    ) -> TodoResponse:
        todo = await self.api.create_todo(title, description, parent, tags)
        await self.refresh()
        return todo

    async def update(
        self,
        todo_id: str,
        title: str | None = None,
        description: str | None = None,
        tags: list[str] | None = None,
    ) -> TodoResponse:
        todo = await self.api.update_todo(todo_id, title, description, tags)
        await self.refresh()
        return todo

    async def commit_edit(
        self,
        session: EditingSession,
        title: str | None = None,
        description: str | None = None,
        tags: list[str] | None = None,
    ) -> TodoResponse:
        """Save an edit form and close its session.

        The session stays open when the save fails so the form can be retried.
        """
        if self._editing != session:
            raise EditingConflict("Edit session is no longer active")
        todo = await self.update(session.todo_id, title, description, tags)
        self.end_edit(session)
        return todo

    async def toggle(self, todo_id: str) -> TodoResponse:
        todo = await self.api.toggle_todo(todo_id)
        await self.refresh()
        return todo

    async def set_priority(self, todo_id: str, is_priority: bool) -> TodoResponse:
        todo = await self.api.set_priority(todo_id, is_priority)
        await self.refresh()
        return todo

    async def reorder(self, todo_ids: list[str]) -> None:
        await self.api.reorder_todos(todo_ids)
        await self.refresh()

    async def move(self, todo_id: str, position: int) -> None:
        """Drag an open root todo to ``position`` within its priority group."""
        priority, regular = partition_priority(
            t for t in self.todos if t.parent_id is None
        )
        group = priority if any(t.id == todo_id for t in priority) else regular
        ids = [t.id for t in group]
        if todo_id not in ids:
            raise ValueError(f"Todo {todo_id} is not an open root todo")
        ids.remove(todo_id)
        ids.insert(max(0, min(position, len(ids))), todo_id)
        await self.reorder(ids)

    async def delete(self, todo_id: str) -> int:
        count = await self.api.delete_todo(todo_id)
        await self.refresh()
        return count

    async def delete_completed(self, day: date | None = None) -> int:
        if day is None:
            count = await self.api.delete_completed()
        else:
            count = await self.api.delete_completed_on(day)
        await self.refresh()
        return count

    async def create_tag(self, name: str, color: str | None = None) -> TagResponse:
        tag = await self.api.create_tag(name, color)
        await self.refresh_tags()
        return tag

    async def delete_tag(self, tag_id: str) -> None:
        await self.api.delete_tag(tag_id)
        await self.refresh_tags()
        # Todos lose the tag too
        await self.refresh()
