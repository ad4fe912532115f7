"""Business logic for todo and tag operations.

Every service is scoped to one user: records belonging to anybody else are
reported as not found. The services only flush; the request's session
commits or rolls back the whole operation.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable
from datetime import date

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from tasknest.config import Settings, get_settings
from tasknest.errors import NotFoundError, ValidationError
from tasknest.models import Tag, Todo, TodoTag
from tasknest.ordering import ensure_aware, partition_priority, sort_roots
from tasknest.schemas.tag import TagCreate, TagUpdate
from tasknest.schemas.todo import TodoCreate, TodoResponse, TodoUpdate
from tasknest.services.hierarchy import assemble_tree, build_nodes

logger = logging.getLogger(__name__)

# Palette for tags created without an explicit color
TAG_COLORS = [
    "#1976d2", "#d32f2f", "#388e3c", "#f57c00",
    "#7b1fa2", "#00796b", "#c2185b", "#303f9f",
    "#5d4037", "#616161", "#e64a19", "#0097a7",
]


def tag_color(name: str) -> str:
    """Pick a palette color from a 32-bit rolling hash of the tag name."""
    h = 0
    for char in name:
        h = (ord(char) + (h << 5) - h) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return TAG_COLORS[abs(h) % len(TAG_COLORS)]


class TodoService:
    """Service for todo operations of a single user."""

    def __init__(self, db: AsyncSession, user_id: str, settings: Settings | None = None):
        self.db = db
        self.user_id = user_id
        self.settings = settings or get_settings()

    async def _load_all(self) -> list[Todo]:
        result = await self.db.execute(
            select(Todo)
            .options(selectinload(Todo.tags))
            .where(Todo.user_id == self.user_id)
        )
        return list(result.scalars())

    async def get_tree(self) -> list[TodoResponse]:
        """Get the user's root todos, children nested, in display order."""
        return assemble_tree(await self._load_all(), self.settings.max_tree_depth)

    async def get_subtree(self, todo_id: str) -> TodoResponse:
        """Get one todo with its descendants nested under it."""
        nodes = build_nodes(await self._load_all(), self.settings.max_tree_depth)
        if todo_id not in nodes:
            raise NotFoundError("Todo not found")
        return nodes[todo_id]

    async def get_by_id(self, todo_id: str) -> Todo | None:
        """Get a single todo owned by the user, tags loaded."""
        result = await self.db.execute(
            select(Todo)
            .options(selectinload(Todo.tags))
            .where(Todo.id == todo_id, Todo.user_id == self.user_id)
        )
        return result.scalar_one_or_none()

    async def get_owned(self, todo_id: str, message: str = "Todo not found") -> Todo:
        todo = await self.get_by_id(todo_id)
        if todo is None:
            raise NotFoundError(message)
        return todo

    async def _resolve_tags(self, tag_ids: Iterable[str]) -> list[Tag]:
        wanted = list(dict.fromkeys(tag_ids))
        if not wanted:
            return []
        result = await self.db.execute(
            select(Tag).where(Tag.id.in_(wanted), Tag.user_id == self.user_id)
        )
        found = {tag.id: tag for tag in result.scalars()}
        missing = [tag_id for tag_id in wanted if tag_id not in found]
        if missing:
            raise ValidationError(f"Unknown tag: {missing[0]}")
        return [found[tag_id] for tag_id in wanted]

    async def _depth_of(self, todo: Todo) -> int:
        """Number of ancestors above ``todo``."""
        depth = 0
        seen = {todo.id}
        parent_id = todo.parent_id
        while parent_id is not None:
            if parent_id in seen:
                raise ValidationError("Parent chain is cyclic")
            seen.add(parent_id)
            parent = await self.db.get(Todo, parent_id)
            if parent is None:
                break
            depth += 1
            parent_id = parent.parent_id
        return depth

    async def create(self, data: TodoCreate) -> Todo:
        """Create a todo at the front of the root list or under a parent."""
        tags = await self._resolve_tags(data.tag_ids)

        if data.parent_id:
            parent = await self.get_owned(data.parent_id, "Parent todo not found")
            if await self._depth_of(parent) + 1 > self.settings.max_tree_depth:
                raise ValidationError(
                    f"Todos cannot be nested more than {self.settings.max_tree_depth} levels deep"
                )
            order = None
        else:
            parent = None
            # Push every explicitly ordered open root one place down
            result = await self.db.execute(
                select(Todo).where(
                    Todo.user_id == self.user_id,
                    Todo.is_completed.is_(False),
                    Todo.parent_id.is_(None),
                    Todo.order.is_not(None),
                )
            )
            for sibling in result.scalars():
                sibling.order += 1
            order = 0

        todo = Todo(
            user_id=self.user_id,
            title=data.title,
            description=data.description,
            parent_id=parent.id if parent else None,
            order=order,
            child_ids=[],
            tags=tags,
        )
        self.db.add(todo)
        await self.db.flush()

        if parent is not None:
            parent.child_ids.append(todo.id)
            await self.db.flush()

        logger.info(
            "Todo created",
            extra={"todo_id": todo.id, "user_id": self.user_id, "parent_id": todo.parent_id},
        )
        return await self.get_by_id(todo.id)

    async def update(self, todo_id: str, data: TodoUpdate) -> Todo:
        """Update title, description or tags; omitted fields are untouched."""
        todo = await self.get_owned(todo_id)
        update_data = data.model_dump(exclude_unset=True)

        if update_data.get("title") is not None:
            todo.title = update_data["title"]
        if "description" in update_data:
            todo.description = update_data["description"]
        if update_data.get("tag_ids") is not None:
            todo.tags = await self._resolve_tags(update_data["tag_ids"])

        await self.db.flush()
        return await self.get_by_id(todo_id)

    async def toggle(self, todo_id: str) -> Todo:
        """Flip completion; children keep their own state."""
        todo = await self.get_owned(todo_id)
        todo.set_completed(not todo.is_completed)
        await self.db.flush()
        logger.info(
            "Todo toggled",
            extra={"todo_id": todo.id, "completed": todo.is_completed},
        )
        return await self.get_by_id(todo_id)

    async def _delete_subtrees(self, todos: list[Todo], tops: Iterable[Todo]) -> int:
        """Delete ``tops`` and all their descendants out of the loaded ``todos``."""
        by_id = {todo.id: todo for todo in todos}
        children: dict[str, set[str]] = defaultdict(set)
        for todo in todos:
            if todo.parent_id is not None:
                children[todo.parent_id].add(todo.id)
            children[todo.id].update(c for c in todo.child_ids or [] if c in by_id)

        doomed: set[str] = set()
        stack = [top.id for top in tops]
        while stack:
            current = stack.pop()
            if current in doomed:
                continue
            doomed.add(current)
            stack.extend(children[current])

        if not doomed:
            return 0

        # Detach from parents that survive
        for todo_id in doomed:
            parent_id = by_id[todo_id].parent_id
            parent = by_id.get(parent_id) if parent_id else None
            if parent is not None and parent.id not in doomed and todo_id in parent.child_ids:
                parent.child_ids.remove(todo_id)

        ids = list(doomed)
        await self.db.execute(
            delete(TodoTag)
            .where(TodoTag.todo_id.in_(ids))
            .execution_options(synchronize_session=False)
        )
        await self.db.execute(
            delete(Todo)
            .where(Todo.id.in_(ids), Todo.user_id == self.user_id)
            .execution_options(synchronize_session=False)
        )
        for todo_id in ids:
            self.db.expunge(by_id[todo_id])

        logger.info("Todos deleted", extra={"user_id": self.user_id, "count": len(ids)})
        return len(ids)

    async def delete(self, todo_id: str) -> int:
        """Delete a todo and every descendant. Returns the number removed."""
        todos = await self._load_all()
        target = next((todo for todo in todos if todo.id == todo_id), None)
        if target is None:
            raise NotFoundError("Todo not found")
        return await self._delete_subtrees(todos, [target])

    async def delete_completed(self) -> int:
        """Delete every completed todo, root or child, with its descendants."""
        todos = await self._load_all()
        return await self._delete_subtrees(todos, [t for t in todos if t.is_completed])

    async def delete_by_completion_date(self, day: date) -> int:
        """Like ``delete_completed`` but only for todos completed on ``day``.

        The day is a calendar day in the server's local time zone.
        """
        todos = await self._load_all()
        tops = [
            todo
            for todo in todos
            if todo.is_completed
            and todo.completed_at is not None
            and ensure_aware(todo.completed_at).astimezone().date() == day
        ]
        return await self._delete_subtrees(todos, tops)

    async def reorder(self, todo_ids: list[str]) -> None:
        """Give each listed root todo its index as ``order``.

        The batch is all or nothing: an unknown id, a child todo, a
        completed todo or a repeated id rejects it before anything is
        written.
        """
        if len(set(todo_ids)) != len(todo_ids):
            raise ValidationError("todoIds must not contain duplicates")

        result = await self.db.execute(
            select(Todo).where(Todo.id.in_(todo_ids), Todo.user_id == self.user_id)
        )
        found = {todo.id: todo for todo in result.scalars()}
        missing = [todo_id for todo_id in todo_ids if todo_id not in found]
        if missing:
            raise NotFoundError(f"Todo not found: {missing[0]}")
        if any(todo.parent_id is not None for todo in found.values()):
            raise ValidationError("Only root todos can be reordered")
        if any(todo.is_completed for todo in found.values()):
            raise ValidationError("Completed todos cannot be reordered")

        for index, todo_id in enumerate(todo_ids):
            found[todo_id].order = index
        await self.db.flush()

    async def set_priority(self, todo_id: str, is_priority: bool) -> Todo:
        """Set the priority flag and move the todo to the front of its new group.

        Priority and regular todos are numbered independently; the group the
        todo joins is renumbered densely from zero.
        """
        todo = await self.get_owned(todo_id)
        if not todo.is_root:
            raise ValidationError("Only root todos can be prioritized")

        todo.is_priority = is_priority
        if not todo.is_completed:
            result = await self.db.execute(
                select(Todo).where(
                    Todo.user_id == self.user_id,
                    Todo.parent_id.is_(None),
                    Todo.is_completed.is_(False),
                    Todo.id != todo.id,
                )
            )
            priority, regular = partition_priority(sort_roots(result.scalars()))
            group = priority if is_priority else regular
            for index, member in enumerate([todo, *group]):
                member.order = index

        await self.db.flush()
        logger.info(
            "Todo priority changed",
            extra={"todo_id": todo.id, "is_priority": is_priority},
        )
        return await self.get_by_id(todo_id)


class TagService:
    """Service for tag operations of a single user."""

    def __init__(self, db: AsyncSession, user_id: str):
        self.db = db
        self.user_id = user_id

    async def get_all(self) -> list[Tag]:
        """Get all tags, by name."""
        result = await self.db.execute(
            select(Tag).where(Tag.user_id == self.user_id).order_by(Tag.name)
        )
        return list(result.scalars())

    async def get_by_id(self, tag_id: str) -> Tag | None:
        """Get a tag by ID."""
        result = await self.db.execute(
            select(Tag).where(Tag.id == tag_id, Tag.user_id == self.user_id)
        )
        return result.scalar_one_or_none()

    async def get_by_name(self, name: str) -> Tag | None:
        result = await self.db.execute(
            select(Tag).where(Tag.name == name, Tag.user_id == self.user_id)
        )
        return result.scalar_one_or_none()

    async def get_owned(self, tag_id: str) -> Tag:
        tag = await self.get_by_id(tag_id)
        if tag is None:
            raise NotFoundError("Tag not found")
        return tag

    async def create(self, data: TagCreate) -> tuple[Tag, bool]:
        """Create a tag, or return the existing one with the same name.

        Returns the tag and whether it was newly created.
        """
        existing = await self.get_by_name(data.name)
        if existing is not None:
            return existing, False

        tag = Tag(
            user_id=self.user_id,
            name=data.name,
            color=data.color or tag_color(data.name),
        )
        self.db.add(tag)
        await self.db.flush()
        logger.info(
            "Tag created",
            extra={"tag_id": tag.id, "user_id": self.user_id, "tag_name": tag.name},
        )
        return tag, True

    async def update(self, tag_id: str, data: TagUpdate) -> Tag:
        """Rename or recolor a tag."""
        tag = await self.get_owned(tag_id)
        if data.name is not None and data.name != tag.name:
            clash = await self.get_by_name(data.name)
            if clash is not None:
                raise ValidationError(f"Tag '{data.name}' already exists")
            tag.name = data.name
        if data.color is not None:
            tag.color = data.color
        try:
            await self.db.flush()
        except IntegrityError as e:
            raise ValidationError(f"Tag '{data.name}' already exists") from e
        return tag

    async def delete(self, tag_id: str) -> None:
        """Delete a tag and pull it from every todo that carries it."""
        tag = await self.get_owned(tag_id)
        await self.db.execute(
            delete(TodoTag)
            .where(TodoTag.tag_id == tag.id)
            .execution_options(synchronize_session=False)
        )
        await self.db.execute(
            delete(Tag)
            .where(Tag.id == tag.id)
            .execution_options(synchronize_session=False)
        )
        self.db.expunge(tag)
        logger.info("Tag deleted", extra={"tag_id": tag_id, "user_id": self.user_id})
