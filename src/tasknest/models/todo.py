"""Todo model - the core entity of TaskNest."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    event,
)
from sqlalchemy.ext.mutable import MutableList
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from tasknest.models.base import Base


class TodoTag(Base):
    """Association table for Todo-Tag many-to-many relationship."""

    __tablename__ = "todo_tags"

    todo_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("todos.id", ondelete="CASCADE"),
        primary_key=True,
    )
    tag_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("tags.id", ondelete="CASCADE"),
        primary_key=True,
    )


class Todo(Base):
    """Todo item; children are tracked both ways.

    ``parent_id`` points up, ``child_ids`` lists the children in display
    order. The service layer keeps the two sides in step.
    """

    __tablename__ = "todos"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(String(1000))
    is_completed: Mapped[bool] = mapped_column(Boolean, default=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    is_priority: Mapped[bool] = mapped_column(Boolean, default=False)

    # Only open root todos that were placed explicitly carry an order
    order: Mapped[int | None] = mapped_column(Integer)

    parent_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("todos.id", ondelete="CASCADE"),
        index=True,
    )
    child_ids: Mapped[list[str]] = mapped_column(
        MutableList.as_mutable(JSON),
        default=list,
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    tags: Mapped[list["Tag"]] = relationship(  # noqa: F821
        secondary="todo_tags",
        back_populates="todos",
    )

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    def set_completed(self, completed: bool) -> None:
        """Set the completion flag together with its timestamp."""
        if completed and not self.is_completed:
            self.completed_at = datetime.now(timezone.utc)
        elif not completed:
            self.completed_at = None
        self.is_completed = completed

    def sync_completed_at(self) -> None:
        """Re-derive ``completed_at`` from ``is_completed``."""
        if self.is_completed and self.completed_at is None:
            self.completed_at = datetime.now(timezone.utc)
        elif not self.is_completed and self.completed_at is not None:
            self.completed_at = None

    def __repr__(self) -> str:
        status = "done" if self.is_completed else "open"
        return f"<Todo(title={self.title!r}, status={status})>"


@event.listens_for(Session, "before_flush")
def _sync_completion_timestamps(session, flush_context, instances):
    """Keep ``completed_at`` consistent on every write, whatever the caller did."""
    for obj in (*session.new, *session.dirty):
        if isinstance(obj, Todo):
            obj.sync_completed_at()
