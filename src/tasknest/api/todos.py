"""Todo API endpoints."""

from datetime import date

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from tasknest.api.auth import CurrentUser
from tasknest.api.limits import default_rate_limit, limiter
from tasknest.database import get_db
from tasknest.schemas.base import DeleteCountResponse, MessageResponse
from tasknest.schemas.todo import (
    PriorityUpdate,
    ReorderRequest,
    TodoCreate,
    TodoListResponse,
    TodoResponse,
    TodoUpdate,
)
from tasknest.services.todo_service import TodoService

router = APIRouter(prefix="/todos", tags=["todos"])


@router.get("", response_model=TodoListResponse)
async def list_todos(
    user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    """List root todos with their children, in display order."""
    service = TodoService(db, user.id)
    return TodoListResponse(todos=await service.get_tree())


@router.post("", response_model=TodoResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(default_rate_limit)
async def create_todo(
    request: Request,
    data: TodoCreate,
    user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    """Create a todo, optionally under a parent."""
    todo = await TodoService(db, user.id).create(data)
    return TodoResponse.model_validate(todo)


@router.patch("/reorder", response_model=MessageResponse)
@limiter.limit(default_rate_limit)
async def reorder_todos(
    request: Request,
    data: ReorderRequest,
    user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    """Store a new manual order for root todos."""
    await TodoService(db, user.id).reorder(data.todo_ids)
    return MessageResponse(message="Todo order updated successfully")


@router.delete("/completed", response_model=DeleteCountResponse)
@limiter.limit(default_rate_limit)
async def delete_completed_todos(
    request: Request,
    user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    """Delete every completed todo and everything beneath it."""
    count = await TodoService(db, user.id).delete_completed()
    return DeleteCountResponse(
        message=f"Successfully deleted {count} todos",
        deleted_count=count,
    )


@router.delete("/completed/{day}", response_model=DeleteCountResponse)
@limiter.limit(default_rate_limit)
async def delete_todos_by_date(
    request: Request,
    day: date,
    user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    """Delete todos completed on the given day (YYYY-MM-DD, server local time)."""
    count = await TodoService(db, user.id).delete_by_completion_date(day)
    return DeleteCountResponse(
        message=f"Successfully deleted {count} todos completed on {day.isoformat()}",
        deleted_count=count,
    )


@router.get("/{todo_id}", response_model=TodoResponse)
async def get_todo(
    todo_id: str,
    user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    """Get a single todo by ID, with its sub-todos nested."""
    return await TodoService(db, user.id).get_subtree(todo_id)


@router.put("/{todo_id}", response_model=TodoResponse)
@limiter.limit(default_rate_limit)
async def update_todo(
    request: Request,
    todo_id: str,
    data: TodoUpdate,
    user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    """Update title, description or tags (only specified fields are modified)."""
    service = TodoService(db, user.id)
    await service.update(todo_id, data)
    return await service.get_subtree(todo_id)


@router.patch("/{todo_id}/toggle", response_model=TodoResponse)
@limiter.limit(default_rate_limit)
async def toggle_todo(
    request: Request,
    todo_id: str,
    user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    """Flip a todo between open and completed."""
    service = TodoService(db, user.id)
    await service.toggle(todo_id)
    return await service.get_subtree(todo_id)


@router.patch("/{todo_id}/priority", response_model=TodoResponse)
@limiter.limit(default_rate_limit)
async def set_todo_priority(
    request: Request,
    todo_id: str,
    data: PriorityUpdate,
    user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    """Set or clear the priority flag of a root todo."""
    service = TodoService(db, user.id)
    await service.set_priority(todo_id, data.is_priority)
    return await service.get_subtree(todo_id)


@router.delete("/{todo_id}", response_model=DeleteCountResponse)
@limiter.limit(default_rate_limit)
async def delete_todo(
    request: Request,
    todo_id: str,
    user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    """Delete a todo and all of its descendants."""
    count = await TodoService(db, user.id).delete(todo_id)
    return DeleteCountResponse(message="Todo deleted successfully", deleted_count=count)
