"""Tag API endpoints."""

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from tasknest.api.auth import CurrentUser
from tasknest.api.limits import default_rate_limit, limiter
from tasknest.database import get_db
from tasknest.schemas.base import MessageResponse
from tasknest.schemas.tag import TagCreate, TagResponse, TagUpdate
from tasknest.services.todo_service import TagService

router = APIRouter(prefix="/tags", tags=["tags"])


@router.get("", response_model=list[TagResponse])
async def list_tags(
    user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    """List the user's tags by name."""
    service = TagService(db, user.id)
    tags = await service.get_all()
    return [TagResponse.model_validate(t) for t in tags]


@router.post("", response_model=TagResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(default_rate_limit)
async def create_tag(
    request: Request,
    response: Response,
    data: TagCreate,
    user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    """Create a tag; an existing tag with the same name is returned instead."""
    tag, created = await TagService(db, user.id).create(data)
    if not created:
        response.status_code = status.HTTP_200_OK
    return TagResponse.model_validate(tag)


@router.get("/{tag_id}", response_model=TagResponse)
async def get_tag(
    tag_id: str,
    user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    """Get a tag by ID."""
    tag = await TagService(db, user.id).get_owned(tag_id)
    return TagResponse.model_validate(tag)


@router.put("/{tag_id}", response_model=TagResponse)
@limiter.limit(default_rate_limit)
async def update_tag(
    request: Request,
    tag_id: str,
    data: TagUpdate,
    user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    """Rename or recolor a tag."""
    tag = await TagService(db, user.id).update(tag_id, data)
    return TagResponse.model_validate(tag)


@router.delete("/{tag_id}", response_model=MessageResponse)
@limiter.limit(default_rate_limit)
async def delete_tag(
    request: Request,
    tag_id: str,
    user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    """Delete a tag and remove it from every todo."""
    await TagService(db, user.id).delete(tag_id)
    return MessageResponse(message="Tag deleted successfully")
