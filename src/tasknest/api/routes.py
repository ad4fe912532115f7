"""API router aggregation."""

from fastapi import APIRouter

from tasknest.api.auth import router as auth_router
from tasknest.api.todos import router as todos_router
from tasknest.api.tags import router as tags_router

router = APIRouter(prefix="/api")

router.include_router(auth_router)
router.include_router(todos_router)
router.include_router(tags_router)
