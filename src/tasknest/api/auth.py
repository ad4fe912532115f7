"""Authentication for the API."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from tasknest.api.limits import auth_rate_limit, limiter
from tasknest.database import get_db
from tasknest.errors import AuthError
from tasknest.models import User
from tasknest.schemas.auth import (
    AuthResponse,
    ProfileResponse,
    UserCreate,
    UserLogin,
    UserResponse,
)
from tasknest.services.auth_service import AuthService, create_access_token

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(bearer_scheme)] = None,
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the ``Authorization: Bearer`` token to a user, or reject with 401."""
    if credentials is None:
        raise AuthError("Access denied. No token provided.")
    return await AuthService(db).user_for_token(credentials.credentials)


# Dependency for use in routes
CurrentUser = Annotated[User, Depends(get_current_user)]

router = APIRouter(prefix="/auth", tags=["auth"])


def _auth_response(user: User) -> AuthResponse:
    return AuthResponse(
        user=UserResponse.model_validate(user),
        token=create_access_token(user.id),
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(auth_rate_limit)
async def register(
    request: Request,
    data: UserCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create an account and sign in."""
    user = await AuthService(db).register(data)
    return _auth_response(user)


@router.post("/login", response_model=AuthResponse)
@limiter.limit(auth_rate_limit)
async def login(
    request: Request,
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db),
):
    """Sign in with email and password."""
    user = await AuthService(db).authenticate(credentials.email, credentials.password)
    return _auth_response(user)


@router.get("/profile", response_model=ProfileResponse)
async def profile(user: CurrentUser):
    """Return the signed-in user."""
    return ProfileResponse(user=UserResponse.model_validate(user))
