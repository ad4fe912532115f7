"""User registration, password checks and bearer tokens."""

import logging
from datetime import datetime, timedelta, timezone

import bcrypt
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tasknest.config import Settings, get_settings
from tasknest.errors import AuthError, ValidationError
from tasknest.models import User
from tasknest.schemas.auth import UserCreate

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    # bcrypt only looks at the first 72 bytes
    password_bytes = password.encode("utf-8")[:72]
    return bcrypt.hashpw(password_bytes, bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    password_bytes = plain_password.encode("utf-8")[:72]
    return bcrypt.checkpw(password_bytes, hashed_password.encode("utf-8"))


def create_access_token(user_id: str, settings: Settings | None = None) -> str:
    """Issue a signed token whose subject is the user id."""
    settings = settings or get_settings()
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "iat": now,
        "exp": now + timedelta(days=settings.token_expire_days),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: Settings | None = None) -> str:
    """Return the user id carried by a token, or raise ``AuthError``."""
    settings = settings or get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        raise AuthError("Invalid or expired token") from e
    user_id = payload.get("sub")
    if not user_id:
        raise AuthError("Invalid or expired token")
    return user_id


class AuthService:
    """Service for user accounts."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_email(self, email: str) -> User | None:
        result = await self.db.execute(select(User).where(User.email == email.lower()))
        return result.scalar_one_or_none()

    async def get_user(self, user_id: str) -> User | None:
        return await self.db.get(User, user_id)

    async def register(self, data: UserCreate) -> User:
        """Create an account; the email must not be taken."""
        if await self.get_by_email(data.email) is not None:
            raise ValidationError("User already exists with this email")

        user = User(
            email=data.email,
            name=data.name,
            password_hash=hash_password(data.password),
        )
        self.db.add(user)
        try:
            await self.db.flush()
        except IntegrityError as e:
            raise ValidationError("User already exists with this email") from e

        logger.info("User registered", extra={"user_id": user.id})
        return user

    async def authenticate(self, email: str, password: str) -> User:
        """Return the user for valid credentials, otherwise raise ``AuthError``."""
        user = await self.get_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            # Same message either way to avoid account enumeration
            raise AuthError("Invalid email or password")
        return user

    async def user_for_token(self, token: str) -> User:
        """Resolve a bearer token to its user."""
        user = await self.get_user(decode_access_token(token))
        if user is None:
            raise AuthError("Invalid or expired token")
        return user
