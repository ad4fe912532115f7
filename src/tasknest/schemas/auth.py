"""Authentication schemas."""

from pydantic import EmailStr, Field, field_validator

from tasknest.schemas.base import BaseSchema


class UserCreate(BaseSchema):
    """Schema for user registration."""

    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    name: str = Field(..., max_length=100)

    @field_validator("email")
    @classmethod
    def lower_email(cls, value: str) -> str:
        return value.lower()

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Name is required")
        return value


class UserLogin(BaseSchema):
    """Schema for user login."""

    email: EmailStr
    password: str

    @field_validator("email")
    @classmethod
    def lower_email(cls, value: str) -> str:
        return value.lower()


class UserResponse(BaseSchema):
    """Schema for user responses (no password)."""

    id: str
    email: str
    name: str


class AuthResponse(BaseSchema):
    """Schema returned by register and login."""

    user: UserResponse
    token: str


class ProfileResponse(BaseSchema):
    """Schema returned by the profile endpoint."""

    user: UserResponse
