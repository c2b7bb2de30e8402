"""Pydantic schemas for authentication and user administration."""
from datetime import datetime
from uuid import UUID

from pydantic import Field, field_validator

from core.security import BCRYPT_MAX_PASSWORD_BYTES, is_valid_email, is_valid_password
from models.user import AuthProvider, UserRole
from schemas.base import CamelModel
from schemas.validators import NAME_PATTERN, clean_text, normalize_search


def _normalize_email(value: object) -> object:
    if not isinstance(value, str):
        return value
    email = value.strip().lower()
    if not is_valid_email(email):
        raise ValueError("Please enter a valid email address")
    return email


class RegisterRequest(CamelModel):
    """Schema for creating an account with email and password."""

    name: str = Field(min_length=2, max_length=50)
    email: str = Field(max_length=255)
    password: str

    @field_validator("name", mode="before")
    @classmethod
    def clean_name(cls, v: object) -> object:
        return clean_text(v)

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str) -> str:
        if not NAME_PATTERN.match(v):
            raise ValueError("Name can only contain letters and spaces")
        return v

    @field_validator("email", mode="before")
    @classmethod
    def check_email(cls, v: object) -> object:
        return _normalize_email(v)

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        """At least 8 characters with a letter and a digit; bcrypt's byte limit applies."""
        if len(v.encode("utf-8")) > BCRYPT_MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes")
        if not is_valid_password(v):
            raise ValueError(
                "Password must be at least 8 characters and contain a letter and a number",
            )
        return v


class LoginRequest(CamelModel):
    email: str = Field(max_length=255)
    password: str = Field(min_length=1, max_length=1024)

    @field_validator("email", mode="before")
    @classmethod
    def lower_email(cls, v: object) -> object:
        # No shape check here: unknown and malformed emails fail the same way
        return v.strip().lower() if isinstance(v, str) else v


class UserResponse(CamelModel):
    """The caller's own account."""

    id: UUID
    email: str
    name: str
    avatar: str | None = None
    role: UserRole
    provider: AuthProvider
    created_at: datetime


class AuthResponse(CamelModel):
    user: UserResponse
    token: str


class TokenResponse(CamelModel):
    token: str


class UserAdminItem(UserResponse):
    """A user as listed for OWNER administration."""

    note_count: int = 0
    comment_count: int = 0


class UserListParams(CamelModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    search: str | None = Field(default=None, max_length=100)
    role: UserRole | None = None

    @field_validator("search", mode="before")
    @classmethod
    def clean_search(cls, v: object) -> object:
        return normalize_search(v)


class RoleUpdateRequest(CamelModel):
    role: UserRole
