"""User model for registered accounts."""
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import Enum as SAEnum
from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin, UUIDv7Mixin

if TYPE_CHECKING:
    from models.comment import Comment
    from models.note import Note


class UserRole(str, Enum):
    """OWNER publishes and administers; VISITOR reads and comments."""

    OWNER = "OWNER"
    VISITOR = "VISITOR"


class AuthProvider(str, Enum):
    """Where the account's credentials live."""

    EMAIL = "EMAIL"
    GOOGLE = "GOOGLE"
    GITHUB = "GITHUB"


class User(Base, UUIDv7Mixin, TimestampMixin):
    """User model - email/password or federated accounts."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    # NULL for accounts created through an external identity provider
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    name: Mapped[str] = mapped_column(String(100))
    avatar: Mapped[str | None] = mapped_column(String(500), nullable=True)
    role: Mapped[UserRole] = mapped_column(
        SAEnum(UserRole, name="user_role"),
        default=UserRole.VISITOR,
        server_default=UserRole.VISITOR.value,
    )
    provider: Mapped[AuthProvider] = mapped_column(
        SAEnum(AuthProvider, name="auth_provider"),
        default=AuthProvider.EMAIL,
        server_default=AuthProvider.EMAIL.value,
    )
    provider_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    notes: Mapped[list["Note"]] = relationship(back_populates="author")
    comments: Mapped[list["Comment"]] = relationship(back_populates="author")
