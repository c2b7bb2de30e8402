"""Note model for published markdown posts."""
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin, UUIDv7Mixin
from models.tag import note_tags

if TYPE_CHECKING:
    from models.category import Category
    from models.comment import Comment
    from models.like import Like
    from models.tag import Tag
    from models.user import User


class Note(Base, UUIDv7Mixin, TimestampMixin):
    """Note model - markdown content with category, tags, comments and likes."""

    __tablename__ = "notes"

    title: Mapped[str] = mapped_column(String(200))
    slug: Mapped[str] = mapped_column(String(220), unique=True, index=True)
    content: Mapped[str] = mapped_column(Text)
    excerpt: Mapped[str] = mapped_column(String(210), default="")
    published: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    # Denormalized count of likes rows; only ever changed with an in-database increment
    like_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    # Never reassigned after creation
    author_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
    )
    category_id: Mapped[UUID] = mapped_column(
        ForeignKey("categories.id"),
        index=True,
    )

    author: Mapped["User"] = relationship(back_populates="notes")
    category: Mapped["Category"] = relationship(back_populates="notes")
    tags: Mapped[list["Tag"]] = relationship(
        secondary=note_tags,
        back_populates="notes",
    )
    comments: Mapped[list["Comment"]] = relationship(
        back_populates="note",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    likes: Mapped[list["Like"]] = relationship(
        back_populates="note",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
