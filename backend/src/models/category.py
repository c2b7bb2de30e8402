"""Category model - global, ownerless grouping for notes."""
from typing import TYPE_CHECKING

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin, UUIDv7Mixin

if TYPE_CHECKING:
    from models.note import Note


class Category(Base, UUIDv7Mixin, TimestampMixin):
    """Each note belongs to exactly one category."""

    __tablename__ = "categories"

    name: Mapped[str] = mapped_column(String(50), unique=True)
    slug: Mapped[str] = mapped_column(String(60), unique=True, index=True)
    description: Mapped[str | None] = mapped_column(String(200), nullable=True)
    color: Mapped[str] = mapped_column(String(7), default="#3B82F6")

    notes: Mapped[list["Note"]] = relationship(back_populates="category", passive_deletes=True)
