"""Tag model and the notes-to-tags junction table."""
from typing import TYPE_CHECKING

from sqlalchemy import Column, ForeignKey, Index, String, Table, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin, UUIDv7Mixin

if TYPE_CHECKING:
    from models.note import Note


# Junction table for many-to-many relationship between notes and tags
note_tags = Table(
    "note_tags",
    Base.metadata,
    Column(
        "note_id",
        Uuid,
        ForeignKey("notes.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "tag_id",
        Uuid,
        ForeignKey("tags.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    # Index for lookups by tag (composite PK already indexes note_id first)
    Index("ix_note_tags_tag_id", "tag_id"),
)


class Tag(Base, UUIDv7Mixin, TimestampMixin):
    """Tag model - global tags shared by all notes."""

    __tablename__ = "tags"

    name: Mapped[str] = mapped_column(String(30), unique=True)
    slug: Mapped[str] = mapped_column(String(40), unique=True, index=True)

    notes: Mapped[list["Note"]] = relationship(
        secondary=note_tags,
        back_populates="tags",
        passive_deletes=True,
    )
