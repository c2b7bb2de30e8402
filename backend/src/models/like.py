"""Anonymous like, de-duplicated per (note, client IP)."""
from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, UUIDv7Mixin, utc_now

if TYPE_CHECKING:
    from models.note import Note


class Like(Base, UUIDv7Mixin):
    """One row per IP address that liked a note."""

    __tablename__ = "likes"
    __table_args__ = (
        UniqueConstraint("note_id", "ip_address", name="uq_likes_note_id_ip_address"),
    )

    note_id: Mapped[UUID] = mapped_column(
        ForeignKey("notes.id", ondelete="CASCADE"),
        index=True,
    )
    # Long enough for IPv6
    ip_address: Mapped[str] = mapped_column(String(45))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        nullable=False,
    )

    note: Mapped["Note"] = relationship(back_populates="likes")
