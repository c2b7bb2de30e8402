"""SQLAlchemy models."""
from models.base import Base, TimestampMixin, UUIDv7Mixin
from models.tag import Tag, note_tags  # Must be before note due to import
from models.category import Category
from models.comment import Comment
from models.like import Like
from models.note import Note
from models.user import AuthProvider, User, UserRole

__all__ = [
    "AuthProvider",
    "Base",
    "Category",
    "Comment",
    "Like",
    "Note",
    "Tag",
    "TimestampMixin",
    "UUIDv7Mixin",
    "User",
    "UserRole",
    "note_tags",
]
