"""Pydantic schemas for comment endpoints."""
from datetime import datetime
from uuid import UUID

from pydantic import Field, field_validator

from schemas.base import CamelModel
from schemas.validators import clean_text


class CommentCreate(CamelModel):
    content: str = Field(min_length=3, max_length=1000)
    parent_id: UUID | None = None

    @field_validator("content", mode="before")
    @classmethod
    def clean_content(cls, v: object) -> object:
        return clean_text(v)


class CommentUpdate(CamelModel):
    content: str = Field(min_length=3, max_length=1000)

    @field_validator("content", mode="before")
    @classmethod
    def clean_content(cls, v: object) -> object:
        return clean_text(v)


class CommentAuthor(CamelModel):
    id: UUID
    name: str
    avatar: str | None = None


class ReplyResponse(CamelModel):
    id: UUID
    content: str
    note_id: UUID
    author_id: UUID
    parent_id: UUID | None = None
    author: CommentAuthor
    created_at: datetime
    updated_at: datetime


class CommentResponse(ReplyResponse):
    """A top-level comment with its replies, oldest first."""

    replies: list[ReplyResponse] = Field(default_factory=list)
