"""Pydantic schemas for note endpoints."""
from datetime import datetime
from uuid import UUID

from pydantic import Field, field_validator

from schemas.base import CamelModel
from schemas.category import CategoryFilterOption, CategorySummary
from schemas.comment import CommentResponse
from schemas.tag import TagFilterOption, TagSummary
from schemas.validators import clean_rich_text, clean_text, normalize_search

MAX_TAGS_PER_NOTE = 20


def _dedupe(ids: list[UUID]) -> list[UUID]:
    return list(dict.fromkeys(ids))


class NoteCreate(CamelModel):
    """Schema for creating a new note."""

    title: str = Field(min_length=3, max_length=200)
    content: str = Field(min_length=10, max_length=10_000)
    category_id: UUID
    tag_ids: list[UUID] = Field(default_factory=list, max_length=MAX_TAGS_PER_NOTE)
    published: bool = True

    @field_validator("title", mode="before")
    @classmethod
    def clean_title(cls, v: object) -> object:
        return clean_text(v)

    @field_validator("content", mode="before")
    @classmethod
    def clean_content(cls, v: object) -> object:
        return clean_rich_text(v)

    @field_validator("tag_ids")
    @classmethod
    def dedupe_tags(cls, v: list[UUID]) -> list[UUID]:
        return _dedupe(v)


class NoteUpdate(CamelModel):
    """
    Partial update. Omitted fields are unchanged; `tagIds`, when present,
    replaces the note's whole tag set.
    """

    title: str | None = Field(default=None, min_length=3, max_length=200)
    content: str | None = Field(default=None, min_length=10, max_length=10_000)
    category_id: UUID | None = None
    tag_ids: list[UUID] | None = Field(default=None, max_length=MAX_TAGS_PER_NOTE)
    published: bool | None = None

    @field_validator("title", mode="before")
    @classmethod
    def clean_title(cls, v: object) -> object:
        return clean_text(v)

    @field_validator("content", mode="before")
    @classmethod
    def clean_content(cls, v: object) -> object:
        return clean_rich_text(v)

    @field_validator("tag_ids")
    @classmethod
    def dedupe_tags(cls, v: list[UUID] | None) -> list[UUID] | None:
        return _dedupe(v) if v is not None else None


class NoteListParams(CamelModel):
    """
    Query parameters for the note listing.

    `sort_by` and `sort_order` are free-form here; unknown values fall back to
    the defaults when the query is built.
    """

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    search: str | None = Field(default=None, max_length=200)
    category_id: UUID | None = None
    tag_ids: list[UUID] = Field(default_factory=list)
    sort_by: str = "createdAt"
    sort_order: str = "desc"

    @field_validator("search", mode="before")
    @classmethod
    def clean_search(cls, v: object) -> object:
        return normalize_search(v)

    @field_validator("category_id", mode="before")
    @classmethod
    def blank_category(cls, v: object) -> object:
        return None if isinstance(v, str) and not v.strip() else v

    @field_validator("tag_ids", mode="before")
    @classmethod
    def split_tag_ids(cls, v: object) -> object:
        """Accept a comma-separated string (`tagIds=a,b`) or repeated values."""
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        if isinstance(v, list):
            parts = []
            for item in v:
                if isinstance(item, str):
                    parts.extend(p.strip() for p in item.split(",") if p.strip())
                else:
                    parts.append(item)
            return parts
        return v

    @field_validator("tag_ids")
    @classmethod
    def dedupe_tags(cls, v: list[UUID]) -> list[UUID]:
        return _dedupe(v)


class SearchParams(CamelModel):
    q: str = Field(default="", max_length=100)
    limit: int = Field(default=5, ge=1, le=20)

    @field_validator("q", mode="before")
    @classmethod
    def clean_q(cls, v: object) -> object:
        return normalize_search(v) or ""


class AuthorSummary(CamelModel):
    id: UUID
    name: str
    avatar: str | None = None


class NoteListItem(CamelModel):
    """A note as shown in listings (no body, no comments)."""

    id: UUID
    title: str
    slug: str
    excerpt: str
    published: bool
    like_count: int
    comment_count: int = 0
    author_id: UUID
    category_id: UUID
    author: AuthorSummary
    category: CategorySummary
    tags: list[TagSummary]
    created_at: datetime
    updated_at: datetime


class NoteCategoryDetail(CategorySummary):
    description: str | None = None


class NoteDetail(NoteListItem):
    """A single note with its body and top-level comments (each with replies)."""

    content: str
    category: NoteCategoryDetail
    comments: list[CommentResponse] = Field(default_factory=list)


class LikeStatus(CamelModel):
    note_id: UUID
    like_count: int
    liked: bool


class SearchResults(CamelModel):
    query: str
    suggestions: list[str]
    notes: list[NoteListItem]
    total_found: int = 0


class FilterOptions(CamelModel):
    categories: list[CategoryFilterOption]
    tags: list[TagFilterOption]
