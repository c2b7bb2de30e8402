"""Pydantic schemas for tag endpoints."""
from datetime import datetime
from uuid import UUID

from pydantic import Field, field_validator

from schemas.base import CamelModel
from schemas.validators import clean_text, normalize_search, validate_tag_name


class TagCreate(CamelModel):
    name: str = Field(min_length=2, max_length=30)

    @field_validator("name", mode="before")
    @classmethod
    def clean_name(cls, v: object) -> object:
        return clean_text(v)

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str) -> str:
        return validate_tag_name(v)


class TagUpdate(TagCreate):
    pass


class TagBulkCreate(CamelModel):
    """Up to 20 tag names; names that already exist are skipped."""

    names: list[str] = Field(min_length=1, max_length=20)

    @field_validator("names")
    @classmethod
    def check_names(cls, v: list[str]) -> list[str]:
        names = []
        for raw in v:
            name = clean_text(raw)
            if not 2 <= len(name) <= 30:
                raise ValueError("Tag names must be 2-30 characters")
            names.append(validate_tag_name(name))
        return names


class TagSummary(CamelModel):
    id: UUID
    name: str
    slug: str


class TagResponse(TagSummary):
    note_count: int = 0
    created_at: datetime
    updated_at: datetime


class TagFilterOption(TagSummary):
    note_count: int


class TagListParams(CamelModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=50, ge=1, le=100)
    search: str | None = Field(default=None, max_length=30)

    @field_validator("search", mode="before")
    @classmethod
    def clean_search(cls, v: object) -> object:
        return normalize_search(v)


class TagSuggestionParams(CamelModel):
    q: str = Field(default="", max_length=30)
    limit: int = Field(default=10, ge=1, le=20)

    @field_validator("q", mode="before")
    @classmethod
    def clean_q(cls, v: object) -> object:
        return normalize_search(v) or ""


class TagSkip(CamelModel):
    name: str
    reason: str


class TagBulkSummary(CamelModel):
    total_requested: int
    created: int
    skipped: int


class TagBulkResult(CamelModel):
    created: list[TagSummary]
    skipped: list[TagSkip]
    summary: TagBulkSummary
