"""Pydantic schemas for category endpoints."""
from datetime import datetime
from uuid import UUID

from pydantic import Field, field_validator

from schemas.base import CamelModel
from schemas.validators import clean_text, validate_color


class CategoryCreate(CamelModel):
    name: str = Field(min_length=2, max_length=50)
    description: str | None = Field(default=None, max_length=200)
    color: str

    @field_validator("name", "description", mode="before")
    @classmethod
    def clean(cls, v: object) -> object:
        return clean_text(v)

    @field_validator("color")
    @classmethod
    def check_color(cls, v: str) -> str:
        return validate_color(v)


class CategoryUpdate(CamelModel):
    """Partial update; omitted fields are left unchanged."""

    name: str | None = Field(default=None, min_length=2, max_length=50)
    description: str | None = Field(default=None, max_length=200)
    color: str | None = None

    @field_validator("name", "description", mode="before")
    @classmethod
    def clean(cls, v: object) -> object:
        return clean_text(v)

    @field_validator("color")
    @classmethod
    def check_color(cls, v: str | None) -> str | None:
        return validate_color(v) if v is not None else None


class CategorySummary(CamelModel):
    id: UUID
    name: str
    slug: str
    color: str


class CategoryResponse(CategorySummary):
    description: str | None = None
    note_count: int = 0
    created_at: datetime
    updated_at: datetime


class CategoryFilterOption(CategorySummary):
    note_count: int
