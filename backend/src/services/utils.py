"""Shared utility functions for service layer."""
import math
import re
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.sanitize import plain_text

EXCERPT_MAX_LENGTH = 200

_SLUG_SEPARATORS = re.compile(r"[^a-z0-9]+")

# Order matters: fenced blocks go before inline code so their backticks are not
# consumed by the inline pattern.
_MARKDOWN_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"```[\s\S]*?```"), ""),
    (re.compile(r"#{1,6}\s+"), ""),
    (re.compile(r"\*\*(.*?)\*\*"), r"\1"),
    (re.compile(r"\*(.*?)\*"), r"\1"),
    (re.compile(r"`(.*?)`"), r"\1"),
    (re.compile(r"\[([^\]]+)\]\([^)]+\)"), r"\1"),
    (re.compile(r"\s+"), " "),
)


def escape_ilike(value: str) -> str:
    r"""
    Escape special ILIKE characters for safe use in LIKE/ILIKE patterns.

    LIKE/ILIKE treats these characters specially:
    - % matches any sequence of characters
    - _ matches any single character
    - \\ is the escape character

    This function escapes them so they match literally.
    """
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def slugify(text: str, fallback: str = "item") -> str:
    """Lower-case, turn runs of non-alphanumerics into single hyphens, trim hyphens."""
    slug = _SLUG_SEPARATORS.sub("-", text.lower()).strip("-")
    return slug or fallback


async def generate_unique_slug(
    db: AsyncSession,
    model: Any,
    text: str,
    exclude_id: UUID | None = None,
    fallback: str = "item",
) -> str:
    """
    Return a slug for `text` unused by any row of `model`.

    On collision appends -1, -2, ... until free. The loop is bounded only by
    uniqueness. `exclude_id` lets a row keep its own slug when renamed.
    The unique constraint on the slug column remains the final guard.
    """
    base_slug = slugify(text, fallback)
    slug = base_slug
    counter = 1
    while await _slug_taken(db, model, slug, exclude_id):
        slug = f"{base_slug}-{counter}"
        counter += 1
    return slug


async def _slug_taken(
    db: AsyncSession, model: Any, slug: str, exclude_id: UUID | None,
) -> bool:
    query = select(model.id).where(model.slug == slug)
    if exclude_id is not None:
        query = query.where(model.id != exclude_id)
    result = await db.execute(query.limit(1))
    return result.first() is not None


def create_excerpt(content: str, max_length: int = EXCERPT_MAX_LENGTH) -> str:
    """
    Build a plain-text excerpt from markdown or sanitized HTML content.

    Flattens HTML to text, strips headers, emphasis, code and link markup
    (keeping link text), folds whitespace runs into single spaces, then
    truncates at the last whole word within `max_length` and appends "..."
    if anything was cut.
    """
    plain = plain_text(content)
    for pattern, replacement in _MARKDOWN_RULES:
        plain = pattern.sub(replacement, plain)
    plain = plain.strip()

    if len(plain) <= max_length:
        return plain

    truncated = plain[:max_length]
    last_space = truncated.rfind(" ")
    if last_space > 0:
        return truncated[:last_space] + "..."
    return truncated + "..."


def pagination_meta(total: int, page: int, limit: int) -> dict[str, int | bool]:
    """
    Compute pagination fields for a page of results.

    totalPages = ceil(total / limit), hasNext iff page * limit < total,
    hasPrev iff page > 1.
    """
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": math.ceil(total / limit) if limit > 0 else 0,
        "has_next": page * limit < total,
        "has_prev": page > 1,
    }
