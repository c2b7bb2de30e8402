"""
Filter specifications for note queries.

Filters are built as plain values from validated request parameters, then
translated once into SQLAlchemy clauses. Keeping the two steps apart lets the
composition rules (AND across dimensions, AND across search terms with OR
across fields, ALL of the requested tags) be tested without a database.
"""
from dataclasses import dataclass
from typing import Literal
from uuid import UUID

from sqlalchemy import ColumnElement, and_, or_, select
from sqlalchemy.orm import InstrumentedAttribute

from models.note import Note
from models.tag import note_tags
from services.utils import escape_ilike


@dataclass(frozen=True)
class PublishedOnly:
    pass


@dataclass(frozen=True)
class TextSearch:
    """Every term must match at least one of title, content or excerpt."""

    terms: tuple[str, ...]


@dataclass(frozen=True)
class CategoryEquals:
    category_id: UUID


@dataclass(frozen=True)
class HasAllTags:
    """The note must carry every one of these tags."""

    tag_ids: tuple[UUID, ...]


NoteFilter = PublishedOnly | TextSearch | CategoryEquals | HasAllTags

SortOrder = Literal["asc", "desc"]

DEFAULT_SORT = "createdAt"

SORT_COLUMNS: dict[str, InstrumentedAttribute] = {
    "createdAt": Note.created_at,
    "title": Note.title,
    "likeCount": Note.like_count,
    "updatedAt": Note.updated_at,
}


def build_note_filter_spec(
    search: str | None = None,
    category_id: UUID | None = None,
    tag_ids: list[UUID] | tuple[UUID, ...] = (),
    published_only: bool = True,
) -> list[NoteFilter]:
    """Turn listing parameters into a list of filter clauses, all of which must hold."""
    spec: list[NoteFilter] = []
    if published_only:
        spec.append(PublishedOnly())
    if search:
        terms = tuple(search.split())
        if terms:
            spec.append(TextSearch(terms))
    if category_id is not None:
        spec.append(CategoryEquals(category_id))
    if tag_ids:
        spec.append(HasAllTags(tuple(dict.fromkeys(tag_ids))))
    return spec


def _term_clause(term: str) -> ColumnElement[bool]:
    pattern = f"%{escape_ilike(term)}%"
    return or_(
        Note.title.ilike(pattern, escape="\\"),
        Note.content.ilike(pattern, escape="\\"),
        Note.excerpt.ilike(pattern, escape="\\"),
    )


def to_where_clauses(spec: list[NoteFilter]) -> list[ColumnElement[bool]]:
    """Translate a filter spec into SQLAlchemy WHERE clauses."""
    clauses: list[ColumnElement[bool]] = []
    for item in spec:
        match item:
            case PublishedOnly():
                clauses.append(Note.published.is_(True))
            case TextSearch(terms=terms):
                clauses.append(and_(*(_term_clause(term) for term in terms)))
            case CategoryEquals(category_id=category_id):
                clauses.append(Note.category_id == category_id)
            case HasAllTags(tag_ids=tag_ids):
                clauses.extend(
                    select(note_tags.c.note_id)
                    .where(
                        note_tags.c.note_id == Note.id,
                        note_tags.c.tag_id == tag_id,
                    )
                    .exists()
                    for tag_id in tag_ids
                )
    return clauses


def resolve_sort(sort_by: str | None, sort_order: str | None) -> tuple[str, SortOrder]:
    """Unknown sort keys fall back to createdAt and unknown orders to desc."""
    key = sort_by if sort_by in SORT_COLUMNS else DEFAULT_SORT
    order: SortOrder = "asc" if (sort_order or "").lower() == "asc" else "desc"
    return key, order


def order_by_clauses(sort_by: str, sort_order: SortOrder) -> list:
    """ORDER BY for a resolved sort, with id as a stable tiebreaker."""
    column = SORT_COLUMNS[sort_by]
    if sort_order == "asc":
        return [column.asc(), Note.id.asc()]
    return [column.desc(), Note.id.desc()]
