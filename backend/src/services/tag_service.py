"""Service layer for tag operations."""
import logging
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from models.note import Note
from models.tag import Tag, note_tags
from schemas.base import dump
from schemas.tag import (
    TagBulkResult,
    TagBulkSummary,
    TagListParams,
    TagResponse,
    TagSkip,
    TagSummary,
    TagSuggestionParams,
)
from services.exceptions import TagExistsError, TagInUseError, TagNotFoundError
from services.utils import escape_ilike, generate_unique_slug, pagination_meta

logger = logging.getLogger(__name__)


def _published_count():
    """Correlated count of published notes carrying the tag."""
    return (
        select(func.count(note_tags.c.note_id))
        .join(Note, Note.id == note_tags.c.note_id)
        .where(note_tags.c.tag_id == Tag.id, Note.published.is_(True))
        .correlate(Tag)
        .scalar_subquery()
    )


def _tag_response(tag: Tag, note_count: int) -> dict:
    return dump(
        TagResponse(
            **TagSummary.model_validate(tag).model_dump(),
            note_count=note_count,
            created_at=tag.created_at,
            updated_at=tag.updated_at,
        ),
    )


async def list_tags(db: AsyncSession, params: TagListParams) -> dict:
    """Page of tags, most used first, optionally filtered by a name substring."""
    count_col = _published_count().label("note_count")
    base_query = select(Tag)
    if params.search:
        base_query = base_query.where(
            Tag.name.ilike(f"%{escape_ilike(params.search)}%", escape="\\"),
        )
    total = (
        await db.execute(select(func.count()).select_from(base_query.subquery()))
    ).scalar() or 0

    rows = await db.execute(
        base_query.add_columns(count_col)
        .order_by(count_col.desc(), Tag.name.asc())
        .offset((params.page - 1) * params.limit)
        .limit(params.limit),
    )
    meta = pagination_meta(total, params.page, params.limit)
    return {
        "data": [_tag_response(tag, count) for tag, count in rows.all()],
        "page": meta["page"],
        "limit": meta["limit"],
        "total": meta["total"],
        "totalPages": meta["total_pages"],
        "hasNext": meta["has_next"],
        "hasPrev": meta["has_prev"],
    }


async def suggest_tags(db: AsyncSession, params: TagSuggestionParams) -> list[dict]:
    """Autocomplete: tags whose name contains `q`."""
    if not params.q:
        return []
    count_col = _published_count().label("note_count")
    rows = await db.execute(
        select(Tag, count_col)
        .where(Tag.name.ilike(f"%{escape_ilike(params.q)}%", escape="\\"))
        .order_by(Tag.name.asc(), count_col.desc())
        .limit(params.limit),
    )
    return [_tag_response(tag, count) for tag, count in rows.all()]


async def _get_tag_with_count(db: AsyncSession, tag_id: UUID) -> tuple[Tag, int]:
    row = (
        await db.execute(
            select(Tag, _published_count().label("note_count")).where(Tag.id == tag_id),
        )
    ).first()
    if row is None:
        raise TagNotFoundError()
    return row[0], row[1]


async def get_tag(db: AsyncSession, tag_id: UUID) -> dict:
    tag, count = await _get_tag_with_count(db, tag_id)
    return _tag_response(tag, count)


async def _name_taken(db: AsyncSession, name: str, exclude_id: UUID | None = None) -> bool:
    query = select(Tag.id).where(func.lower(Tag.name) == name.lower())
    if exclude_id is not None:
        query = query.where(Tag.id != exclude_id)
    return (await db.execute(query.limit(1))).first() is not None


async def _flush_tag(db: AsyncSession, tag: Tag) -> None:
    """Flush inside a savepoint so a lost uniqueness race maps to TAG_EXISTS."""
    try:
        async with db.begin_nested():
            db.add(tag)
    except IntegrityError as e:
        raise TagExistsError() from e


async def create_tag(db: AsyncSession, name: str) -> dict:
    """
    Create a tag. Names are unique case-insensitively.

    Raises:
        TagExistsError: If a tag with this name already exists.
    """
    if await _name_taken(db, name):
        raise TagExistsError()
    tag = Tag(name=name, slug=await generate_unique_slug(db, Tag, name, fallback="tag"))
    await _flush_tag(db, tag)
    logger.info("tag_created", extra={"tag": name})
    return _tag_response(tag, 0)


async def bulk_create_tags(db: AsyncSession, names: list[str]) -> dict:
    """Create every name that does not exist yet; existing names are reported as skipped."""
    first_seen: dict[str, str] = {}
    for name in names:
        first_seen.setdefault(name.lower(), name)
    unique_names = list(first_seen.values())
    existing = await db.execute(
        select(Tag.name).where(func.lower(Tag.name).in_([n.lower() for n in unique_names])),
    )
    existing_names = list(existing.scalars())
    existing_lower = {n.lower() for n in existing_names}

    created: list[TagSummary] = []
    skipped: list[TagSkip] = [TagSkip(name=n, reason="Already exists") for n in existing_names]
    for name in unique_names:
        if name.lower() in existing_lower:
            continue
        tag = Tag(name=name, slug=await generate_unique_slug(db, Tag, name, fallback="tag"))
        try:
            await _flush_tag(db, tag)
        except TagExistsError:
            skipped.append(TagSkip(name=name, reason="Already exists"))
            continue
        created.append(TagSummary.model_validate(tag))

    return dump(
        TagBulkResult(
            created=created,
            skipped=skipped,
            summary=TagBulkSummary(
                total_requested=len(unique_names),
                created=len(created),
                skipped=len(skipped),
            ),
        ),
    )


async def update_tag(db: AsyncSession, tag_id: UUID, name: str) -> dict:
    """
    Rename a tag; the slug follows the name.

    Raises:
        TagNotFoundError: If the tag does not exist.
        TagExistsError: If another tag already has this name.
    """
    tag, count = await _get_tag_with_count(db, tag_id)
    if name != tag.name:
        if await _name_taken(db, name, exclude_id=tag.id):
            raise TagExistsError()
        tag.name = name
        tag.slug = await generate_unique_slug(db, Tag, name, exclude_id=tag.id, fallback="tag")
        await _flush_tag(db, tag)
    return _tag_response(tag, count)


async def delete_tag(db: AsyncSession, tag_id: UUID) -> None:
    """
    Delete a tag that no note uses.

    Raises:
        TagNotFoundError: If the tag does not exist.
        TagInUseError: If any note (published or not) carries the tag.
    """
    tag, _ = await _get_tag_with_count(db, tag_id)
    usage = await db.scalar(
        select(func.count()).select_from(note_tags).where(note_tags.c.tag_id == tag_id),
    )
    if usage:
        raise TagInUseError(usage)
    await db.delete(tag)
    await db.flush()
