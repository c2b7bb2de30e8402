"""Service layer for notes: listing, search, detail, writes and likes."""
import logging
from uuid import UUID

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from models.category import Category
from models.comment import Comment
from models.like import Like
from models.note import Note
from models.tag import Tag, note_tags
from schemas.base import dump
from schemas.category import CategoryFilterOption, CategorySummary
from schemas.note import (
    AuthorSummary,
    FilterOptions,
    LikeStatus,
    NoteCategoryDetail,
    NoteCreate,
    NoteDetail,
    NoteListItem,
    NoteListParams,
    NoteUpdate,
    SearchResults,
)
from schemas.tag import TagFilterOption, TagSummary
from services.comment_service import list_note_comments
from services.exceptions import (
    DuplicateLikeError,
    InvalidCategoryError,
    InvalidTagsError,
    NoteNotFoundError,
    SlugConflictError,
)
from services.note_filters import (
    build_note_filter_spec,
    order_by_clauses,
    resolve_sort,
    to_where_clauses,
)
from services.utils import create_excerpt, escape_ilike, generate_unique_slug, pagination_meta

logger = logging.getLogger(__name__)

MIN_SEARCH_LENGTH = 2
SUGGESTIONS_PER_SOURCE = 3


def _load_options() -> list:
    return [
        selectinload(Note.author),
        selectinload(Note.category),
        selectinload(Note.tags),
    ]


def _sorted_tags(note: Note) -> list[TagSummary]:
    return [TagSummary.model_validate(t) for t in sorted(note.tags, key=lambda t: t.name)]


def _list_item(note: Note, comment_count: int) -> NoteListItem:
    return NoteListItem(
        id=note.id,
        title=note.title,
        slug=note.slug,
        excerpt=note.excerpt,
        published=note.published,
        like_count=note.like_count,
        comment_count=comment_count,
        author_id=note.author_id,
        category_id=note.category_id,
        author=AuthorSummary.model_validate(note.author),
        category=CategorySummary.model_validate(note.category),
        tags=_sorted_tags(note),
        created_at=note.created_at,
        updated_at=note.updated_at,
    )


async def _comment_counts(db: AsyncSession, note_ids: list[UUID]) -> dict[UUID, int]:
    if not note_ids:
        return {}
    result = await db.execute(
        select(Comment.note_id, func.count(Comment.id))
        .where(Comment.note_id.in_(note_ids))
        .group_by(Comment.note_id),
    )
    return dict(result.all())


async def _serialize_list(db: AsyncSession, notes: list[Note]) -> list[dict]:
    counts = await _comment_counts(db, [n.id for n in notes])
    return [dump(_list_item(n, counts.get(n.id, 0))) for n in notes]


async def list_notes(db: AsyncSession, params: NoteListParams) -> dict:
    """
    One page of published notes matching the listing filters.

    Returns the JSON form of `Page[NoteListItem]`.
    """
    spec = build_note_filter_spec(
        search=params.search,
        category_id=params.category_id,
        tag_ids=params.tag_ids,
    )
    base_query = select(Note).where(*to_where_clauses(spec))

    count_query = select(func.count()).select_from(base_query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    sort_by, sort_order = resolve_sort(params.sort_by, params.sort_order)
    query = (
        base_query.options(*_load_options())
        .order_by(*order_by_clauses(sort_by, sort_order))
        .offset((params.page - 1) * params.limit)
        .limit(params.limit)
    )
    notes = list((await db.execute(query)).scalars().all())

    meta = pagination_meta(total, params.page, params.limit)
    return {
        "data": await _serialize_list(db, notes),
        "page": meta["page"],
        "limit": meta["limit"],
        "total": meta["total"],
        "totalPages": meta["total_pages"],
        "hasNext": meta["has_next"],
        "hasPrev": meta["has_prev"],
    }


async def get_note_author_id(db: AsyncSession, note_id: UUID) -> UUID | None:
    """Return the note's author id, or None if the note does not exist."""
    result = await db.execute(select(Note.author_id).where(Note.id == note_id))
    return result.scalar_one_or_none()


async def _get_note(db: AsyncSession, note_id: UUID) -> Note:
    result = await db.execute(
        select(Note)
        .options(*_load_options())
        .where(Note.id == note_id)
        .execution_options(populate_existing=True),
    )
    note = result.scalar_one_or_none()
    if note is None:
        raise NoteNotFoundError()
    return note


async def get_note_detail(db: AsyncSession, note_id: UUID) -> dict:
    """
    Full note payload, regardless of published state.

    Visibility of unpublished notes is decided by the caller so the payload can
    be cached once for every reader.

    Raises:
        NoteNotFoundError: If the note does not exist.
    """
    note = await _get_note(db, note_id)
    comments = await list_note_comments(db, note.id)
    comment_count = (await _comment_counts(db, [note.id])).get(note.id, 0)
    item = _list_item(note, comment_count)
    detail = NoteDetail(
        **item.model_dump(exclude={"category"}),
        category=NoteCategoryDetail.model_validate(note.category),
        content=note.content,
        comments=comments,
    )
    return dump(detail)


async def _resolve_tags(db: AsyncSession, tag_ids: list[UUID]) -> list[Tag]:
    if not tag_ids:
        return []
    result = await db.execute(select(Tag).where(Tag.id.in_(tag_ids)))
    tags = list(result.scalars().all())
    if len(tags) != len(set(tag_ids)):
        found = {t.id for t in tags}
        missing = [str(tid) for tid in tag_ids if tid not in found]
        raise InvalidTagsError(details={"missing": missing})
    return tags


async def _check_category(db: AsyncSession, category_id: UUID) -> None:
    if await db.scalar(select(Category.id).where(Category.id == category_id)) is None:
        raise InvalidCategoryError()


async def _flush_slugged(db: AsyncSession) -> None:
    """Flush, translating a lost slug race into a conflict error."""
    try:
        await db.flush()
    except IntegrityError as e:
        if "slug" in str(e.orig).lower():
            raise SlugConflictError() from e
        raise


async def create_note(db: AsyncSession, author_id: UUID, data: NoteCreate) -> dict:
    """
    Create a note with a unique slug and a generated excerpt.

    Raises:
        InvalidCategoryError: If the category does not exist.
        InvalidTagsError: If any tag id does not exist.
    """
    await _check_category(db, data.category_id)
    tags = await _resolve_tags(db, data.tag_ids)

    note = Note(
        title=data.title,
        slug=await generate_unique_slug(db, Note, data.title, fallback="note"),
        content=data.content,
        excerpt=create_excerpt(data.content),
        published=data.published,
        author_id=author_id,
        category_id=data.category_id,
        tags=tags,
    )
    db.add(note)
    await _flush_slugged(db)
    logger.info("note_created", extra={"note_id": str(note.id), "slug": note.slug})
    return dump(_list_item(await _get_note(db, note.id), 0)) | {"content": note.content}


async def update_note(db: AsyncSession, note_id: UUID, data: NoteUpdate) -> dict:
    """
    Apply a partial update. Field changes and tag replacement share the request's
    transaction, so a failure leaves neither applied.

    Raises:
        NoteNotFoundError: If the note does not exist.
        InvalidCategoryError: If the new category does not exist.
        InvalidTagsError: If any new tag id does not exist.
    """
    note = await _get_note(db, note_id)
    fields = data.model_fields_set

    if "title" in fields and data.title is not None and data.title != note.title:
        note.title = data.title
        note.slug = await generate_unique_slug(
            db, Note, data.title, exclude_id=note.id, fallback="note",
        )
    if "content" in fields and data.content is not None:
        note.content = data.content
        note.excerpt = create_excerpt(data.content)
    if "category_id" in fields and data.category_id is not None:
        await _check_category(db, data.category_id)
        note.category_id = data.category_id
    if "published" in fields and data.published is not None:
        note.published = data.published
    if "tag_ids" in fields and data.tag_ids is not None:
        note.tags = await _resolve_tags(db, data.tag_ids)

    await _flush_slugged(db)
    note = await _get_note(db, note_id)
    comment_count = (await _comment_counts(db, [note.id])).get(note.id, 0)
    return dump(_list_item(note, comment_count)) | {"content": note.content}


async def delete_note(db: AsyncSession, note_id: UUID) -> None:
    """Delete a note; comments and likes go with it."""
    note = await _get_note(db, note_id)
    await db.delete(note)
    await db.flush()
    logger.info("note_deleted", extra={"note_id": str(note_id)})


async def get_like_status(db: AsyncSession, note_id: UUID, ip_address: str) -> dict:
    like_count = await db.scalar(select(Note.like_count).where(Note.id == note_id))
    if like_count is None:
        raise NoteNotFoundError()
    liked = await db.scalar(
        select(Like.id).where(Like.note_id == note_id, Like.ip_address == ip_address),
    )
    return dump(LikeStatus(note_id=note_id, like_count=like_count, liked=liked is not None))


async def add_like(db: AsyncSession, note_id: UUID, ip_address: str) -> dict:
    """
    Record an anonymous like from `ip_address`, once per note.

    The counter is bumped with a single in-database increment so concurrent
    likes cannot lose updates.

    Raises:
        NoteNotFoundError: If the note does not exist.
        DuplicateLikeError: If this IP already liked the note.
    """
    if await db.scalar(select(Note.id).where(Note.id == note_id)) is None:
        raise NoteNotFoundError()

    existing = await db.scalar(
        select(Like.id).where(Like.note_id == note_id, Like.ip_address == ip_address),
    )
    if existing is not None:
        raise DuplicateLikeError()

    try:
        async with db.begin_nested():
            db.add(Like(note_id=note_id, ip_address=ip_address))
    except IntegrityError as e:
        # Lost a race with a concurrent like from the same IP
        raise DuplicateLikeError() from e

    await db.execute(
        update(Note)
        .where(Note.id == note_id)
        .values(like_count=Note.like_count + 1)
        .execution_options(synchronize_session=False),
    )
    like_count = await db.scalar(select(Note.like_count).where(Note.id == note_id))
    return dump(LikeStatus(note_id=note_id, like_count=like_count, liked=True))


async def search_notes(db: AsyncSession, q: str, limit: int) -> dict:
    """
    Quick search: title/tag suggestions plus matching published notes.

    Queries shorter than two characters return empty results.
    """
    if len(q) < MIN_SEARCH_LENGTH:
        return dump(SearchResults(query=q, suggestions=[], notes=[], total_found=0))

    pattern = f"%{escape_ilike(q)}%"
    title_rows = await db.execute(
        select(Note.title)
        .where(Note.published.is_(True), Note.title.ilike(pattern, escape="\\"))
        .order_by(Note.title)
        .limit(SUGGESTIONS_PER_SOURCE),
    )
    tag_rows = await db.execute(
        select(Tag.name)
        .where(Tag.name.ilike(pattern, escape="\\"))
        .order_by(Tag.name)
        .limit(SUGGESTIONS_PER_SOURCE),
    )
    suggestions = list(dict.fromkeys([*title_rows.scalars(), *tag_rows.scalars()]))

    tag_match = (
        select(note_tags.c.note_id)
        .join(Tag, Tag.id == note_tags.c.tag_id)
        .where(note_tags.c.note_id == Note.id, Tag.name.ilike(pattern, escape="\\"))
        .exists()
    )
    result = await db.execute(
        select(Note)
        .options(*_load_options())
        .where(
            Note.published.is_(True),
            or_(
                Note.title.ilike(pattern, escape="\\"),
                Note.content.ilike(pattern, escape="\\"),
                Note.excerpt.ilike(pattern, escape="\\"),
                tag_match,
            ),
        )
        .order_by(Note.title.asc(), Note.created_at.desc())
        .limit(limit),
    )
    notes = list(result.scalars().all())
    return dump(
        SearchResults(
            query=q,
            suggestions=suggestions,
            notes=await _serialize_list(db, notes),
            total_found=len(notes),
        ),
    )


async def get_filter_options(db: AsyncSession) -> dict:
    """Categories and tags that have at least one published note, with counts."""
    category_rows = await db.execute(
        select(Category, func.count(Note.id).label("note_count"))
        .join(Note, Note.category_id == Category.id)
        .where(Note.published.is_(True))
        .group_by(Category.id)
        .order_by(Category.name),
    )
    tag_rows = await db.execute(
        select(Tag, func.count(Note.id).label("note_count"))
        .join(note_tags, note_tags.c.tag_id == Tag.id)
        .join(Note, Note.id == note_tags.c.note_id)
        .where(Note.published.is_(True))
        .group_by(Tag.id)
        .order_by(Tag.name),
    )
    return dump(
        FilterOptions(
            categories=[
                CategoryFilterOption(
                    **CategorySummary.model_validate(c).model_dump(), note_count=count,
                )
                for c, count in category_rows.all()
            ],
            tags=[
                TagFilterOption(**TagSummary.model_validate(t).model_dump(), note_count=count)
                for t, count in tag_rows.all()
            ],
        ),
    )
