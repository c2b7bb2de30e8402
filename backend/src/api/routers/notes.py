"""Note endpoints: listing, search, detail, writes and anonymous likes."""
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    NOTE_RESOURCE,
    RequireOwnership,
    get_async_session,
    get_client_ip,
    get_optional_user,
    get_response_cache,
    require_owner,
)
from api.helpers import commit_and_invalidate, parse_params
from core.cache import CacheKeys, CacheTTL, Invalidate, ResponseCache
from models.user import User, UserRole
from schemas.base import ApiResponse, Page, success
from schemas.note import (
    FilterOptions,
    LikeStatus,
    NoteCreate,
    NoteDetail,
    NoteListItem,
    NoteListParams,
    NoteUpdate,
    SearchParams,
    SearchResults,
)
from services import note_service
from services.exceptions import NoteNotFoundError

router = APIRouter(prefix="/notes", tags=["notes"])


def note_list_params(
    page: str | None = None,
    limit: str | None = None,
    search: str | None = None,
    category_id: str | None = Query(default=None, alias="categoryId"),
    tag_ids: str | None = Query(default=None, alias="tagIds"),
    sort_by: str | None = Query(default=None, alias="sortBy"),
    sort_order: str | None = Query(default=None, alias="sortOrder"),
) -> NoteListParams:
    return parse_params(
        NoteListParams,
        page=page,
        limit=limit,
        search=search,
        category_id=category_id,
        tag_ids=tag_ids,
        sort_by=sort_by,
        sort_order=sort_order,
    )


def search_params(q: str | None = None, limit: str | None = None) -> SearchParams:
    return parse_params(SearchParams, q=q, limit=limit)


@router.get("", response_model=ApiResponse[Page[NoteListItem]])
async def list_notes(
    params: NoteListParams = Depends(note_list_params),
    db: AsyncSession = Depends(get_async_session),
    cache: ResponseCache = Depends(get_response_cache),
) -> dict:
    """
    Paginated published notes.

    `search` requires every whitespace-separated term to appear in the title,
    content or excerpt. `tagIds` (comma-separated) requires ALL listed tags.
    Unknown `sortBy` values fall back to `createdAt`.
    """
    key = CacheKeys.notes_list(
        {
            "page": params.page,
            "limit": params.limit,
            "search": params.search.lower() if params.search else None,
            "categoryId": params.category_id,
            "tagIds": params.tag_ids or None,
            "sortBy": params.sort_by,
            "sortOrder": params.sort_order,
        },
    )
    data = await cache.get_or_compute(
        key, CacheTTL.MEDIUM, lambda: note_service.list_notes(db, params),
    )
    return success(data)


@router.get("/search", response_model=ApiResponse[SearchResults])
async def search_notes(
    params: SearchParams = Depends(search_params),
    db: AsyncSession = Depends(get_async_session),
    cache: ResponseCache = Depends(get_response_cache),
) -> dict:
    """Title/tag suggestions plus matching notes. Queries under 2 characters match nothing."""
    key = CacheKeys.search_results({"q": params.q.lower(), "limit": params.limit})
    data = await cache.get_or_compute(
        key, CacheTTL.SHORT, lambda: note_service.search_notes(db, params.q, params.limit),
    )
    return success(data)


@router.get("/filters", response_model=ApiResponse[FilterOptions])
async def get_filters(
    db: AsyncSession = Depends(get_async_session),
    cache: ResponseCache = Depends(get_response_cache),
) -> dict:
    """Categories and tags that have published notes, with counts."""
    data = await cache.get_or_compute(
        CacheKeys.FILTERS, CacheTTL.LONG, lambda: note_service.get_filter_options(db),
    )
    return success(data)


@router.get("/{note_id}", response_model=ApiResponse[NoteDetail])
async def get_note(
    note_id: UUID,
    current_user: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_session),
    cache: ResponseCache = Depends(get_response_cache),
) -> dict:
    """
    A note with its comments. Unpublished notes are visible to OWNER users only;
    everyone else gets 404.
    """
    data = await cache.get_or_compute(
        CacheKeys.note_detail(note_id),
        CacheTTL.MEDIUM,
        lambda: note_service.get_note_detail(db, note_id),
    )
    is_owner = current_user is not None and current_user.role == UserRole.OWNER
    if not data.get("published") and not is_owner:
        raise NoteNotFoundError()
    return success(data)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_note(
    data: NoteCreate,
    current_user: User = Depends(require_owner),
    db: AsyncSession = Depends(get_async_session),
    cache: ResponseCache = Depends(get_response_cache),
) -> dict:
    """Create a note (OWNER). Slug and excerpt are generated."""
    note = await note_service.create_note(db, current_user.id, data)
    await commit_and_invalidate(db, cache, Invalidate.NOTE_CREATE)
    return success(note, "Note created successfully")


@router.put(
    "/{note_id}",
    dependencies=[Depends(require_owner), Depends(RequireOwnership(NOTE_RESOURCE))],
)
async def update_note(
    note_id: UUID,
    data: NoteUpdate,
    db: AsyncSession = Depends(get_async_session),
    cache: ResponseCache = Depends(get_response_cache),
) -> dict:
    """Partially update a note (OWNER). `tagIds` replaces the whole tag set."""
    note = await note_service.update_note(db, note_id, data)
    await commit_and_invalidate(db, cache, Invalidate.NOTE_WRITE)
    return success(note, "Note updated successfully")


@router.delete(
    "/{note_id}",
    dependencies=[Depends(require_owner), Depends(RequireOwnership(NOTE_RESOURCE))],
)
async def delete_note(
    note_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    cache: ResponseCache = Depends(get_response_cache),
) -> dict:
    """Delete a note with its comments and likes (OWNER)."""
    await note_service.delete_note(db, note_id)
    await commit_and_invalidate(db, cache, Invalidate.NOTE_WRITE)
    return success(None, "Note deleted successfully")


@router.get("/{note_id}/like-status", response_model=ApiResponse[LikeStatus])
async def get_like_status(
    note_id: UUID,
    client_ip: str = Depends(get_client_ip),
    db: AsyncSession = Depends(get_async_session),
) -> dict:
    """Whether the caller's IP has liked the note."""
    return success(await note_service.get_like_status(db, note_id, client_ip))


@router.post("/{note_id}/like", response_model=ApiResponse[LikeStatus])
async def like_note(
    note_id: UUID,
    client_ip: str = Depends(get_client_ip),
    db: AsyncSession = Depends(get_async_session),
    cache: ResponseCache = Depends(get_response_cache),
) -> dict:
    """Anonymous like, once per IP. A repeat returns 400 DUPLICATE_LIKE."""
    data = await note_service.add_like(db, note_id, client_ip)
    await commit_and_invalidate(db, cache, Invalidate.NOTE_LIKE)
    return success(data, "Like added successfully")
