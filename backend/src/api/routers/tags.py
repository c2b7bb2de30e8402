"""Tag endpoints. Reads are public; writes require the OWNER role."""
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_response_cache, require_owner
from api.helpers import commit_and_invalidate, parse_params
from core.cache import CacheKeys, CacheTTL, Invalidate, ResponseCache
from schemas.base import ApiResponse, Page, success
from schemas.tag import (
    TagBulkCreate,
    TagBulkResult,
    TagCreate,
    TagResponse,
    TagListParams,
    TagSuggestionParams,
    TagSummary,
    TagUpdate,
)
from services import tag_service

router = APIRouter(prefix="/tags", tags=["tags"])


def tag_list_params(
    page: str | None = None,
    limit: str | None = None,
    search: str | None = None,
) -> TagListParams:
    return parse_params(TagListParams, page=page, limit=limit, search=search)


def tag_suggestion_params(q: str | None = None, limit: str | None = None) -> TagSuggestionParams:
    return parse_params(TagSuggestionParams, q=q, limit=limit)


@router.get("", response_model=ApiResponse[Page[TagResponse]])
async def list_tags(
    params: TagListParams = Depends(tag_list_params),
    db: AsyncSession = Depends(get_async_session),
    cache: ResponseCache = Depends(get_response_cache),
) -> dict:
    """Tags ordered by published note count (most used first), then name."""
    key = CacheKeys.tags_list(
        {
            "page": params.page,
            "limit": params.limit,
            "search": params.search.lower() if params.search else None,
        },
    )
    data = await cache.get_or_compute(
        key, CacheTTL.LONG, lambda: tag_service.list_tags(db, params),
    )
    return success(data)


@router.get("/suggestions", response_model=ApiResponse[list[TagSummary]])
async def suggest_tags(
    params: TagSuggestionParams = Depends(tag_suggestion_params),
    db: AsyncSession = Depends(get_async_session),
    cache: ResponseCache = Depends(get_response_cache),
) -> dict:
    """Tags whose name contains `q`, for autocomplete."""
    key = CacheKeys.tag_suggestions({"q": params.q.lower(), "limit": params.limit})
    data = await cache.get_or_compute(
        key, CacheTTL.SHORT, lambda: tag_service.suggest_tags(db, params),
    )
    return success(data)


@router.get("/{tag_id}", response_model=ApiResponse[TagResponse])
async def get_tag(
    tag_id: UUID,
    db: AsyncSession = Depends(get_async_session),
) -> dict:
    return success(await tag_service.get_tag(db, tag_id))


@router.post(
    "",
    response_model=ApiResponse[TagResponse],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_owner)],
)
async def create_tag(
    data: TagCreate,
    db: AsyncSession = Depends(get_async_session),
    cache: ResponseCache = Depends(get_response_cache),
) -> dict:
    tag = await tag_service.create_tag(db, data.name)
    await commit_and_invalidate(db, cache, Invalidate.TAG_WRITE)
    return success(tag, "Tag created successfully")


@router.post(
    "/bulk",
    response_model=ApiResponse[TagBulkResult],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_owner)],
)
async def bulk_create_tags(
    data: TagBulkCreate,
    db: AsyncSession = Depends(get_async_session),
    cache: ResponseCache = Depends(get_response_cache),
) -> dict:
    """Create up to 20 tags at once; names that already exist are skipped."""
    result = await tag_service.bulk_create_tags(db, data.names)
    await commit_and_invalidate(db, cache, Invalidate.TAG_WRITE)
    summary = result["summary"]
    return success(
        result,
        f"Created {summary['created']} tags, skipped {summary['skipped']}",
    )


@router.put(
    "/{tag_id}",
    response_model=ApiResponse[TagResponse],
    dependencies=[Depends(require_owner)],
)
async def update_tag(
    tag_id: UUID,
    data: TagUpdate,
    db: AsyncSession = Depends(get_async_session),
    cache: ResponseCache = Depends(get_response_cache),
) -> dict:
    tag = await tag_service.update_tag(db, tag_id, data.name)
    await commit_and_invalidate(db, cache, Invalidate.TAG_WRITE)
    return success(tag, "Tag updated successfully")


@router.delete("/{tag_id}", dependencies=[Depends(require_owner)])
async def delete_tag(
    tag_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    cache: ResponseCache = Depends(get_response_cache),
) -> dict:
    """Delete a tag. Returns 400 TAG_IN_USE while any note carries it."""
    await tag_service.delete_tag(db, tag_id)
    await commit_and_invalidate(db, cache, Invalidate.TAG_WRITE)
    return success(None, "Tag deleted successfully")
