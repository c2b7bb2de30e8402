"""Category endpoints. Reads are public; writes require the OWNER role."""
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_response_cache, require_owner
from api.helpers import commit_and_invalidate
from core.cache import CacheKeys, CacheTTL, Invalidate, ResponseCache
from schemas.base import ApiResponse, success
from schemas.category import CategoryCreate, CategoryResponse, CategoryUpdate
from services import category_service

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=ApiResponse[list[CategoryResponse]])
async def list_categories(
    db: AsyncSession = Depends(get_async_session),
    cache: ResponseCache = Depends(get_response_cache),
) -> dict:
    """All categories with their published note counts."""
    data = await cache.get_or_compute(
        CacheKeys.CATEGORIES, CacheTTL.LONG, lambda: category_service.list_categories(db),
    )
    return success(data)


@router.get("/{category_id}", response_model=ApiResponse[CategoryResponse])
async def get_category(
    category_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    cache: ResponseCache = Depends(get_response_cache),
) -> dict:
    data = await cache.get_or_compute(
        CacheKeys.category(category_id),
        CacheTTL.LONG,
        lambda: category_service.get_category(db, category_id),
    )
    return success(data)


@router.post(
    "",
    response_model=ApiResponse[CategoryResponse],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_owner)],
)
async def create_category(
    data: CategoryCreate,
    db: AsyncSession = Depends(get_async_session),
    cache: ResponseCache = Depends(get_response_cache),
) -> dict:
    category = await category_service.create_category(db, data)
    await commit_and_invalidate(db, cache, Invalidate.CATEGORY_WRITE)
    return success(category, "Category created successfully")


@router.put(
    "/{category_id}",
    response_model=ApiResponse[CategoryResponse],
    dependencies=[Depends(require_owner)],
)
async def update_category(
    category_id: UUID,
    data: CategoryUpdate,
    db: AsyncSession = Depends(get_async_session),
    cache: ResponseCache = Depends(get_response_cache),
) -> dict:
    category = await category_service.update_category(db, category_id, data)
    await commit_and_invalidate(db, cache, Invalidate.CATEGORY_WRITE)
    return success(category, "Category updated successfully")


@router.delete("/{category_id}", dependencies=[Depends(require_owner)])
async def delete_category(
    category_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    cache: ResponseCache = Depends(get_response_cache),
) -> dict:
    """Delete a category. Returns 400 CATEGORY_IN_USE while any note uses it."""
    await category_service.delete_category(db, category_id)
    await commit_and_invalidate(db, cache, Invalidate.CATEGORY_WRITE)
    return success(None, "Category deleted successfully")
