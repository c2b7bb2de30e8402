"""Comment endpoints."""
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    COMMENT_RESOURCE,
    RateLimit,
    RequireOwnership,
    get_async_session,
    get_current_user,
    get_response_cache,
)
from api.helpers import commit_and_invalidate
from core.cache import CacheKeys, CacheTTL, Invalidate, ResponseCache
from core.rate_limit_config import RateLimitScope
from models.user import User
from schemas.base import ApiResponse, success
from schemas.comment import CommentCreate, CommentResponse, CommentUpdate
from services import comment_service, note_service
from services.exceptions import NoteNotFoundError

router = APIRouter(tags=["comments"])


async def _list_comments(db: AsyncSession, note_id: UUID) -> list[dict]:
    if await note_service.get_note_author_id(db, note_id) is None:
        raise NoteNotFoundError()
    return await comment_service.list_note_comments(db, note_id)


@router.get("/notes/{note_id}/comments", response_model=ApiResponse[list[CommentResponse]])
async def list_comments(
    note_id: UUID,
    db: AsyncSession = Depends(get_async_session),
    cache: ResponseCache = Depends(get_response_cache),
) -> dict:
    """Top-level comments, newest first, each with replies oldest first."""
    data = await cache.get_or_compute(
        CacheKeys.note_comments(note_id),
        CacheTTL.SHORT,
        lambda: _list_comments(db, note_id),
    )
    return success(data)


@router.post("/notes/{note_id}/comments", status_code=status.HTTP_201_CREATED)
async def create_comment(
    note_id: UUID,
    data: CommentCreate,
    current_user: User = Depends(get_current_user),
    _rate_limit: None = Depends(RateLimit(RateLimitScope.COMMENT_CREATE)),
    db: AsyncSession = Depends(get_async_session),
    cache: ResponseCache = Depends(get_response_cache),
) -> dict:
    """Comment on a note, or reply with `parentId` (any authenticated user)."""
    comment = await comment_service.create_comment(db, note_id, current_user.id, data)
    await commit_and_invalidate(db, cache, Invalidate.COMMENT_WRITE)
    return success(comment, "Comment created successfully")


@router.put("/comments/{comment_id}")
async def update_comment(
    comment_id: UUID,
    data: CommentUpdate,
    _user: User = Depends(RequireOwnership(COMMENT_RESOURCE)),
    db: AsyncSession = Depends(get_async_session),
    cache: ResponseCache = Depends(get_response_cache),
) -> dict:
    """Edit a comment (its author or an OWNER)."""
    comment = await comment_service.update_comment(db, comment_id, data)
    await commit_and_invalidate(db, cache, Invalidate.COMMENT_WRITE)
    return success(comment, "Comment updated successfully")


@router.delete("/comments/{comment_id}")
async def delete_comment(
    comment_id: UUID,
    _user: User = Depends(RequireOwnership(COMMENT_RESOURCE)),
    db: AsyncSession = Depends(get_async_session),
    cache: ResponseCache = Depends(get_response_cache),
) -> dict:
    """Delete a comment and its replies (its author or an OWNER)."""
    await comment_service.delete_comment(db, comment_id)
    await commit_and_invalidate(db, cache, Invalidate.COMMENT_WRITE)
    return success(None, "Comment deleted successfully")
