"""Commit-then-invalidate for mutating routes."""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from core.cache import ResponseCache

logger = logging.getLogger(__name__)


async def commit_and_invalidate(
    db: AsyncSession,
    cache: ResponseCache,
    patterns: tuple[str, ...],
) -> None:
    """
    Commit the request's transaction, then clear cache entries matching `patterns`.

    Invalidation never runs for a write that failed to commit, and a cache-store
    failure never fails the write.
    """
    await db.commit()
    await cache.invalidate(*patterns)
