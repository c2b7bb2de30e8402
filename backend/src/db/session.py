"""Async SQLAlchemy engine and per-request session."""
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from core.config import Settings, get_settings


def build_engine(settings: Settings) -> AsyncEngine:
    """Create the application engine from settings."""
    options: dict = {"echo": False, "pool_pre_ping": True}
    if not settings.database_url.startswith("sqlite"):
        options["pool_size"] = settings.db_pool_size
        options["max_overflow"] = settings.db_max_overflow
    return create_async_engine(settings.database_url, **options)


class _DatabaseState:
    """Container for the lazily created engine and session factory."""

    engine: AsyncEngine | None = None
    session_factory: async_sessionmaker[AsyncSession] | None = None


_state = _DatabaseState()


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the session factory, creating the engine on first use."""
    if _state.session_factory is None:
        _state.engine = build_engine(get_settings())
        _state.session_factory = async_sessionmaker(
            _state.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _state.session_factory


async def dispose_engine() -> None:
    """Close pooled connections (application shutdown)."""
    if _state.engine is not None:
        await _state.engine.dispose()
    _state.engine = None
    _state.session_factory = None


async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """
    Yield an async database session.

    Uses unit-of-work pattern: services use flush(), and the session is
    committed once here at request end. Routes that invalidate cache entries
    commit explicitly first so invalidation always follows the commit. If
    anything fails, all uncommitted changes are rolled back.
    """
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
