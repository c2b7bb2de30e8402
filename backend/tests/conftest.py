"""Pytest fixtures for testing."""
import os

# Settings are validated on import of the app module, so the environment must be
# in place before any application import below.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret-key-that-is-long-enough-for-hs256")
os.environ.setdefault("BCRYPT_ROUNDS", "10")
os.environ.setdefault("REDIS_ENABLED", "false")

import fnmatch  # noqa: E402
import time  # noqa: E402
from collections.abc import AsyncGenerator, AsyncIterator, Awaitable, Callable  # noqa: E402
from typing import Any  # noqa: E402
from uuid import UUID  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncConnection,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from core.config import Settings, get_settings  # noqa: E402
from core.redis import RedisClient  # noqa: E402
from core.security import hash_password, issue_token  # noqa: E402
from models.base import Base  # noqa: E402
from models.category import Category  # noqa: E402
from models.note import Note  # noqa: E402
from models.tag import Tag  # noqa: E402
from models.user import User, UserRole  # noqa: E402
from schemas.note import NoteCreate  # noqa: E402
from services import note_service  # noqa: E402
from services.utils import slugify  # noqa: E402

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite://")
TEST_PASSWORD = "Password123"


class InMemoryRedis:
    """
    Stand-in for the `redis.asyncio.Redis` methods RedisClient calls.

    Values live in a dict; expiry is tracked but only enforced on read. The
    fixed window script is evaluated in Python with the same return shape.
    """

    def __init__(self) -> None:
        self.store: dict[str, Any] = {}
        self.expires: dict[str, float] = {}

    def _live(self, key: str) -> bool:
        expires_at = self.expires.get(key)
        if expires_at is not None and expires_at <= time.time():
            self.store.pop(key, None)
            self.expires.pop(key, None)
        return key in self.store

    async def ping(self) -> bool:
        return True

    async def get(self, key: str) -> bytes | None:
        if not self._live(key):
            return None
        value = self.store[key]
        return value.encode() if isinstance(value, str) else value

    async def setex(self, key: str, seconds: int, value: str | bytes) -> bool:
        self.store[key] = value
        self.expires[key] = time.time() + int(seconds)
        return True

    async def delete(self, *keys: str) -> int:
        deleted = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                deleted += 1
            self.expires.pop(key, None)
        return deleted

    async def exists(self, key: str) -> int:
        return int(self._live(key))

    async def scan_iter(self, match: str = "*", count: int | None = None) -> AsyncIterator[str]:  # noqa: ARG002
        for key in list(self.store):
            if fnmatch.fnmatchcase(key, match):
                yield key

    async def script_load(self, _script: str) -> str:
        return "fixed-window-sha"

    async def evalsha(self, _sha: str, _numkeys: int, key: str, limit: int, window: int) -> list[int]:
        count = int(self.store.get(key, 0) if self._live(key) else 0) + 1
        self.store[key] = count
        if count == 1:
            self.expires[key] = time.time() + int(window)
        ttl = max(1, int(self.expires[key] - time.time()))
        if count <= int(limit):
            return [1, int(limit) - count, ttl, 0]
        return [0, 0, ttl, ttl]

    async def aclose(self) -> None:
        self.store.clear()

    def cache_keys(self) -> list[str]:
        """Cached response keys (rate limit counters excluded)."""
        return sorted(k for k in self.store if not k.startswith("rate:"))


@pytest.fixture
def settings() -> Settings:
    get_settings.cache_clear()
    return get_settings()


@pytest.fixture
def fake_redis() -> InMemoryRedis:
    return InMemoryRedis()


@pytest.fixture
async def redis_client(fake_redis: InMemoryRedis) -> RedisClient:
    """A RedisClient backed by the in-memory stand-in, scripts loaded."""
    client = RedisClient(url="redis://unused")
    client._client = fake_redis
    await client._load_scripts()
    return client


@pytest.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine]:
    """Create an async engine for testing, one database per test."""
    if TEST_DATABASE_URL.startswith("sqlite"):
        engine = create_async_engine(
            TEST_DATABASE_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

        # pysqlite's own transaction handling breaks SAVEPOINT; take it over.
        @event.listens_for(engine.sync_engine, "connect")
        def _on_connect(dbapi_connection: Any, _record: Any) -> None:
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine.sync_engine, "begin")
        def _on_begin(conn: Any) -> None:
            conn.exec_driver_sql("BEGIN")
    else:
        engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    if not TEST_DATABASE_URL.startswith("sqlite"):
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def db_connection(async_engine: AsyncEngine) -> AsyncGenerator[AsyncConnection]:
    """
    Create a connection with a transaction that will be rolled back after the test.

    This provides test isolation - each test runs in its own transaction
    that is rolled back, so tests don't affect each other.
    """
    async with async_engine.connect() as connection:
        transaction = await connection.begin()
        try:
            yield connection
        finally:
            await transaction.rollback()


@pytest.fixture
def session_factory(db_connection: AsyncConnection) -> async_sessionmaker[AsyncSession]:
    """
    Sessions bound to the test transaction.

    Each session works inside a savepoint, so its commit() only releases the
    savepoint and the outer rollback still discards everything.
    """
    return async_sessionmaker(
        bind=db_connection,
        class_=AsyncSession,
        expire_on_commit=False,
        join_transaction_mode="create_savepoint",
    )


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
    redis_client: RedisClient,
    settings: Settings,
) -> AsyncGenerator[AsyncClient]:
    """Create a test client with database session and Redis overrides."""
    from api.main import app
    from db.session import get_async_session
    from api.dependencies import get_redis_client

    # One session per request, like the real dependency
    async def override_get_async_session() -> AsyncGenerator[AsyncSession]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_async_session] = override_get_async_session
    app.dependency_overrides[get_redis_client] = lambda: redis_client
    app.dependency_overrides[get_settings] = lambda: settings

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(
    db_session: AsyncSession, settings: Settings,
) -> Callable[..., Awaitable[User]]:
    """Factory: insert a user with the shared test password."""
    counter = 0

    async def _make_user(
        role: UserRole = UserRole.VISITOR,
        email: str | None = None,
        name: str | None = None,
    ) -> User:
        nonlocal counter
        counter += 1
        user = User(
            email=email or f"user{counter}@example.com",
            name=name or f"User {chr(ord('A') + counter - 1)}",
            password_hash=hash_password(TEST_PASSWORD, settings.bcrypt_rounds),
            role=role,
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _make_user


@pytest.fixture
async def owner(make_user: Callable[..., Awaitable[User]]) -> User:
    return await make_user(role=UserRole.OWNER, email="owner@example.com", name="Site Owner")


@pytest.fixture
async def visitor(make_user: Callable[..., Awaitable[User]]) -> User:
    return await make_user(email="visitor@example.com", name="Vera Visitor")


@pytest.fixture
def headers_for(settings: Settings) -> Callable[[User], dict[str, str]]:
    """Factory: bearer headers carrying a fresh token for the user."""

    def _headers_for(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {issue_token(user.id, user.role, settings)}"}

    return _headers_for


@pytest.fixture
def owner_headers(owner: User, headers_for: Callable[[User], dict[str, str]]) -> dict[str, str]:
    return headers_for(owner)


@pytest.fixture
def visitor_headers(
    visitor: User, headers_for: Callable[[User], dict[str, str]],
) -> dict[str, str]:
    return headers_for(visitor)


@pytest.fixture
def make_category(db_session: AsyncSession) -> Callable[..., Awaitable[Category]]:
    """Factory: insert a category."""

    async def _make_category(name: str = "Technology", color: str = "#3B82F6") -> Category:
        category = Category(name=name, slug=slugify(name), color=color)
        db_session.add(category)
        await db_session.commit()
        return category

    return _make_category


@pytest.fixture
def make_tag(db_session: AsyncSession) -> Callable[..., Awaitable[Tag]]:
    """Factory: insert a tag."""

    async def _make_tag(name: str) -> Tag:
        tag = Tag(name=name, slug=slugify(name))
        db_session.add(tag)
        await db_session.commit()
        return tag

    return _make_tag


@pytest.fixture
def make_note(db_session: AsyncSession) -> Callable[..., Awaitable[Note]]:
    """Factory: insert a note through the service so slug and excerpt are generated."""

    async def _make_note(
        author: User,
        category: Category,
        title: str = "A note title",
        content: str = "Some note content for testing.",
        tags: list[Tag] | None = None,
        published: bool = True,
    ) -> Note:
        data = NoteCreate(
            title=title,
            content=content,
            category_id=category.id,
            tag_ids=[t.id for t in tags or []],
            published=published,
        )
        created = await note_service.create_note(db_session, author.id, data)
        await db_session.commit()
        return await db_session.get(Note, UUID(created["id"]))

    return _make_note
