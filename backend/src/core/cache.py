"""
Response caching on top of RedisClient.

Reads go through `get_or_compute`; writes call `invalidate` with glob patterns
after their transaction has committed. Both are best-effort: a cache-store
failure degrades to "compute it again" and never fails the request.
"""
import hashlib
import json
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from enum import Enum, IntEnum
from typing import Any, TypeVar

from core.redis import RedisClient

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Parameter values longer than this are replaced by a digest in cache keys
MAX_KEY_VALUE_LENGTH = 100


class CacheTTL(IntEnum):
    """Expiry tiers (seconds), chosen by how often the cached data changes."""

    SHORT = 60  # comments, suggestions, search results
    MEDIUM = 300  # note listings and details
    LONG = 1800  # categories, tags, filters
    VERY_LONG = 3600  # rarely-changing aggregates


def _canonical_value(value: Any) -> str:
    if isinstance(value, list | tuple | set | frozenset):
        value = ",".join(sorted(_canonical_value(v) for v in value))
    elif isinstance(value, bool):
        value = "true" if value else "false"
    elif isinstance(value, Enum):
        value = value.value
    text = " ".join(str(value).split())
    if len(text) > MAX_KEY_VALUE_LENGTH:
        text = "h" + hashlib.sha256(text.encode("utf-8")).hexdigest()[:32]
    return text


def build_cache_key(namespace: str, params: Mapping[str, Any] | None = None) -> str:
    """
    Build a deterministic cache key from a namespace and request parameters.

    Parameters are sorted by name and None values dropped, so the same logical
    request always maps to the same key regardless of query-string order.
    """
    if not params:
        return namespace
    parts = [
        f"{name}:{_canonical_value(value)}"
        for name, value in sorted(params.items())
        if value is not None
    ]
    if not parts:
        return namespace
    return f"{namespace}:{'|'.join(parts)}"


class CacheKeys:
    """Key builders for every cached read."""

    @staticmethod
    def notes_list(params: Mapping[str, Any]) -> str:
        return build_cache_key("notes:list", params)

    @staticmethod
    def note_detail(note_id: Any) -> str:
        return f"note:{note_id}:detail"

    @staticmethod
    def note_comments(note_id: Any) -> str:
        return f"note:{note_id}:comments"

    @staticmethod
    def search_results(params: Mapping[str, Any]) -> str:
        return build_cache_key("search:results", params)

    FILTERS = "filters:all"
    CATEGORIES = "categories:all"

    @staticmethod
    def category(category_id: Any) -> str:
        return f"category:{category_id}"

    @staticmethod
    def tags_list(params: Mapping[str, Any]) -> str:
        return build_cache_key("tags:list", params)

    @staticmethod
    def tag_suggestions(params: Mapping[str, Any]) -> str:
        return build_cache_key("tags:suggestions", params)


class Invalidate:
    """Glob patterns each kind of write must clear once it has committed."""

    # Category and tag payloads carry published-note counts
    NOTE_CREATE = ("notes:*", "filters:*", "search:*", "categories:*", "category:*", "tags:*")
    NOTE_WRITE = (
        "notes:*", "note:*", "filters:*", "search:*", "categories:*", "category:*", "tags:*",
    )
    NOTE_LIKE = ("notes:*", "note:*")
    COMMENT_WRITE = ("note:*:comments", "note:*:detail")
    # Note payloads embed category and tag names
    CATEGORY_WRITE = ("categories:*", "category:*", "filters:*", "notes:*", "note:*", "search:*")
    TAG_WRITE = ("tags:*", "filters:*", "notes:*", "note:*", "search:*")


class ResponseCache:
    """Get-or-compute reads and pattern invalidation over a RedisClient port."""

    def __init__(self, redis_client: RedisClient | None) -> None:
        self._redis = redis_client

    @property
    def available(self) -> bool:
        return self._redis is not None and self._redis.is_connected

    async def get(self, key: str) -> Any | None:
        """Return the cached JSON value, or None on a miss or store failure."""
        if not self.available:
            return None
        raw = await self._redis.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("cache_entry_corrupt", extra={"key": key})
            await self._redis.delete(key)
            return None

    async def set(self, key: str, value: Any, ttl: int) -> bool:
        if not self.available:
            return False
        return await self._redis.setex(key, int(ttl), json.dumps(value, separators=(",", ":")))

    async def get_or_compute(
        self,
        key: str,
        ttl: int,
        compute: Callable[[], Awaitable[T]],
    ) -> T | Any:
        """
        Serve `key` from the cache, or compute, store and return it.

        `compute` must return a JSON-serializable value. Exceptions raised by
        `compute` propagate and nothing is stored.
        """
        cached = await self.get(key)
        if cached is not None:
            logger.debug("cache_hit: %s", key)
            return cached
        logger.debug("cache_miss: %s", key)
        value = await compute()
        if not await self.set(key, value, ttl) and self.available:
            logger.warning("cache_store_failed", extra={"key": key})
        return value

    async def invalidate(self, *patterns: str | Iterable[str]) -> None:
        """Delete every entry matching the given glob patterns. Never raises."""
        flat: list[str] = []
        for pattern in patterns:
            if isinstance(pattern, str):
                flat.append(pattern)
            else:
                flat.extend(pattern)
        if not self.available:
            logger.info("cache_invalidate_skipped: %s", ",".join(flat))
            return
        for pattern in flat:
            deleted = await self._redis.delete_pattern(pattern)
            if deleted is None:
                logger.warning("cache_invalidate_failed", extra={"pattern": pattern})
            else:
                logger.debug("cache_invalidate: %s (%d keys)", pattern, deleted)
