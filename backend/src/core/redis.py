"""Redis client with connection pooling and graceful fallback."""
import logging
from typing import Any

from redis.asyncio import ConnectionPool, Redis
from redis.exceptions import NoScriptError, RedisError

logger = logging.getLogger(__name__)

# Lua script for fixed window rate limiting
# Atomic: increments counter and sets expiry only on first request
FIXED_WINDOW_SCRIPT = """
local key = KEYS[1]
local limit = tonumber(ARGV[1])
local window = tonumber(ARGV[2])

local count = redis.call('INCR', key)
if count == 1 then
    redis.call('EXPIRE', key, window)
end
local ttl = redis.call('TTL', key)

if count <= limit then
    return {1, limit - count, ttl, 0}  -- allowed, remaining, ttl, no retry
else
    return {0, 0, ttl, ttl}  -- denied, 0 remaining, ttl, retry_after=ttl
end
"""

# Keys deleted per round trip during pattern invalidation
SCAN_BATCH_SIZE = 500


class RedisClient:
    """
    Async Redis client with connection pooling and graceful fallback.

    Every operation behaves as a miss or no-op when the client is not connected
    or Redis raises, so callers never have to handle cache-store failures.
    """

    def __init__(
        self,
        url: str,
        enabled: bool = True,
        pool_size: int = 20,
        connect_timeout: float = 5.0,
    ) -> None:
        self._url = url
        self._enabled = enabled
        self._pool_size = pool_size
        self._connect_timeout = connect_timeout
        self._pool: ConnectionPool | None = None
        self._client: Redis | None = None
        self._fixed_window_sha: str | None = None

    async def connect(self) -> bool:
        """Initialize connection pool and load Lua scripts. Returns True on success."""
        if not self._enabled:
            logger.info("Redis disabled by configuration")
            return False
        try:
            self._pool = ConnectionPool.from_url(
                self._url,
                max_connections=self._pool_size,
                socket_connect_timeout=self._connect_timeout,
                socket_timeout=self._connect_timeout,
            )
            self._client = Redis(connection_pool=self._pool)
            # Verify connection
            await self._client.ping()
            await self._load_scripts()
            logger.info("Redis connected successfully")
            return True
        except (RedisError, OSError) as e:
            logger.warning("Redis connection failed: %s", e)
            if self._pool is not None:
                await self._pool.disconnect()
            self._client = None
            self._pool = None
            return False

    async def _load_scripts(self) -> None:
        """Load Lua scripts and store their SHAs for evalsha calls."""
        if not self._client:
            return
        try:
            self._fixed_window_sha = await self._client.script_load(FIXED_WINDOW_SCRIPT)
            logger.info("Redis Lua scripts loaded")
        except RedisError as e:
            logger.warning("Failed to load Lua scripts: %s", e)

    async def close(self) -> None:
        """Close connection pool."""
        if self._client:
            await self._client.aclose()
            self._client = None
            self._pool = None
            logger.info("Redis connection closed")

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def is_connected(self) -> bool:
        """Check if client is connected."""
        return self._client is not None

    async def ping(self) -> bool:
        """Check Redis connectivity."""
        if not self._client:
            return False
        try:
            return bool(await self._client.ping())
        except RedisError:
            return False

    async def get(self, key: str) -> bytes | None:
        """Get value, returns None if Redis unavailable."""
        if not self._client:
            return None
        try:
            return await self._client.get(key)
        except RedisError as e:
            logger.warning("Redis GET failed: %s", e)
            return None

    async def setex(self, key: str, seconds: int, value: str | bytes) -> bool:
        """Set value with expiry, returns False if Redis unavailable."""
        if not self._client:
            return False
        try:
            await self._client.setex(key, seconds, value)
            return True
        except RedisError as e:
            logger.warning("Redis SETEX failed: %s", e)
            return False

    async def delete(self, *keys: str) -> bool:
        """Delete key(s), returns False if Redis unavailable."""
        if not self._client:
            return False
        try:
            await self._client.delete(*keys)
            return True
        except RedisError as e:
            logger.warning("Redis DELETE failed: %s", e)
            return False

    async def exists(self, key: str) -> bool:
        """Check whether a key exists, returns False if Redis unavailable."""
        if not self._client:
            return False
        try:
            return bool(await self._client.exists(key))
        except RedisError as e:
            logger.warning("Redis EXISTS failed: %s", e)
            return False

    async def delete_pattern(self, pattern: str) -> int | None:
        """
        Delete every key matching a glob pattern.

        Uses SCAN rather than KEYS so a large keyspace never blocks the server.
        Returns the number of keys deleted, or None if Redis unavailable.
        """
        if not self._client:
            return None
        deleted = 0
        batch: list[Any] = []
        try:
            async for key in self._client.scan_iter(match=pattern, count=SCAN_BATCH_SIZE):
                batch.append(key)
                if len(batch) >= SCAN_BATCH_SIZE:
                    deleted += await self._client.delete(*batch)
                    batch = []
            if batch:
                deleted += await self._client.delete(*batch)
            return deleted
        except RedisError as e:
            logger.warning("Redis pattern delete failed: %s", e)
            return None

    async def eval_fixed_window(
        self,
        key: str,
        max_requests: int,
        window_seconds: int,
    ) -> list[int] | None:
        """
        Execute fixed window rate limit script with automatic script reload.

        Handles NOSCRIPT errors by reloading scripts and retrying once.

        Args:
            key: Redis key for this rate limit bucket
            max_requests: Maximum requests allowed in window
            window_seconds: Window size in seconds

        Returns:
            [allowed, remaining, ttl, retry_after] or None if Redis unavailable
        """
        # SHA is None when Redis was unavailable at startup or a reload failed; fail open.
        if not self._client or self._fixed_window_sha is None:
            return None

        try:
            return await self._client.evalsha(
                self._fixed_window_sha,
                1,
                key,
                max_requests,
                window_seconds,
            )
        except NoScriptError:
            # Redis restarted, scripts need reloading
            logger.warning("redis_script_reload", extra={"script": "fixed_window"})
            await self._load_scripts()
            if self._fixed_window_sha is None:
                return None
            try:
                return await self._client.evalsha(
                    self._fixed_window_sha,
                    1,
                    key,
                    max_requests,
                    window_seconds,
                )
            except RedisError as e:
                logger.warning("Redis fixed window retry failed: %s", e)
                return None
        except RedisError as e:
            logger.warning("Redis fixed window failed: %s", e)
            return None
