"""Tests for the Redis-based rate limiter module."""
import time
from unittest.mock import AsyncMock

import pytest

from core import rate_limit_config
from core.rate_limit_config import (
    RATE_LIMITS,
    RateLimitConfig,
    RateLimitExceededError,
    RateLimitResult,
    RateLimitScope,
)
from core.rate_limiter import check_rate_limit
from core.redis import RedisClient


class TestRateLimitPolicy:
    """The configured limits."""

    def test__rate_limits__every_scope_configured(self) -> None:
        assert set(RATE_LIMITS) == set(RateLimitScope)

    def test__rate_limits__values(self) -> None:
        assert RATE_LIMITS[RateLimitScope.REGISTER] == RateLimitConfig(5, 15 * 60)
        assert RATE_LIMITS[RateLimitScope.LOGIN] == RateLimitConfig(10, 15 * 60)
        assert RATE_LIMITS[RateLimitScope.COMMENT_CREATE] == RateLimitConfig(10, 60)


class TestCheckRateLimit:
    """Tests for check_rate_limit function."""

    async def test__check__allows_request_under_limit(
        self, redis_client: RedisClient,
    ) -> None:
        result = await check_rate_limit(redis_client, RateLimitScope.LOGIN, "10.0.0.1")

        assert result.allowed is True
        assert result.limit == 10
        assert result.remaining == 9
        assert result.reset > int(time.time())

    async def test__check__blocks_request_over_limit(
        self, redis_client: RedisClient,
    ) -> None:
        for _ in range(5):
            assert (await check_rate_limit(
                redis_client, RateLimitScope.REGISTER, "10.0.0.1",
            )).allowed

        result = await check_rate_limit(redis_client, RateLimitScope.REGISTER, "10.0.0.1")

        assert result.allowed is False
        assert result.remaining == 0
        assert result.retry_after > 0

    async def test__check__clients_counted_separately(
        self, redis_client: RedisClient,
    ) -> None:
        for _ in range(5):
            await check_rate_limit(redis_client, RateLimitScope.REGISTER, "10.0.0.1")

        result = await check_rate_limit(redis_client, RateLimitScope.REGISTER, "10.0.0.2")
        assert result.allowed is True

    async def test__check__scopes_counted_separately(
        self, redis_client: RedisClient, fake_redis,
    ) -> None:
        await check_rate_limit(redis_client, RateLimitScope.REGISTER, "10.0.0.1")
        await check_rate_limit(redis_client, RateLimitScope.LOGIN, "10.0.0.1")

        assert sorted(fake_redis.store) == ["rate:login:10.0.0.1", "rate:register:10.0.0.1"]

    async def test__check__uses_patched_limits(
        self, redis_client: RedisClient, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setattr(
            rate_limit_config,
            "RATE_LIMITS",
            {RateLimitScope.LOGIN: RateLimitConfig(max_requests=1, window_seconds=60)},
        )
        assert (await check_rate_limit(redis_client, RateLimitScope.LOGIN, "ip")).allowed
        assert not (await check_rate_limit(redis_client, RateLimitScope.LOGIN, "ip")).allowed


class TestCheckRateLimitFailOpen:
    """Redis outages never block requests."""

    async def test__check__no_client_fails_open(self) -> None:
        result = await check_rate_limit(None, RateLimitScope.LOGIN, "ip")
        assert result.allowed is True
        assert result.remaining == 10

    async def test__check__disconnected_client_fails_open(self) -> None:
        client = RedisClient("redis://localhost:6379", enabled=False)
        result = await check_rate_limit(client, RateLimitScope.COMMENT_CREATE, "ip")
        assert result.allowed is True

    async def test__check__script_failure_fails_open(self) -> None:
        client = AsyncMock(spec=RedisClient)
        client.is_connected = True
        client.eval_fixed_window.return_value = None

        result = await check_rate_limit(client, RateLimitScope.LOGIN, "ip")

        assert result.allowed is True
        client.eval_fixed_window.assert_awaited_once_with(
            key="rate:login:ip", max_requests=10, window_seconds=900,
        )


class TestRateLimitExceededError:
    """The 429 error carries the retry headers."""

    def test__error__headers(self) -> None:
        error = RateLimitExceededError(
            RateLimitResult(allowed=False, limit=5, remaining=0, reset=1_700_000_000, retry_after=42),
        )
        assert error.status_code == 429
        assert error.code == "RATE_LIMIT_EXCEEDED"
        assert error.headers == {
            "Retry-After": "42",
            "X-RateLimit-Limit": "5",
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": "1700000000",
        }
