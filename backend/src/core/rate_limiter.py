"""
Redis-based rate limiting enforcement.

This module contains the enforcement logic - the "how" of rate limiting.
For configuration (limits per scope), see rate_limit_config.py.
"""
import logging
import time

from core.rate_limit_config import RateLimitResult, RateLimitScope
from core.redis import RedisClient

logger = logging.getLogger(__name__)


def _fail_open(max_requests: int) -> RateLimitResult:
    return RateLimitResult(
        allowed=True,
        limit=max_requests,
        remaining=max_requests,
        reset=0,
        retry_after=0,
    )


async def check_rate_limit(
    redis_client: RedisClient | None,
    scope: RateLimitScope,
    client_id: str,
) -> RateLimitResult:
    """
    Count this request against the scope's window for the given client.

    Returns RateLimitResult with allowed status and header values.
    Falls back to allowing requests if Redis is unavailable.
    """
    # Import at call time so tests can monkeypatch rate_limit_config.RATE_LIMITS
    from core.rate_limit_config import RATE_LIMITS

    config = RATE_LIMITS.get(scope)
    if not config:
        return RateLimitResult(allowed=True, limit=0, remaining=0, reset=0, retry_after=0)

    if redis_client is None or not redis_client.is_connected:
        logger.warning("redis_unavailable", extra={"operation": "rate_limit"})
        return _fail_open(config.max_requests)

    now = int(time.time())
    key = f"rate:{scope.value}:{client_id}"
    result = await redis_client.eval_fixed_window(
        key=key,
        max_requests=config.max_requests,
        window_seconds=config.window_seconds,
    )
    if result is None:
        return _fail_open(config.max_requests)

    allowed, remaining, ttl, retry_after = (int(v) for v in result)
    rate_result = RateLimitResult(
        allowed=bool(allowed),
        limit=config.max_requests,
        remaining=max(0, remaining),
        reset=now + ttl if ttl > 0 else now + config.window_seconds,
        retry_after=max(0, retry_after) if not allowed else 0,
    )
    if not rate_result.allowed:
        logger.warning(
            "rate_limit_exceeded",
            extra={"scope": scope.value, "client": client_id},
        )
    return rate_result
