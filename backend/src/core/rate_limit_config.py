"""
Rate limiting configuration and types.

This module contains the policy configuration for rate limiting - the "what" limits
to apply, separate from the "how" (enforcement logic in rate_limiter.py).

To adjust rate limits, modify RATE_LIMITS below.
"""
from dataclasses import dataclass
from enum import Enum

from core.errors import ApiError


class RateLimitScope(Enum):
    """Operations that are limited per client IP."""

    REGISTER = "register"
    LOGIN = "login"
    COMMENT_CREATE = "comment_create"


@dataclass
class RateLimitConfig:
    """Fixed-window limit for one scope."""

    max_requests: int
    window_seconds: int


@dataclass
class RateLimitResult:
    """Result of a rate limit check with all info needed for headers."""

    allowed: bool
    limit: int  # Max requests in current window
    remaining: int  # Requests remaining in current window
    reset: int  # Unix timestamp when window resets
    retry_after: int  # Seconds until retry allowed (0 if allowed)


class RateLimitExceededError(ApiError):
    """Raised when rate limit is exceeded."""

    status_code = 429
    code = "RATE_LIMIT_EXCEEDED"
    message = "Too many requests. Please try again later."

    def __init__(self, result: RateLimitResult) -> None:
        self.result = result
        super().__init__(
            headers={
                "Retry-After": str(result.retry_after),
                "X-RateLimit-Limit": str(result.limit),
                "X-RateLimit-Remaining": "0",
                "X-RateLimit-Reset": str(result.reset),
            },
        )


# ---------------------------------------------------------------------------
# Rate Limit Policy Configuration
# ---------------------------------------------------------------------------

RATE_LIMITS: dict[RateLimitScope, RateLimitConfig] = {
    RateLimitScope.REGISTER: RateLimitConfig(max_requests=5, window_seconds=15 * 60),
    RateLimitScope.LOGIN: RateLimitConfig(max_requests=10, window_seconds=15 * 60),
    RateLimitScope.COMMENT_CREATE: RateLimitConfig(max_requests=10, window_seconds=60),
}
