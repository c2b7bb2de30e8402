"""FastAPI dependencies for injection.

The request pipeline for a protected route is: authenticate (resolve the bearer
token and re-fetch the user), authorize (a `decide` call per route requirement),
rate limit, then validate parameters. Each stage is a dependency so a route
declares only the stages it needs.
"""
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from core.authorization import (
    AuthContext,
    OwnedResource,
    Principal,
    Requirement,
    decide,
    enforce,
)
from core.cache import ResponseCache
from core.config import Settings, get_settings
from core.rate_limit_config import RateLimitExceededError, RateLimitScope
from core.rate_limiter import check_rate_limit
from core.redis import RedisClient
from core.security import InvalidTokenError, verify_token
from db.session import get_async_session
from models.user import User
from services import comment_service, note_service

logger = logging.getLogger(__name__)

# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)


def get_redis_client(request: Request) -> RedisClient | None:
    """The RedisClient created at startup, or None if the app has none."""
    return getattr(request.app.state, "redis_client", None)


def get_response_cache(
    redis_client: RedisClient | None = Depends(get_redis_client),
) -> ResponseCache:
    return ResponseCache(redis_client)


def get_client_ip(request: Request, settings: Settings = Depends(get_settings)) -> str:
    """Client address used for like de-duplication and rate limits."""
    if settings.trust_proxy:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


@dataclass(frozen=True)
class RequestAuth:
    """Authentication stage output: the decision context plus the live user record."""

    context: AuthContext
    user: User | None = None


async def get_request_auth(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> RequestAuth:
    """
    Resolve the bearer token into a principal.

    Never raises: routes decide what a missing or bad token means. The user is
    re-fetched on every request, and the stored role is authoritative over the
    role claim inside the token.
    """
    if credentials is None:
        header_present = bool(request.headers.get("Authorization"))
        return RequestAuth(AuthContext(principal=None, credentials_present=header_present))

    try:
        claims = verify_token(credentials.credentials, settings)
    except InvalidTokenError:
        return RequestAuth(AuthContext(principal=None, credentials_present=True))

    user = await db.get(User, claims.subject_id)
    if user is None:
        logger.info("token_subject_missing", extra={"user_id": str(claims.subject_id)})
        return RequestAuth(
            AuthContext(
                principal=Principal(claims.subject_id, claims.role),
                credentials_present=True,
                user_exists=False,
            ),
        )
    return RequestAuth(
        AuthContext(principal=Principal(user.id, user.role), credentials_present=True),
        user=user,
    )


async def get_optional_user(auth: RequestAuth = Depends(get_request_auth)) -> User | None:
    """The caller if they presented a valid token, else None (public routes)."""
    return auth.user


async def get_current_user(auth: RequestAuth = Depends(get_request_auth)) -> User:
    """Any authenticated user."""
    enforce(decide(Requirement.AUTHENTICATED, auth.context))
    return auth.user


async def require_owner(auth: RequestAuth = Depends(get_request_auth)) -> User:
    """Authenticated with the OWNER role."""
    enforce(decide(Requirement.OWNER_ROLE, auth.context))
    return auth.user


async def require_role_change(
    user_id: UUID,
    auth: RequestAuth = Depends(get_request_auth),
) -> User:
    """OWNER changing somebody else's role."""
    enforce(decide(Requirement.ROLE_CHANGE, auth.context, target_user_id=user_id))
    return auth.user


@dataclass(frozen=True)
class OwnedResourceKind:
    """A resource type whose author may mutate it: its error name, path parameter and lookup."""

    name: str
    path_param: str
    fetch_author_id: Callable[[AsyncSession, UUID], Awaitable[UUID | None]]


NOTE_RESOURCE = OwnedResourceKind("NOTE", "note_id", note_service.get_note_author_id)
COMMENT_RESOURCE = OwnedResourceKind(
    "COMMENT", "comment_id", comment_service.get_comment_author_id,
)


class RequireOwnership:
    """Dependency: the caller authored the addressed resource, or is an OWNER."""

    def __init__(self, kind: OwnedResourceKind) -> None:
        self.kind = kind

    async def __call__(
        self,
        request: Request,
        auth: RequestAuth = Depends(get_request_auth),
        db: AsyncSession = Depends(get_async_session),
    ) -> User:
        # Resolve the principal before touching the resource
        enforce(decide(Requirement.AUTHENTICATED, auth.context))

        resource = None
        try:
            resource_id = UUID(str(request.path_params.get(self.kind.path_param, "")))
        except ValueError:
            resource_id = None
        if resource_id is not None:
            author_id = await self.kind.fetch_author_id(db, resource_id)
            if author_id is not None:
                resource = OwnedResource(author_id=author_id)

        enforce(
            decide(
                Requirement.OWNERSHIP,
                auth.context,
                resource=resource,
                resource_name=self.kind.name,
            ),
        )
        return auth.user


class RateLimit:
    """Dependency: count the request against a per-IP fixed window."""

    def __init__(self, scope: RateLimitScope) -> None:
        self.scope = scope

    async def __call__(
        self,
        request: Request,
        redis_client: RedisClient | None = Depends(get_redis_client),
        client_ip: str = Depends(get_client_ip),
    ) -> None:
        result = await check_rate_limit(redis_client, self.scope, client_ip)
        if not result.allowed:
            raise RateLimitExceededError(result)
        # Read by RateLimitHeadersMiddleware
        request.state.rate_limit_info = {
            "limit": result.limit,
            "remaining": result.remaining,
            "reset": result.reset,
        }


__all__ = [
    "COMMENT_RESOURCE",
    "NOTE_RESOURCE",
    "RateLimit",
    "RequestAuth",
    "RequireOwnership",
    "get_async_session",
    "get_client_ip",
    "get_current_user",
    "get_optional_user",
    "get_redis_client",
    "get_request_auth",
    "get_response_cache",
    "get_settings",
    "require_owner",
    "require_role_change",
]
