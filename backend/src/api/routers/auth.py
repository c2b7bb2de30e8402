"""Authentication and user-management endpoints."""
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    RateLimit,
    get_async_session,
    get_current_user,
    get_settings,
    require_owner,
    require_role_change,
)
from api.helpers import parse_params
from core.config import Settings
from core.rate_limit_config import RateLimitScope
from core.security import issue_token
from models.user import User
from schemas.base import ApiResponse, Page, dump, success
from schemas.user import (
    AuthResponse,
    LoginRequest,
    RegisterRequest,
    RoleUpdateRequest,
    TokenResponse,
    UserAdminItem,
    UserListParams,
    UserResponse,
)
from services import user_service

router = APIRouter(prefix="/auth", tags=["auth"])


def user_list_params(
    page: str | None = None,
    limit: str | None = None,
    search: str | None = None,
    role: str | None = None,
) -> UserListParams:
    return parse_params(UserListParams, page=page, limit=limit, search=search, role=role)


@router.post(
    "/register",
    response_model=ApiResponse[AuthResponse],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(RateLimit(RateLimitScope.REGISTER))],
)
async def register(
    data: RegisterRequest,
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> dict:
    """Create a VISITOR account and return it with a session token."""
    user = await user_service.register_user(db, data, settings)
    payload = user_service.auth_payload(user, settings)
    await db.commit()
    return success(payload, "User registered successfully")


@router.post(
    "/login",
    response_model=ApiResponse[AuthResponse],
    dependencies=[Depends(RateLimit(RateLimitScope.LOGIN))],
)
async def login(
    data: LoginRequest,
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> dict:
    """
    Exchange email and password for a session token.

    Unknown emails and wrong passwords produce the same 401 INVALID_CREDENTIALS.
    """
    user = await user_service.authenticate(db, data, settings)
    return success(user_service.auth_payload(user, settings), "Login successful")


@router.get("/me", response_model=ApiResponse[UserResponse])
async def get_me(current_user: User = Depends(get_current_user)) -> dict:
    return success(dump(UserResponse.model_validate(current_user)))


@router.post("/logout")
async def logout(_user: User = Depends(get_current_user)) -> dict:
    """Tokens are stateless; the client discards its copy."""
    return success(None, "Logged out successfully")


@router.post("/refresh", response_model=ApiResponse[TokenResponse])
async def refresh_token(
    current_user: User = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> dict:
    token = issue_token(current_user.id, current_user.role, settings)
    return success(dump(TokenResponse(token=token)))


@router.get(
    "/users",
    response_model=ApiResponse[Page[UserAdminItem]],
    dependencies=[Depends(require_owner)],
)
async def list_users(
    params: UserListParams = Depends(user_list_params),
    db: AsyncSession = Depends(get_async_session),
) -> dict:
    """Paginated users with note and comment counts (OWNER only)."""
    return success(await user_service.list_users(db, params))


@router.put(
    "/users/{user_id}/role",
    response_model=ApiResponse[UserResponse],
    dependencies=[Depends(require_role_change)],
)
async def change_user_role(
    user_id: UUID,
    data: RoleUpdateRequest,
    db: AsyncSession = Depends(get_async_session),
) -> dict:
    """Set another user's role (OWNER only; never the caller's own)."""
    user = await user_service.change_role(db, user_id, data.role)
    await db.commit()
    return success(user, "User role updated successfully")
