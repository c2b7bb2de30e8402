"""Service layer for accounts: registration, login and role administration."""
import logging
from functools import lru_cache
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings
from core.security import hash_password, issue_token, verify_password
from models.comment import Comment
from models.note import Note
from models.user import AuthProvider, User, UserRole
from schemas.base import dump
from schemas.user import (
    AuthResponse,
    LoginRequest,
    RegisterRequest,
    UserAdminItem,
    UserListParams,
    UserResponse,
)
from services.exceptions import InvalidCredentialsError, UserExistsError, UserNotFoundError
from services.utils import escape_ilike, pagination_meta

logger = logging.getLogger(__name__)


@lru_cache
def _dummy_hash(rounds: int) -> str:
    """Checked against when the email is unknown so both failure paths cost one bcrypt check."""
    return hash_password("not-a-real-password-0", rounds)


async def get_user(db: AsyncSession, user_id: UUID) -> User | None:
    return await db.get(User, user_id)


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


def auth_payload(user: User, settings: Settings) -> dict:
    """The `{user, token}` body returned by register and login."""
    token = issue_token(user.id, user.role, settings)
    return dump(AuthResponse(user=UserResponse.model_validate(user), token=token))


async def register_user(db: AsyncSession, data: RegisterRequest, settings: Settings) -> User:
    """
    Create a VISITOR account with an email/password credential.

    Raises:
        UserExistsError: If the email is already registered.
    """
    if await get_user_by_email(db, data.email) is not None:
        raise UserExistsError()
    user = User(
        email=data.email,
        name=data.name,
        password_hash=hash_password(data.password, settings.bcrypt_rounds),
        role=UserRole.VISITOR,
        provider=AuthProvider.EMAIL,
    )
    try:
        async with db.begin_nested():
            db.add(user)
    except IntegrityError as e:
        raise UserExistsError() from e
    logger.info("user_registered", extra={"user_id": str(user.id)})
    return user


async def authenticate(db: AsyncSession, data: LoginRequest, settings: Settings) -> User:
    """
    Check an email/password pair.

    Raises:
        InvalidCredentialsError: For any failure, without saying which part was wrong.
    """
    user = await get_user_by_email(db, data.email)
    if user is None or user.password_hash is None:
        verify_password(data.password, _dummy_hash(settings.bcrypt_rounds))
        raise InvalidCredentialsError()
    if not verify_password(data.password, user.password_hash):
        logger.info("login_failed", extra={"user_id": str(user.id)})
        raise InvalidCredentialsError()
    return user


async def list_users(db: AsyncSession, params: UserListParams) -> dict:
    """Page of users (newest first) with their note and comment counts."""
    base_query = select(User)
    if params.search:
        pattern = f"%{escape_ilike(params.search)}%"
        base_query = base_query.where(
            or_(User.name.ilike(pattern, escape="\\"), User.email.ilike(pattern, escape="\\")),
        )
    if params.role is not None:
        base_query = base_query.where(User.role == params.role)

    total = (
        await db.execute(select(func.count()).select_from(base_query.subquery()))
    ).scalar() or 0

    note_count = (
        select(func.count(Note.id)).where(Note.author_id == User.id)
        .correlate(User).scalar_subquery()
    )
    comment_count = (
        select(func.count(Comment.id)).where(Comment.author_id == User.id)
        .correlate(User).scalar_subquery()
    )
    rows = await db.execute(
        base_query.add_columns(note_count, comment_count)
        .order_by(User.created_at.desc(), User.id.desc())
        .offset((params.page - 1) * params.limit)
        .limit(params.limit),
    )
    meta = pagination_meta(total, params.page, params.limit)
    return {
        "data": [
            dump(
                UserAdminItem(
                    **UserResponse.model_validate(user).model_dump(),
                    note_count=notes,
                    comment_count=comments,
                ),
            )
            for user, notes, comments in rows.all()
        ],
        "page": meta["page"],
        "limit": meta["limit"],
        "total": meta["total"],
        "totalPages": meta["total_pages"],
        "hasNext": meta["has_next"],
        "hasPrev": meta["has_prev"],
    }


async def change_role(db: AsyncSession, user_id: UUID, role: UserRole) -> dict:
    """
    Set a user's role. The self-change rule is enforced by authorization first.

    Raises:
        UserNotFoundError: If the user does not exist.
    """
    user = await get_user(db, user_id)
    if user is None:
        raise UserNotFoundError()
    user.role = role
    await db.flush()
    logger.info("user_role_changed", extra={"user_id": str(user_id), "role": role.value})
    return dump(UserResponse.model_validate(user))
