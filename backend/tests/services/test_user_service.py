"""Tests for account registration, login and role administration."""
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings
from core.security import verify_password, verify_token
from models.user import AuthProvider, User, UserRole
from schemas.user import LoginRequest, RegisterRequest, UserListParams
from services import user_service
from services.exceptions import InvalidCredentialsError, UserExistsError, UserNotFoundError


class TestRegister:
    async def test__register_user__creates_visitor(
        self, db_session: AsyncSession, settings: Settings,
    ) -> None:
        user = await user_service.register_user(
            db_session,
            RegisterRequest(name="Ada Lovelace", email=" Ada@Example.COM ", password="Secret123"),
            settings,
        )

        assert user.email == "ada@example.com"
        assert user.role == UserRole.VISITOR
        assert user.provider == AuthProvider.EMAIL
        assert verify_password("Secret123", user.password_hash)

    async def test__register_user__duplicate_email(
        self, db_session: AsyncSession, settings: Settings, visitor: User,
    ) -> None:
        with pytest.raises(UserExistsError):
            await user_service.register_user(
                db_session,
                RegisterRequest(name="Someone Else", email=visitor.email, password="Secret123"),
                settings,
            )

    async def test__auth_payload__token_matches_user(
        self, settings: Settings, owner: User,
    ) -> None:
        payload = user_service.auth_payload(owner, settings)

        assert payload["user"]["email"] == "owner@example.com"
        assert "passwordHash" not in payload["user"]
        claims = verify_token(payload["token"], settings)
        assert claims.subject_id == owner.id
        assert claims.role == UserRole.OWNER


class TestAuthenticate:
    async def test__authenticate__success(
        self, db_session: AsyncSession, settings: Settings, visitor: User,
    ) -> None:
        user = await user_service.authenticate(
            db_session, LoginRequest(email="VISITOR@example.com", password="Password123"), settings,
        )
        assert user.id == visitor.id

    async def test__authenticate__wrong_password(
        self, db_session: AsyncSession, settings: Settings, visitor: User,
    ) -> None:
        with pytest.raises(InvalidCredentialsError) as exc_info:
            await user_service.authenticate(
                db_session, LoginRequest(email=visitor.email, password="Wrong1234"), settings,
            )
        assert exc_info.value.status_code == 401
        assert exc_info.value.code == "INVALID_CREDENTIALS"

    async def test__authenticate__unknown_email(
        self, db_session: AsyncSession, settings: Settings,
    ) -> None:
        with pytest.raises(InvalidCredentialsError):
            await user_service.authenticate(
                db_session, LoginRequest(email="nobody@example.com", password="Password123"), settings,
            )

    async def test__authenticate__federated_account_has_no_password(
        self, db_session: AsyncSession, settings: Settings,
    ) -> None:
        db_session.add(
            User(
                email="gh@example.com",
                name="Git Hubber",
                provider=AuthProvider.GITHUB,
                provider_id="12345",
            ),
        )
        await db_session.flush()

        with pytest.raises(InvalidCredentialsError):
            await user_service.authenticate(
                db_session, LoginRequest(email="gh@example.com", password="Password123"), settings,
            )


class TestListUsers:
    async def test__list_users__newest_first_with_counts(
        self, db_session: AsyncSession, owner: User, visitor: User, make_category, make_note,
    ) -> None:
        await make_note(owner, await make_category())

        page = await user_service.list_users(db_session, UserListParams())

        assert [u["email"] for u in page["data"]] == [visitor.email, owner.email]
        assert page["data"][1]["noteCount"] == 1
        assert page["data"][0]["commentCount"] == 0
        assert page["total"] == 2

    async def test__list_users__role_and_search_filters(
        self, db_session: AsyncSession, owner: User, visitor: User,
    ) -> None:
        owners = await user_service.list_users(db_session, UserListParams(role=UserRole.OWNER))
        assert [u["id"] for u in owners["data"]] == [str(owner.id)]

        by_name = await user_service.list_users(db_session, UserListParams(search="vera"))
        assert [u["id"] for u in by_name["data"]] == [str(visitor.id)]


class TestChangeRole:
    async def test__change_role__promotes(
        self, db_session: AsyncSession, visitor: User,
    ) -> None:
        result = await user_service.change_role(db_session, visitor.id, UserRole.OWNER)
        assert result["role"] == "OWNER"

    async def test__change_role__missing_user(self, db_session: AsyncSession) -> None:
        with pytest.raises(UserNotFoundError):
            await user_service.change_role(db_session, uuid4(), UserRole.OWNER)
