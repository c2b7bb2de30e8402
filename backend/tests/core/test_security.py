"""Tests for password hashing, session tokens, and credential shape checks."""
from datetime import UTC, datetime, timedelta
from uuid import uuid4

import jwt
import pytest

from core.config import Settings
from core.security import (
    InvalidTokenError,
    hash_password,
    is_valid_email,
    is_valid_password,
    issue_token,
    verify_password,
    verify_token,
)
from models.user import UserRole


class TestPasswordHashing:
    """Tests for bcrypt hashing."""

    def test__hash_password__verifies_with_same_password(self) -> None:
        hashed = hash_password("Password123", rounds=10)
        assert hashed != "Password123"
        assert verify_password("Password123", hashed) is True

    def test__verify_password__rejects_wrong_password(self) -> None:
        hashed = hash_password("Password123", rounds=10)
        assert verify_password("Password124", hashed) is False

    def test__hash_password__salts_each_hash(self) -> None:
        """Two hashes of the same password differ but both verify."""
        first = hash_password("Password123", rounds=10)
        second = hash_password("Password123", rounds=10)
        assert first != second
        assert verify_password("Password123", first)
        assert verify_password("Password123", second)

    def test__verify_password__malformed_hash_never_matches(self) -> None:
        assert verify_password("Password123", "not-a-bcrypt-hash") is False


class TestSessionTokens:
    """Tests for issuing and verifying signed tokens."""

    def test__issue_token__round_trips_claims(self, settings: Settings) -> None:
        user_id = uuid4()
        token = issue_token(user_id, UserRole.OWNER, settings)

        claims = verify_token(token, settings)

        assert claims.subject_id == user_id
        assert claims.role == UserRole.OWNER
        assert claims.expires_at - claims.issued_at == timedelta(
            days=settings.token_lifetime_days,
        )

    def test__verify_token__expired_token_rejected(self, settings: Settings) -> None:
        issued = datetime.now(UTC) - timedelta(days=settings.token_lifetime_days + 1)
        token = issue_token(uuid4(), UserRole.VISITOR, settings, now=issued)

        with pytest.raises(InvalidTokenError, match="expired"):
            verify_token(token, settings)

    def test__verify_token__wrong_secret_rejected(self, settings: Settings) -> None:
        other = settings.model_copy(update={"jwt_secret_key": "a-completely-different-signing-key"})
        token = issue_token(uuid4(), UserRole.VISITOR, other)

        with pytest.raises(InvalidTokenError):
            verify_token(token, settings)

    def test__verify_token__garbage_rejected(self, settings: Settings) -> None:
        with pytest.raises(InvalidTokenError):
            verify_token("not.a.token", settings)

    def test__verify_token__missing_subject_rejected(self, settings: Settings) -> None:
        now = int(datetime.now(UTC).timestamp())
        token = jwt.encode(
            {"role": "OWNER", "iat": now, "exp": now + 60},
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(InvalidTokenError):
            verify_token(token, settings)

    def test__verify_token__unknown_role_rejected(self, settings: Settings) -> None:
        now = int(datetime.now(UTC).timestamp())
        token = jwt.encode(
            {"sub": str(uuid4()), "role": "ADMIN", "iat": now, "exp": now + 60},
            settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(InvalidTokenError):
            verify_token(token, settings)


class TestCredentialShape:
    """Tests for email and password shape checks."""

    @pytest.mark.parametrize(
        "email",
        ["a@b.co", "first.last@example.com", "x+tag@sub.example.org"],
    )
    def test__is_valid_email__accepts(self, email: str) -> None:
        assert is_valid_email(email)

    @pytest.mark.parametrize(
        "email",
        ["", "plain", "a@b", "a @b.com", "a@@b.com", "@example.com"],
    )
    def test__is_valid_email__rejects(self, email: str) -> None:
        assert not is_valid_email(email)

    def test__is_valid_password__needs_letter_and_digit(self) -> None:
        assert is_valid_password("abcdefg1")
        assert not is_valid_password("abcdefgh")
        assert not is_valid_password("12345678")

    def test__is_valid_password__minimum_length(self) -> None:
        assert not is_valid_password("abc1234")

    def test__is_valid_password__rejects_over_bcrypt_limit(self) -> None:
        """bcrypt ignores bytes past 72, so longer passwords are refused."""
        assert is_valid_password("a1" * 36)
        assert not is_valid_password("a1" * 36 + "x")
