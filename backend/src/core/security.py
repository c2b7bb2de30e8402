"""
Credential primitives: password hashing, session tokens, and input shape checks.

None of these functions touch the database. Callers that need to know whether a
token's subject still exists must look the user up themselves.
"""
import logging
import re
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from uuid import UUID

import bcrypt
import jwt

from core.config import Settings
from models.user import UserRole

logger = logging.getLogger(__name__)

# bcrypt silently ignores input past this many bytes, so longer passwords are rejected
BCRYPT_MAX_PASSWORD_BYTES = 72
MIN_PASSWORD_LENGTH = 8

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class InvalidTokenError(Exception):
    """Raised when a session token is malformed, tampered with, or expired."""


@dataclass(frozen=True)
class TokenClaims:
    """Verified contents of a session token."""

    subject_id: UUID
    role: UserRole
    issued_at: datetime
    expires_at: datetime


def hash_password(plaintext: str, rounds: int) -> str:
    """Hash a password with a fresh random salt."""
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(plaintext.encode("utf-8"), salt).decode("utf-8")


def verify_password(plaintext: str, password_hash: str) -> bool:
    """Check a password against a stored hash. Malformed hashes never match."""
    try:
        return bcrypt.checkpw(plaintext.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("password_hash_malformed")
        return False


def issue_token(
    subject_id: UUID,
    role: UserRole,
    settings: Settings,
    now: datetime | None = None,
) -> str:
    """Sign a session token for the given user."""
    issued_at = now or datetime.now(UTC)
    expires_at = issued_at + timedelta(days=settings.token_lifetime_days)
    payload = {
        "sub": str(subject_id),
        "role": role.value,
        "iat": int(issued_at.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def verify_token(token: str, settings: Settings) -> TokenClaims:
    """
    Verify a session token's signature and expiry and return its claims.

    Raises:
        InvalidTokenError: If the signature is wrong, the payload is malformed,
            or the token has expired.
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp", "iat"]},
        )
    except jwt.ExpiredSignatureError as e:
        raise InvalidTokenError("Token has expired") from e
    except jwt.PyJWTError as e:
        logger.info("token_rejected: %s", e)
        raise InvalidTokenError("Invalid token") from e

    try:
        return TokenClaims(
            subject_id=UUID(str(payload["sub"])),
            role=UserRole(payload.get("role")),
            issued_at=datetime.fromtimestamp(payload["iat"], UTC),
            expires_at=datetime.fromtimestamp(payload["exp"], UTC),
        )
    except (ValueError, TypeError) as e:
        raise InvalidTokenError("Invalid token payload") from e


def is_valid_email(email: str) -> bool:
    """Single '@', a dotted domain after it, and no whitespace anywhere."""
    return bool(_EMAIL_PATTERN.fullmatch(email))


def is_valid_password(password: str) -> bool:
    """At least 8 characters with at least one letter and one digit."""
    return (
        len(password) >= MIN_PASSWORD_LENGTH
        and len(password.encode("utf-8")) <= BCRYPT_MAX_PASSWORD_BYTES
        and any(c.isalpha() for c in password)
        and any(c.isdigit() for c in password)
    )
