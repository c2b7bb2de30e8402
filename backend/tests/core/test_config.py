"""Tests for application configuration."""
import pytest
from pydantic import ValidationError

from core.config import MIN_BCRYPT_ROUNDS, Settings

BASE = {"_env_file": None, "database_url": "postgresql+asyncpg://test", "JWT_SECRET": "secret"}


class TestCorsOriginsParsing:
    """Tests for CORS origins parsing from environment variables."""

    def test_parse_single_origin_string(self) -> None:
        settings = Settings(**BASE, CORS_ORIGINS="http://localhost:5173")
        assert settings.cors_origins == ["http://localhost:5173"]

    def test_parse_origins_with_whitespace(self) -> None:
        """Whitespace around origins is stripped and empty entries dropped."""
        settings = Settings(**BASE, CORS_ORIGINS="  http://localhost:5173 , https://example.com ,")
        assert settings.cors_origins == ["http://localhost:5173", "https://example.com"]

    def test_empty_origins(self) -> None:
        settings = Settings(**BASE, CORS_ORIGINS="")
        assert settings.cors_origins == []


class TestSecuritySettings:
    """Validation of security-sensitive settings."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in ("BCRYPT_ROUNDS", "JWT_EXPIRES_DAYS", "JWT_ALGORITHM"):
            monkeypatch.delenv(name, raising=False)
        settings = Settings(**BASE)
        assert settings.bcrypt_rounds == 12
        assert settings.token_lifetime_days == 7
        assert settings.jwt_algorithm == "HS256"

    def test_weak_bcrypt_rounds_rejected(self) -> None:
        with pytest.raises(ValidationError, match="BCRYPT_ROUNDS"):
            Settings(**BASE, BCRYPT_ROUNDS=MIN_BCRYPT_ROUNDS - 1)

    def test_blank_jwt_secret_rejected(self) -> None:
        with pytest.raises(ValidationError, match="JWT_SECRET"):
            Settings(**{**BASE, "JWT_SECRET": "   "})

    def test_jwt_secret_required(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("JWT_SECRET", raising=False)
        with pytest.raises(ValidationError):
            Settings(_env_file=None, database_url="postgresql+asyncpg://test")
