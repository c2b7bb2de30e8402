"""Tests for the API error taxonomy."""
import pytest

from core.errors import (
    ApiError,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    DependencyError,
    NotFoundError,
    ValidationError,
)


@pytest.mark.parametrize(
    ("error_class", "status_code", "code"),
    [
        (ValidationError, 400, "VALIDATION_ERROR"),
        (AuthenticationError, 401, "INVALID_TOKEN"),
        (AuthorizationError, 403, "FORBIDDEN"),
        (NotFoundError, 404, "NOT_FOUND"),
        (ConflictError, 400, "CONFLICT"),
        (DependencyError, 500, "INTERNAL_ERROR"),
    ],
)
def test__error_defaults(error_class: type[ApiError], status_code: int, code: str) -> None:
    error = error_class()
    assert error.status_code == status_code
    assert error.to_error_body()["code"] == code


def test__to_error_body__details_only_when_present() -> None:
    assert ApiError("Boom").to_error_body() == {"code": "INTERNAL_ERROR", "message": "Boom"}
    body = ValidationError(details=[{"field": "title", "message": "too short"}]).to_error_body()
    assert body["details"] == [{"field": "title", "message": "too short"}]


def test__authentication_error__bearer_challenge() -> None:
    error = AuthenticationError("Access token required", code="NO_TOKEN")
    assert error.code == "NO_TOKEN"
    assert error.headers == {"WWW-Authenticate": "Bearer"}
