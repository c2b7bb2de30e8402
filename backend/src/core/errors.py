"""
API error taxonomy.

Every error that reaches a client is one of these (or is converted into one by
the exception handlers in api/main.py), so clients can branch on `code` alone.
"""
from typing import Any


class ApiError(Exception):
    """Base class for errors rendered as `{success: false, error: {...}}`."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    message: str = "Internal server error"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        details: Any = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        if message is not None:
            self.message = message
        if code is not None:
            self.code = code
        self.details = details
        self.headers = headers
        super().__init__(self.message)

    def to_error_body(self) -> dict[str, Any]:
        """Build the `error` member of the response envelope."""
        body: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(ApiError):
    """Malformed or out-of-range input."""

    status_code = 400
    code = "VALIDATION_ERROR"
    message = "Validation failed"


class AuthenticationError(ApiError):
    """Missing, unverifiable, or orphaned credentials."""

    status_code = 401
    code = "INVALID_TOKEN"
    message = "Invalid or expired token"

    def __init__(self, message: str | None = None, *, code: str | None = None) -> None:
        super().__init__(message, code=code, headers={"WWW-Authenticate": "Bearer"})


class AuthorizationError(ApiError):
    """Authenticated, but not allowed to perform the action."""

    status_code = 403
    code = "FORBIDDEN"
    message = "Insufficient permissions"


class NotFoundError(ApiError):
    """The addressed resource does not exist (or is not visible to the caller)."""

    status_code = 404
    code = "NOT_FOUND"
    message = "Resource not found"


class ConflictError(ApiError):
    """A uniqueness rule would be violated by the write."""

    status_code = 400
    code = "CONFLICT"
    message = "Resource already exists"


class DependencyError(ApiError):
    """A backing store failed in a way the request cannot recover from."""

    status_code = 500
    code = "INTERNAL_ERROR"
    message = "Internal server error"
