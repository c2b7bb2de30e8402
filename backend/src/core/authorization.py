"""
Authorization decisions for the two-tier role model.

`decide` is a pure function over an already-resolved request context. It never
touches the database; the dependencies in api/dependencies.py gather the inputs
(principal, whether the user still exists, the target resource's author) and
turn a DENY into the matching API error.
"""
from dataclasses import dataclass
from enum import Enum
from uuid import UUID

from core.errors import ApiError, AuthenticationError, AuthorizationError, NotFoundError
from models.user import UserRole


class Requirement(Enum):
    """What a route demands of the caller."""

    PUBLIC = "public"
    AUTHENTICATED = "authenticated"
    OWNER_ROLE = "owner_role"
    OWNERSHIP = "ownership"
    ROLE_CHANGE = "role_change"


@dataclass(frozen=True)
class Principal:
    """Authenticated identity for the duration of one request."""

    subject_id: UUID
    role: UserRole

    @property
    def is_owner(self) -> bool:
        return self.role == UserRole.OWNER


@dataclass(frozen=True)
class AuthContext:
    """
    Result of the authentication stage.

    `credentials_present` distinguishes a missing Authorization header from one
    that could not be verified. `user_exists` is False when the token verified
    but its subject no longer resolves to a user record.
    """

    principal: Principal | None
    credentials_present: bool
    user_exists: bool = True


ANONYMOUS = AuthContext(principal=None, credentials_present=False)


@dataclass(frozen=True)
class OwnedResource:
    """The author of the resource a route is about to mutate."""

    author_id: UUID


@dataclass(frozen=True)
class Decision:
    """ALLOW when `reason` is None, otherwise DENY with a stable error code."""

    reason: str | None = None

    @property
    def allowed(self) -> bool:
        return self.reason is None


ALLOW = Decision()


def deny(reason: str) -> Decision:
    return Decision(reason=reason)


def decide(
    requirement: Requirement,
    ctx: AuthContext,
    *,
    resource: OwnedResource | None = None,
    resource_name: str = "RESOURCE",
    target_user_id: UUID | None = None,
) -> Decision:
    """
    Evaluate the access policy; the first matching rule wins.

    Args:
        requirement: What the route requires.
        ctx: The authentication stage's output.
        resource: For OWNERSHIP, the target resource, or None if it does not exist.
        resource_name: Upper-case resource name used for `<NAME>_NOT_FOUND`.
        target_user_id: For ROLE_CHANGE, the user whose role would change.
    """
    if requirement == Requirement.PUBLIC:
        return ALLOW

    principal = ctx.principal
    if principal is None:
        return deny("INVALID_TOKEN" if ctx.credentials_present else "NO_TOKEN")
    if not ctx.user_exists:
        return deny("USER_NOT_FOUND")

    if requirement == Requirement.AUTHENTICATED:
        # Any resolved principal holds one of the two roles
        return ALLOW if principal.role in (UserRole.OWNER, UserRole.VISITOR) else deny("FORBIDDEN")

    if requirement == Requirement.OWNER_ROLE:
        return ALLOW if principal.is_owner else deny("FORBIDDEN")

    if requirement == Requirement.ROLE_CHANGE:
        if not principal.is_owner:
            return deny("FORBIDDEN")
        if target_user_id == principal.subject_id:
            return deny("CANNOT_CHANGE_OWN_ROLE")
        return ALLOW

    # Requirement.OWNERSHIP
    if resource is None:
        return deny(f"{resource_name}_NOT_FOUND")
    if principal.subject_id == resource.author_id or principal.is_owner:
        return ALLOW
    return deny("FORBIDDEN")


_MESSAGES = {
    "NO_TOKEN": "Access token required",
    "INVALID_TOKEN": "Invalid or expired token",
    "USER_NOT_FOUND": "User not found",
    "FORBIDDEN": "Insufficient permissions",
    "CANNOT_CHANGE_OWN_ROLE": "Cannot change your own role",
}


def to_error(decision: Decision) -> ApiError:
    """Map a DENY decision onto the API error taxonomy."""
    reason = decision.reason or "FORBIDDEN"
    if reason in ("NO_TOKEN", "INVALID_TOKEN", "USER_NOT_FOUND"):
        return AuthenticationError(_MESSAGES[reason], code=reason)
    if reason.endswith("_NOT_FOUND"):
        resource = reason.removesuffix("_NOT_FOUND").replace("_", " ").capitalize()
        return NotFoundError(f"{resource} not found", code=reason)
    return AuthorizationError(_MESSAGES.get(reason, _MESSAGES["FORBIDDEN"]), code=reason)


def enforce(decision: Decision) -> None:
    """Raise the matching API error if the decision is a DENY."""
    if not decision.allowed:
        raise to_error(decision)
