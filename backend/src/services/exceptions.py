"""Domain exceptions raised by the service layer.

Each one is an ApiError, so routers let them propagate and the application's
exception handler renders them with their stable code.
"""
from core.errors import AuthenticationError, ConflictError, NotFoundError, ValidationError


class NoteNotFoundError(NotFoundError):
    code = "NOTE_NOT_FOUND"
    message = "Note not found"


class CommentNotFoundError(NotFoundError):
    code = "COMMENT_NOT_FOUND"
    message = "Comment not found"


class ParentCommentNotFoundError(NotFoundError):
    code = "PARENT_COMMENT_NOT_FOUND"
    message = "Parent comment not found"


class InvalidParentCommentError(ValidationError):
    """Raised when a reply's parent belongs to a different note."""

    code = "INVALID_PARENT_COMMENT"
    message = "Parent comment does not belong to this note"


class CategoryNotFoundError(NotFoundError):
    code = "CATEGORY_NOT_FOUND"
    message = "Category not found"


class InvalidCategoryError(ValidationError):
    """Raised when a note references a category that does not exist."""

    code = "INVALID_CATEGORY"
    message = "Category not found"


class CategoryExistsError(ConflictError):
    status_code = 409
    code = "CATEGORY_EXISTS"
    message = "Category with this name already exists"


class CategoryInUseError(ConflictError):
    """Raised when deleting a category that still has notes."""

    code = "CATEGORY_IN_USE"

    def __init__(self, note_count: int) -> None:
        self.note_count = note_count
        super().__init__(
            f"Cannot delete category with {note_count} associated notes",
            details={"noteCount": note_count},
        )


class TagNotFoundError(NotFoundError):
    code = "TAG_NOT_FOUND"
    message = "Tag not found"


class InvalidTagsError(ValidationError):
    """Raised when a note references tag ids that do not exist."""

    code = "INVALID_TAGS"
    message = "One or more tags not found"


class TagExistsError(ConflictError):
    status_code = 409
    code = "TAG_EXISTS"
    message = "Tag with this name already exists"


class TagInUseError(ConflictError):
    """Raised when deleting a tag that is still attached to notes."""

    code = "TAG_IN_USE"

    def __init__(self, note_count: int) -> None:
        self.note_count = note_count
        super().__init__(
            f"Cannot delete tag used by {note_count} notes",
            details={"noteCount": note_count},
        )


class UserExistsError(ConflictError):
    status_code = 409
    code = "USER_EXISTS"
    message = "User with this email already exists"


class UserNotFoundError(NotFoundError):
    code = "USER_NOT_FOUND"
    message = "User not found"


class InvalidCredentialsError(AuthenticationError):
    """Unknown email, passwordless account, or wrong password."""

    code = "INVALID_CREDENTIALS"
    message = "Invalid email or password"


class DuplicateLikeError(ConflictError):
    code = "DUPLICATE_LIKE"
    message = "You have already liked this note"


class SlugConflictError(ConflictError):
    """Raised when a concurrent write claimed the generated slug first."""

    status_code = 409
    code = "SLUG_EXISTS"
    message = "A resource with this slug already exists, please retry"
