"""Validation of query-string parameter models."""
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from core.errors import ValidationError

M = TypeVar("M", bound=BaseModel)


def field_errors(errors: list[dict[str, Any]]) -> list[dict[str, str]]:
    """Flatten pydantic errors into `[{field, message}]`, one entry per failure."""
    details = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        details.append({"field": ".".join(loc) or "request", "message": error.get("msg", "")})
    return details


def parse_params(model: type[M], **values: Any) -> M:
    """
    Validate raw query values against a parameter model.

    Missing values are left to the model's defaults. Every failing field is
    reported, not just the first.
    """
    try:
        return model.model_validate({k: v for k, v in values.items() if v is not None})
    except PydanticValidationError as e:
        raise ValidationError(details=field_errors(e.errors())) from e
