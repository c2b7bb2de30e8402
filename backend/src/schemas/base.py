"""Base schema types shared by every endpoint."""
from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Snake_case attributes in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ApiResponse(BaseModel, Generic[T]):
    """Success envelope: `{success: true, data, message?}`."""

    success: Literal[True] = True
    data: T
    message: str | None = None


class Page(CamelModel, Generic[T]):
    """One page of a listing with its pagination metadata."""

    data: list[T]
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


def success(data: Any, message: str | None = None) -> dict[str, Any]:
    """Wrap JSON-ready data in the success envelope."""
    body: dict[str, Any] = {"success": True, "data": data}
    if message is not None:
        body["message"] = message
    return body


def dump(model: BaseModel) -> dict[str, Any]:
    """Serialize a response schema to its JSON wire form."""
    return model.model_dump(mode="json", by_alias=True)
