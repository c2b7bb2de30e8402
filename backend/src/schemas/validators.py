"""
Shared validation functions for Pydantic schemas.

Text fields are sanitized in `mode="before"` validators so length limits apply
to what will actually be stored.
"""
import re
from typing import Any

from core.sanitize import sanitize_html, sanitize_text

# Tag names: letters, digits, hyphens and underscores
TAG_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")

# Display names: letters and spaces
NAME_PATTERN = re.compile(r"^[a-zA-Z\s]+$")

# Hex colour, e.g. '#3B82F6'
COLOR_PATTERN = re.compile(r"^#[0-9a-fA-F]{6}$")


def clean_text(value: Any) -> Any:
    """Strip markup from a plain-text field and trim surrounding whitespace."""
    if not isinstance(value, str):
        return value
    return sanitize_text(value).strip()


def clean_rich_text(value: Any) -> Any:
    """Keep basic formatting tags in rich content and trim surrounding whitespace."""
    if not isinstance(value, str):
        return value
    return sanitize_html(value).strip()


def validate_tag_name(name: str) -> str:
    """
    Validate a single tag name.

    Raises:
        ValueError: If the name has characters other than letters, digits, '-' or '_'.
    """
    if not TAG_NAME_PATTERN.match(name):
        raise ValueError(
            "Tag name can only contain letters, numbers, hyphens, and underscores",
        )
    return name


def validate_color(color: str) -> str:
    if not COLOR_PATTERN.match(color):
        raise ValueError("Please enter a valid hex color (e.g., #FF0000)")
    return color.upper()


def normalize_search(value: Any) -> Any:
    """Sanitize a search string and collapse internal whitespace; blank becomes None."""
    if not isinstance(value, str):
        return value
    collapsed = " ".join(sanitize_text(value).split())
    return collapsed or None
