"""API helper utilities."""
from api.helpers.params import parse_params
from api.helpers.writes import commit_and_invalidate

__all__ = [
    "commit_and_invalidate",
    "parse_params",
]
