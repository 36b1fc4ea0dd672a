"""Normalization of the list envelopes returned by the storefront REST API.

The API answers list endpoints with any of::

    [...]
    {"items": [...], "pagination": {...}}
    {"data": {"items": [...], "pagination": {...}}}
    {"data": [...]}

Callers unwrap responses with these helpers before handing data to a cache.
"""

from typing import Any
from typing import Optional

from pydantic import AliasChoices
from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import ValidationError


class Pagination(BaseModel):
    """Pagination block of a list response."""

    model_config = ConfigDict(populate_by_name=True)

    page: int = 1
    limit: int = 0
    total: int = 0
    total_pages: int = Field(
        default=0, validation_alias=AliasChoices("total_pages", "totalPages")
    )
    has_next: bool = Field(
        default=False, validation_alias=AliasChoices("has_next", "hasNext")
    )
    has_prev: bool = Field(
        default=False, validation_alias=AliasChoices("has_prev", "hasPrev")
    )


def _envelope(payload: Any) -> Optional[dict]:
    if not isinstance(payload, dict):
        return None
    data = payload.get("data")
    if isinstance(data, dict):
        return data
    return payload


def extract_items(payload: Any) -> list:
    """Return the list of records carried by a list response."""
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, dict):
        return []

    envelope = _envelope(payload)
    if envelope is not None and isinstance(envelope.get("items"), list):
        return envelope["items"]

    data = payload.get("data")
    if isinstance(data, list):
        return data
    return []


def extract_pagination(payload: Any) -> Optional[Pagination]:
    """Return the pagination block of a list response, if it has a valid one."""
    envelope = _envelope(payload)
    if envelope is None or not isinstance(envelope.get("pagination"), dict):
        return None
    try:
        return Pagination.model_validate(envelope["pagination"])
    except ValidationError:
        return None
