"""Pydantic v2 models for Restaurant Tracker.

These models define the canonical entities served by the API:
- Restaurant (a licensed general restaurant)
- IngestionStatus (process-wide crawl state)
- RestaurantQuery, RestaurantPage (listing request/response)
"""

from datetime import UTC, date, datetime
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

from restaurant_tracker.core.enums import IngestionState, SortOrder

DEFAULT_LICENCE_TYPE = "General Restaurant Licence"
STATUS_KEY = "status"


def _utc_now() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(UTC)


def _generate_id() -> str:
    """Generate an opaque record identifier."""
    return str(uuid4())


class Restaurant(BaseModel):
    """
    Canonical licensed restaurant record.

    `first_seen` is set once on creation; `new_flag` marks records first
    seen within the recently-added window.
    """

    id: str = Field(default_factory=_generate_id)
    name: str
    district: str | None = None
    address: str | None = None
    licence_no: str = ""
    licence_type: str = DEFAULT_LICENCE_TYPE
    valid_til: date | None = None
    first_seen: datetime = Field(default_factory=_utc_now)
    new_flag: bool = True

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("name cannot be empty")
        return v.strip()

    @field_validator("licence_no")
    @classmethod
    def strip_licence_whitespace(cls, v: str) -> str:
        return "".join(v.split())


class IngestionStatus(BaseModel):
    """The singleton ingestion status row."""

    key: str = STATUS_KEY
    value: IngestionState = IngestionState.NOT_STARTED
    updated_at: datetime | None = None


class RestaurantQuery(BaseModel):
    """Request parameters for the restaurant listing."""

    district: str | None = None
    search: str | None = None
    sort: SortOrder = SortOrder.NEWEST
    limit: int = Field(default=100, ge=1)
    offset: int = Field(default=0, ge=0)


class RestaurantPage(BaseModel):
    """One page of listing results plus the filtered total."""

    restaurants: list[Restaurant] = Field(default_factory=list)
    total: int = 0
