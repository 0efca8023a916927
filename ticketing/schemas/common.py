"""Common schema utilities."""

from datetime import datetime, timezone
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict

from ticketing.stores.base import as_utc

T = TypeVar("T")


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
    )


def utc_not_in_past(value: datetime) -> datetime:
    """Normalize a timestamp to UTC (naive means UTC) and reject past values."""
    value = as_utc(value)
    if value < datetime.now(timezone.utc):
        raise ValueError("date cannot be in the past")
    return value


class ListResponse(BaseModel, Generic[T]):
    """List response wrapper."""

    items: list[T]
    count: int


class AvailabilityResponse(BaseSchema):
    """Ticket availability of an event."""

    available: bool
    capacity: int
    booked: int
    remaining: int
    requested: int


class ErrorResponse(BaseModel):
    """Error response schema."""

    error: str
    detail: str | None = None
    timestamp: datetime
    availability: AvailabilityResponse | None = None


class SuccessResponse(BaseModel):
    """Simple success response."""

    success: bool = True
    message: str


class StatusResponse(BaseModel):
    """API status."""

    status: str
    version: str
    timestamp: datetime
