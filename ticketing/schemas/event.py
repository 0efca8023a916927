"""Event schemas."""

import uuid
from datetime import datetime

from pydantic import Field, field_serializer, field_validator

from ticketing.schemas.common import BaseSchema, utc_not_in_past
from ticketing.stores.base import as_utc


class EventCreate(BaseSchema):
    """Schema for creating an event."""

    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = None
    date: datetime
    capacity: int = Field(..., ge=1)

    @field_validator("date")
    @classmethod
    def date_not_in_past(cls, value: datetime) -> datetime:
        return utc_not_in_past(value)


class EventUpdate(BaseSchema):
    """Schema for updating an event; only the fields sent are changed."""

    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = None
    date: datetime | None = None
    capacity: int | None = Field(None, ge=1)

    @field_validator("name", "capacity")
    @classmethod
    def not_null(cls, value):
        if value is None:
            raise ValueError("may not be null")
        return value

    @field_validator("date")
    @classmethod
    def date_not_in_past(cls, value: datetime | None) -> datetime:
        if value is None:
            raise ValueError("may not be null")
        return utc_not_in_past(value)


class EventResponse(BaseSchema):
    """Schema for event response."""

    id: uuid.UUID
    name: str
    description: str | None
    date: datetime
    capacity: int
    created_at: datetime
    updated_at: datetime

    @field_serializer("date", "created_at", "updated_at")
    def serialize_utc(self, value: datetime) -> datetime:
        return as_utc(value)
