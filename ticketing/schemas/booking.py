"""Booking schemas, including the detail views that combine events and bookings."""

import uuid
from datetime import datetime

from pydantic import EmailStr, Field, field_serializer, field_validator

from ticketing.schemas.common import AvailabilityResponse, BaseSchema
from ticketing.schemas.event import EventResponse
from ticketing.stores.base import as_utc

EMAIL_MAX_LENGTH = 100


def _check_email_length(value: str) -> str:
    if len(value) > EMAIL_MAX_LENGTH:
        raise ValueError(f"email must be at most {EMAIL_MAX_LENGTH} characters")
    return value


class BookingCreate(BaseSchema):
    """Schema for creating a booking."""

    event_id: uuid.UUID
    user_email: EmailStr
    num_tickets: int = Field(..., ge=1)

    @field_validator("user_email")
    @classmethod
    def email_length(cls, value: str) -> str:
        return _check_email_length(value)


class BookingUpdate(BaseSchema):
    """Schema for updating a booking; only the fields sent are changed."""

    event_id: uuid.UUID | None = None
    user_email: EmailStr | None = None
    num_tickets: int | None = Field(None, ge=1)

    @field_validator("event_id", "num_tickets")
    @classmethod
    def not_null(cls, value):
        if value is None:
            raise ValueError("may not be null")
        return value

    @field_validator("user_email")
    @classmethod
    def email_length(cls, value: str | None) -> str:
        if value is None:
            raise ValueError("may not be null")
        return _check_email_length(value)


class BookingResponse(BaseSchema):
    """Schema for booking response."""

    id: uuid.UUID
    event_id: uuid.UUID
    user_email: str
    num_tickets: int
    created_at: datetime
    updated_at: datetime

    @field_serializer("created_at", "updated_at")
    def serialize_utc(self, value: datetime) -> datetime:
        return as_utc(value)


class BookingDetailResponse(BookingResponse):
    """Booking with the booked event."""

    event: EventResponse | None = None


class BookingCreatedResponse(BaseSchema):
    """Created booking and the availability it was admitted against."""

    booking: BookingResponse
    availability: AvailabilityResponse


class EventDetailResponse(EventResponse):
    """Event with its bookings, present when requested."""

    bookings: list[BookingResponse] | None = None
