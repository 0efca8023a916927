"""Pydantic schemas for API request/response."""

from ticketing.schemas.booking import (
    BookingCreate,
    BookingCreatedResponse,
    BookingDetailResponse,
    BookingResponse,
    BookingUpdate,
    EventDetailResponse,
)
from ticketing.schemas.common import (
    AvailabilityResponse,
    ErrorResponse,
    ListResponse,
    StatusResponse,
    SuccessResponse,
)
from ticketing.schemas.event import EventCreate, EventResponse, EventUpdate

__all__ = [
    "EventCreate",
    "EventUpdate",
    "EventResponse",
    "EventDetailResponse",
    "AvailabilityResponse",
    "BookingCreate",
    "BookingUpdate",
    "BookingResponse",
    "BookingDetailResponse",
    "BookingCreatedResponse",
    "ListResponse",
    "ErrorResponse",
    "SuccessResponse",
    "StatusResponse",
]
