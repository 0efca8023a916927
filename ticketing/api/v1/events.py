"""Events API endpoints."""

import uuid
from datetime import datetime

from fastapi import APIRouter, Query, status

from ticketing.api.v1.dependencies import EventServiceDep
from ticketing.schemas.booking import BookingResponse, EventDetailResponse
from ticketing.schemas.common import AvailabilityResponse, ListResponse, SuccessResponse
from ticketing.schemas.event import EventCreate, EventResponse, EventUpdate

router = APIRouter()


@router.post(
    "",
    response_model=EventResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new event",
)
async def create_event(
    event_data: EventCreate,
    event_service: EventServiceDep,
) -> EventResponse:
    """Create a new event."""
    event = await event_service.create_event(event_data)
    return EventResponse.model_validate(event)


@router.get(
    "",
    response_model=ListResponse[EventResponse],
    summary="List events",
)
async def list_events(
    event_service: EventServiceDep,
    name: str | None = Query(None, description="Case-insensitive substring of the name"),
    date_from: datetime | None = Query(None, alias="dateFrom"),
    date_to: datetime | None = Query(None, alias="dateTo"),
) -> ListResponse[EventResponse]:
    """List events ordered by date, optionally filtered by name and date range."""
    events = await event_service.get_events(name=name, date_from=date_from, date_to=date_to)
    return ListResponse(
        items=[EventResponse.model_validate(e) for e in events],
        count=len(events),
    )


@router.get(
    "/{event_id}",
    response_model=EventDetailResponse,
    summary="Get event details",
)
async def get_event(
    event_id: uuid.UUID,
    event_service: EventServiceDep,
    include_bookings: bool = Query(False, alias="includeBookings"),
) -> EventDetailResponse:
    """Get event details, with its bookings when requested."""
    event = await event_service.get_event(event_id, include_bookings=include_bookings)

    response = EventDetailResponse.model_validate(EventResponse.model_validate(event).model_dump())
    if include_bookings:
        response.bookings = [BookingResponse.model_validate(b) for b in event.bookings]
    return response


@router.put(
    "/{event_id}",
    response_model=EventResponse,
    summary="Update event",
)
async def update_event(
    event_id: uuid.UUID,
    event_data: EventUpdate,
    event_service: EventServiceDep,
) -> EventResponse:
    """
    Update an event.

    Lowering the capacity below the tickets already booked is rejected.
    """
    event = await event_service.update_event(event_id, event_data)
    return EventResponse.model_validate(event)


@router.delete(
    "/{event_id}",
    response_model=SuccessResponse,
    summary="Delete event",
)
async def delete_event(
    event_id: uuid.UUID,
    event_service: EventServiceDep,
) -> SuccessResponse:
    """Delete an event and all of its bookings."""
    await event_service.delete_event(event_id)
    return SuccessResponse(message="Event deleted")


@router.get(
    "/{event_id}/availability",
    response_model=AvailabilityResponse,
    summary="Check ticket availability",
)
async def check_availability(
    event_id: uuid.UUID,
    event_service: EventServiceDep,
    tickets: int = Query(1, ge=1),
) -> AvailabilityResponse:
    """Check whether an event still has the requested number of tickets."""
    availability = await event_service.check_availability(event_id, tickets)
    return AvailabilityResponse.model_validate(availability)
