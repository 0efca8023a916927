"""Bookings API endpoints."""

import uuid

from fastapi import APIRouter, status

from ticketing.api.v1.dependencies import BookingServiceDep
from ticketing.schemas.booking import (
    BookingCreate,
    BookingCreatedResponse,
    BookingDetailResponse,
    BookingResponse,
    BookingUpdate,
)
from ticketing.schemas.common import AvailabilityResponse, ListResponse, SuccessResponse

router = APIRouter()


@router.post(
    "",
    response_model=BookingCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create booking",
)
async def create_booking(
    booking_data: BookingCreate,
    booking_service: BookingServiceDep,
) -> BookingCreatedResponse:
    """
    Create a booking.

    The availability check and the insert run as one unit per event, so
    concurrent requests can never book more tickets than the event holds.
    """
    booking, availability = await booking_service.create_booking(booking_data)
    return BookingCreatedResponse(
        booking=BookingResponse.model_validate(booking),
        availability=AvailabilityResponse.model_validate(availability),
    )


@router.get(
    "",
    response_model=ListResponse[BookingDetailResponse],
    summary="List bookings",
)
async def list_bookings(
    booking_service: BookingServiceDep,
    user_email: str | None = None,
    event_id: uuid.UUID | None = None,
) -> ListResponse[BookingDetailResponse]:
    """List bookings, newest first, filtered by user email and/or event."""
    bookings = await booking_service.get_bookings(user_email=user_email, event_id=event_id)
    return ListResponse(
        items=[BookingDetailResponse.model_validate(b) for b in bookings],
        count=len(bookings),
    )


@router.get(
    "/event/{event_id}",
    response_model=ListResponse[BookingResponse],
    summary="List bookings of an event",
)
async def list_event_bookings(
    event_id: uuid.UUID,
    booking_service: BookingServiceDep,
) -> ListResponse[BookingResponse]:
    """List all bookings of an event, newest first."""
    bookings = await booking_service.get_event_bookings(event_id)
    return ListResponse(
        items=[BookingResponse.model_validate(b) for b in bookings],
        count=len(bookings),
    )


@router.get(
    "/{booking_id}",
    response_model=BookingDetailResponse,
    summary="Get booking details",
)
async def get_booking(
    booking_id: uuid.UUID,
    booking_service: BookingServiceDep,
) -> BookingDetailResponse:
    """Get booking details with the booked event."""
    booking = await booking_service.get_booking(booking_id)
    return BookingDetailResponse.model_validate(booking)


@router.put(
    "/{booking_id}",
    response_model=BookingResponse,
    summary="Update booking",
)
async def update_booking(
    booking_id: uuid.UUID,
    booking_data: BookingUpdate,
    booking_service: BookingServiceDep,
) -> BookingResponse:
    """
    Update a booking.

    Ticket increases are admitted against the remaining capacity;
    decreases always succeed.
    """
    booking = await booking_service.update_booking(booking_id, booking_data)
    return BookingResponse.model_validate(booking)


@router.delete(
    "/{booking_id}",
    response_model=SuccessResponse,
    summary="Delete booking",
)
async def delete_booking(
    booking_id: uuid.UUID,
    booking_service: BookingServiceDep,
) -> SuccessResponse:
    """Delete a booking, freeing its tickets."""
    await booking_service.delete_booking(booking_id)
    return SuccessResponse(message="Booking deleted")
