"""Booking service."""

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.event_lock import EventLockManager
from ticketing.models.booking import Booking
from ticketing.schemas.booking import BookingCreate, BookingUpdate
from ticketing.services.availability import Availability
from ticketing.services.booking_transaction import BookingTransactionManager
from ticketing.stores.base import translate_storage_errors
from ticketing.stores.booking_store import BookingStore

logger = logging.getLogger(__name__)


class BookingService:
    """Service for booking operations; admissions go through the transaction manager."""

    def __init__(self, db: AsyncSession, locks: EventLockManager):
        self.db = db
        self.bookings = BookingStore(db)
        self.transactions = BookingTransactionManager(db, locks)

    async def create_booking(self, booking_data: BookingCreate) -> tuple[Booking, Availability]:
        """
        Create a booking if the event still has enough tickets.

        Returns:
            Tuple of (booking, availability at admission time)

        Raises:
            NotFoundError: If the event does not exist
            CapacityExceededError: If not enough tickets are left
        """
        return await self.transactions.try_create_booking(
            event_id=booking_data.event_id,
            requested_tickets=booking_data.num_tickets,
            user_email=booking_data.user_email,
        )

    async def get_bookings(
        self,
        user_email: str | None = None,
        event_id: uuid.UUID | None = None,
    ) -> list[Booking]:
        """Get bookings, newest first, with their events loaded."""
        return await self.bookings.find_all(
            user_email=user_email,
            event_id=event_id,
            include_event=True,
        )

    async def get_booking(self, booking_id: uuid.UUID) -> Booking:
        """Get booking by ID with its event loaded."""
        return await self.bookings.find_by_id(booking_id, include_event=True)

    async def get_event_bookings(self, event_id: uuid.UUID) -> list[Booking]:
        """Get all bookings of an event, newest first."""
        return await self.bookings.find_by_event(event_id)

    @translate_storage_errors
    async def update_booking(self, booking_id: uuid.UUID, booking_data: BookingUpdate) -> Booking:
        """
        Update a booking.

        Moving to another event admits the full ticket count there; raising
        the ticket count admits only the increase.
        """
        update_data = booking_data.model_dump(exclude_unset=True)
        new_event_id = update_data.pop("event_id", None)

        if new_event_id is not None:
            current = await self.bookings.find_by_id(booking_id)
            if current.event_id != new_event_id:
                return await self.transactions.try_move_booking(
                    booking_id, new_event_id, update_data
                )

        if "num_tickets" in update_data:
            new_ticket_count = update_data.pop("num_tickets")
            return await self.transactions.try_increase_booking(
                booking_id, new_ticket_count, update_data
            )

        booking = await self.bookings.update(booking_id, update_data)
        await self.db.commit()
        await self.db.refresh(booking)
        return booking

    @translate_storage_errors
    async def delete_booking(self, booking_id: uuid.UUID) -> None:
        """Delete a booking, freeing its tickets."""
        await self.bookings.delete(booking_id)
        await self.db.commit()
        logger.info(f"Deleted booking {booking_id}")
