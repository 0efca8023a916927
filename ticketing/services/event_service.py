"""Event service."""

import logging
import uuid
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.event_lock import EventLockManager
from ticketing.models.event import Event
from ticketing.schemas.event import EventCreate, EventUpdate
from ticketing.services.availability import Availability, check_availability
from ticketing.services.booking_transaction import BookingTransactionManager
from ticketing.stores.base import translate_storage_errors
from ticketing.stores.booking_store import BookingStore
from ticketing.stores.event_store import EventStore

logger = logging.getLogger(__name__)


class EventService:
    """Service for event operations."""

    def __init__(
        self,
        db: AsyncSession,
        locks: EventLockManager,
        allow_capacity_below_booked: bool = False,
    ):
        self.db = db
        self.events = EventStore(db)
        self.bookings = BookingStore(db)
        self.transactions = BookingTransactionManager(db, locks)
        self.allow_capacity_below_booked = allow_capacity_below_booked

    @translate_storage_errors
    async def create_event(self, event_data: EventCreate) -> Event:
        """Create a new event."""
        event = await self.events.create(
            name=event_data.name,
            description=event_data.description,
            date=event_data.date,
            capacity=event_data.capacity,
        )
        await self.db.commit()
        await self.db.refresh(event)
        logger.info(f"Created event {event.id} with capacity {event.capacity}")
        return event

    async def get_events(
        self,
        name: str | None = None,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
    ) -> list[Event]:
        """Get events with optional filtering."""
        return await self.events.find_all(
            name_pattern=name,
            date_from=date_from,
            date_to=date_to,
        )

    async def get_event(self, event_id: uuid.UUID, include_bookings: bool = False) -> Event:
        """Get event by ID, optionally with its bookings."""
        return await self.events.find_by_id(event_id, include_bookings=include_bookings)

    @translate_storage_errors
    async def update_event(self, event_id: uuid.UUID, event_data: EventUpdate) -> Event:
        """
        Update an event.

        A capacity change is checked against the tickets already booked
        while the event is locked.
        """
        update_data = event_data.model_dump(exclude_unset=True)

        if "capacity" in update_data:
            return await self.transactions.try_update_event(
                event_id,
                update_data,
                allow_capacity_below_booked=self.allow_capacity_below_booked,
            )

        event = await self.events.update(event_id, update_data)
        await self.db.commit()
        await self.db.refresh(event)
        return event

    @translate_storage_errors
    async def delete_event(self, event_id: uuid.UUID) -> None:
        """Delete an event together with all its bookings."""
        await self.events.delete(event_id)
        await self.db.commit()
        logger.info(f"Deleted event {event_id}")

    async def check_availability(self, event_id: uuid.UUID, requested_tickets: int = 1) -> Availability:
        """Check whether the requested number of tickets is still available."""
        event = await self.events.find_by_id(event_id)
        booked = await self.bookings.sum_tickets(event_id)
        return check_availability(event.capacity, booked, requested_tickets)
