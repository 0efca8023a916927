"""Booking admission under per-event serialization."""

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.event_lock import EventLockManager
from ticketing.exceptions import CapacityExceededError, ForeignKeyError, NotFoundError
from ticketing.models.booking import Booking
from ticketing.models.event import Event
from ticketing.services.availability import Availability, check_availability
from ticketing.stores.base import translate_storage_errors
from ticketing.stores.booking_store import BookingStore
from ticketing.stores.event_store import EventStore

logger = logging.getLogger(__name__)


class BookingTransactionManager:
    """
    Runs every read-check-write sequence on an event's booked total as one
    unit: compute the current sum, decide, persist and commit.

    Each unit holds the event's lock from the lock manager and the event
    row lock (``SELECT ... FOR UPDATE``) until the transaction has been
    committed or rolled back, so two concurrent admissions on the same event
    can never both read the same booked sum. Admissions on different events
    proceed in parallel.
    """

    def __init__(self, db: AsyncSession, locks: EventLockManager):
        self.db = db
        self.locks = locks
        self.events = EventStore(db)
        self.bookings = BookingStore(db)

    async def _admit(self, event: Event, requested: int) -> Availability:
        booked = await self.bookings.sum_tickets(event.id)
        availability = check_availability(event.capacity, booked, requested)
        if not availability.available:
            logger.info(
                f"Rejected {requested} tickets for event {event.id}: "
                f"{availability.remaining} of {availability.capacity} remaining"
            )
            raise CapacityExceededError(availability)
        return availability

    async def _lock_booking_event(self, event_id: uuid.UUID, booking_id: uuid.UUID) -> Event:
        try:
            return await self.events.find_by_id(event_id, for_update=True)
        except NotFoundError:
            # The event was deleted and its bookings with it
            raise NotFoundError("Booking", booking_id)

    async def _current_event_id(self, booking_id: uuid.UUID) -> uuid.UUID:
        booking = await self.bookings.find_by_id(booking_id)
        event_id = booking.event_id
        # The locked unit must start a new transaction so its reads see every
        # admission committed while it waited for the lock
        await self.db.commit()
        return event_id

    @translate_storage_errors
    async def try_create_booking(
        self,
        event_id: uuid.UUID,
        requested_tickets: int,
        user_email: str,
    ) -> tuple[Booking, Availability]:
        """
        Admit and persist a new booking.

        Returns:
            Tuple of (created booking, availability the admission was based on)

        Raises:
            NotFoundError: If the event does not exist
            CapacityExceededError: If fewer than ``requested_tickets`` remain
        """
        async with self.locks.hold(event_id):
            try:
                event = await self.events.find_by_id(event_id, for_update=True)
                availability = await self._admit(event, requested_tickets)
                booking = await self.bookings.create(
                    event_id=event_id,
                    user_email=user_email,
                    num_tickets=requested_tickets,
                )
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                raise

        await self.db.refresh(booking)
        logger.info(
            f"Booked {requested_tickets} tickets for event {event_id} "
            f"(booking {booking.id}, {availability.remaining - requested_tickets} left)"
        )
        return booking, availability

    @translate_storage_errors
    async def try_increase_booking(
        self,
        booking_id: uuid.UUID,
        new_ticket_count: int,
        changes: dict | None = None,
    ) -> Booking:
        """
        Change a booking's ticket count, re-admitting only the increase.

        The booked sum already includes the booking's current allocation, so
        only the delta has to fit into the remaining capacity. Decreases
        always succeed.

        Args:
            booking_id: Booking ID
            new_ticket_count: Requested ticket count
            changes: Other booking fields to update in the same transaction

        Raises:
            NotFoundError: If the booking does not exist
            CapacityExceededError: If the increase does not fit
        """
        changes = dict(changes or {})
        changes["num_tickets"] = new_ticket_count

        while True:
            event_id = await self._current_event_id(booking_id)

            async with self.locks.hold(event_id):
                try:
                    # Event row before booking row, the order a cascading delete uses
                    event = await self._lock_booking_event(event_id, booking_id)
                    booking = await self.bookings.find_by_id(booking_id, for_update=True)
                    if booking.event_id != event_id:
                        # Moved to another event while we waited for the lock
                        await self.db.rollback()
                        continue

                    delta = new_ticket_count - booking.num_tickets
                    if delta > 0:
                        await self._admit(event, delta)

                    booking = await self.bookings.update(booking_id, changes)
                    await self.db.commit()
                except Exception:
                    await self.db.rollback()
                    raise

            await self.db.refresh(booking)
            return booking

    @translate_storage_errors
    async def try_move_booking(
        self,
        booking_id: uuid.UUID,
        new_event_id: uuid.UUID,
        changes: dict | None = None,
    ) -> Booking:
        """
        Move a booking to another event.

        The booking's full ticket count (after ``changes``) is admitted
        against the target event while both events are locked. Leaving the
        old event frees its tickets implicitly.

        Raises:
            NotFoundError: If the booking does not exist
            ForeignKeyError: If the target event does not exist
            CapacityExceededError: If the target event has too few tickets left
        """
        changes = dict(changes or {})
        changes["event_id"] = new_event_id

        while True:
            event_id = await self._current_event_id(booking_id)

            async with self.locks.hold(event_id, new_event_id):
                try:
                    locked: dict[uuid.UUID, Event] = {}
                    for locked_id in sorted({event_id, new_event_id}, key=str):
                        if locked_id == new_event_id:
                            try:
                                locked[locked_id] = await self.events.find_by_id(
                                    locked_id, for_update=True
                                )
                            except NotFoundError:
                                raise ForeignKeyError(new_event_id)
                        else:
                            locked[locked_id] = await self._lock_booking_event(
                                locked_id, booking_id
                            )
                    target = locked[new_event_id]

                    booking = await self.bookings.find_by_id(booking_id, for_update=True)
                    if booking.event_id != event_id:
                        await self.db.rollback()
                        continue

                    requested = changes.get("num_tickets", booking.num_tickets)
                    if target.id == event_id:
                        requested -= booking.num_tickets
                    if requested > 0:
                        await self._admit(target, requested)

                    booking = await self.bookings.update(booking_id, changes)
                    await self.db.commit()
                except Exception:
                    await self.db.rollback()
                    raise

            await self.db.refresh(booking)
            logger.info(f"Moved booking {booking_id} from event {event_id} to {new_event_id}")
            return booking

    @translate_storage_errors
    async def try_update_event(
        self,
        event_id: uuid.UUID,
        changes: dict,
        allow_capacity_below_booked: bool = False,
    ) -> Event:
        """
        Update an event, checking a capacity change against existing bookings.

        Raises:
            NotFoundError: If the event does not exist
            CapacityExceededError: If the new capacity is below the booked sum
                and ``allow_capacity_below_booked`` is off
        """
        async with self.locks.hold(event_id):
            try:
                event = await self.events.find_by_id(event_id, for_update=True)

                new_capacity = changes.get("capacity")
                if new_capacity is not None and not allow_capacity_below_booked:
                    booked = await self.bookings.sum_tickets(event_id)
                    availability = check_availability(new_capacity, booked, 0)
                    if not availability.available:
                        logger.info(
                            f"Rejected capacity {new_capacity} for event {event_id}: "
                            f"{booked} tickets already booked"
                        )
                        raise CapacityExceededError(
                            availability,
                            f"Capacity {new_capacity} is below the {booked} tickets already booked",
                        )

                event = await self.events.update(event_id, changes)
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                raise

        await self.db.refresh(event)
        return event
