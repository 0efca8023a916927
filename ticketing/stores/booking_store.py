"""Booking store."""

import uuid

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ticketing.exceptions import ForeignKeyError, NotFoundError, ValidationError
from ticketing.models.booking import Booking
from ticketing.stores.base import translate_storage_errors

BOOKING_FIELDS = {"event_id", "user_email", "num_tickets"}
EMAIL_MAX_LENGTH = 100


def validate_booking_fields(fields: dict) -> None:
    """
    Re-validate booking fields before they reach the database.

    Raises:
        ValidationError: On unknown fields or invalid values
    """
    unknown = set(fields) - BOOKING_FIELDS
    if unknown:
        raise ValidationError(f"Unknown booking fields: {', '.join(sorted(unknown))}")

    if "event_id" in fields and not isinstance(fields["event_id"], uuid.UUID):
        raise ValidationError("Booking event_id must be a UUID")

    if "user_email" in fields:
        email = fields["user_email"]
        if not isinstance(email, str) or len(email) > EMAIL_MAX_LENGTH:
            raise ValidationError(
                f"Booking user_email must be at most {EMAIL_MAX_LENGTH} characters"
            )
        try:
            validate_email(email, check_deliverability=False)
        except EmailNotValidError as e:
            raise ValidationError(f"Invalid user_email: {e}")

    if "num_tickets" in fields:
        num_tickets = fields["num_tickets"]
        if isinstance(num_tickets, bool) or not isinstance(num_tickets, int) or num_tickets < 1:
            raise ValidationError("Booking num_tickets must be an integer of at least 1")


class BookingStore:
    """Durable record of bookings, each referencing exactly one event."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _flush(self, event_id: uuid.UUID) -> None:
        try:
            await self.db.flush()
        except IntegrityError as e:
            raise ForeignKeyError(event_id) from e

    @translate_storage_errors
    async def create(
        self,
        event_id: uuid.UUID,
        user_email: str,
        num_tickets: int,
    ) -> Booking:
        """
        Insert a new booking.

        Raises:
            ValidationError: On malformed email or ticket count
            ForeignKeyError: If event_id does not reference an existing event
        """
        validate_booking_fields(
            {"event_id": event_id, "user_email": user_email, "num_tickets": num_tickets}
        )
        booking = Booking(event_id=event_id, user_email=user_email, num_tickets=num_tickets)
        self.db.add(booking)
        await self._flush(event_id)
        return booking

    @translate_storage_errors
    async def find_by_id(
        self,
        booking_id: uuid.UUID,
        *,
        for_update: bool = False,
        include_event: bool = False,
    ) -> Booking:
        """
        Get booking by ID.

        Raises:
            NotFoundError: If the booking does not exist
        """
        query = select(Booking).where(Booking.id == booking_id)
        if include_event:
            query = query.options(selectinload(Booking.event))
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)

        result = await self.db.execute(query)
        booking = result.scalar_one_or_none()
        if booking is None:
            raise NotFoundError("Booking", booking_id)
        return booking

    @translate_storage_errors
    async def find_all(
        self,
        user_email: str | None = None,
        event_id: uuid.UUID | None = None,
        include_event: bool = False,
    ) -> list[Booking]:
        """List bookings matching every given filter exactly, newest first."""
        query = select(Booking)

        if user_email is not None:
            query = query.where(Booking.user_email == user_email)
        if event_id is not None:
            query = query.where(Booking.event_id == event_id)
        if include_event:
            query = query.options(selectinload(Booking.event))

        query = query.order_by(Booking.created_at.desc(), Booking.id.desc())

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def find_by_event(self, event_id: uuid.UUID) -> list[Booking]:
        """List an event's bookings, newest first."""
        return await self.find_all(event_id=event_id)

    @translate_storage_errors
    async def update(self, booking_id: uuid.UUID, changes: dict) -> Booking:
        """
        Apply a partial update to a booking.

        Capacity is not checked here; ticket increases and event changes
        must be admitted by the transaction manager first.
        """
        validate_booking_fields(changes)
        booking = await self.find_by_id(booking_id)

        for field, value in changes.items():
            setattr(booking, field, value)

        await self._flush(booking.event_id)
        return booking

    @translate_storage_errors
    async def delete(self, booking_id: uuid.UUID) -> None:
        """Delete a booking, implicitly freeing its tickets."""
        result = await self.db.execute(delete(Booking).where(Booking.id == booking_id))
        if result.rowcount == 0:
            raise NotFoundError("Booking", booking_id)

    @translate_storage_errors
    async def sum_tickets(self, event_id: uuid.UUID) -> int:
        """Sum of ticket counts over an event's bookings (0 if none)."""
        result = await self.db.execute(
            select(func.coalesce(func.sum(Booking.num_tickets), 0)).where(
                Booking.event_id == event_id
            )
        )
        return int(result.scalar_one())
