"""Event store."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ticketing.exceptions import NotFoundError, ValidationError
from ticketing.models.event import Event
from ticketing.stores.base import as_utc, translate_storage_errors

EVENT_FIELDS = {"name", "description", "date", "capacity"}
NAME_MAX_LENGTH = 100


def validate_event_fields(fields: dict) -> dict:
    """
    Re-validate event fields before they reach the database.

    Returns the fields with ``date`` normalized to UTC.

    Raises:
        ValidationError: On unknown fields or invalid values
    """
    unknown = set(fields) - EVENT_FIELDS
    if unknown:
        raise ValidationError(f"Unknown event fields: {', '.join(sorted(unknown))}")

    cleaned = dict(fields)

    if "name" in fields:
        name = fields["name"]
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Event name must not be empty")
        if len(name) > NAME_MAX_LENGTH:
            raise ValidationError(f"Event name must be at most {NAME_MAX_LENGTH} characters")

    if "description" in fields and fields["description"] is not None:
        if not isinstance(fields["description"], str):
            raise ValidationError("Event description must be text")

    if "date" in fields:
        date = fields["date"]
        if not isinstance(date, datetime):
            raise ValidationError("Event date must be a timestamp")
        date = as_utc(date)
        if date < datetime.now(timezone.utc):
            raise ValidationError("Event date cannot be in the past")
        cleaned["date"] = date

    if "capacity" in fields:
        capacity = fields["capacity"]
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
            raise ValidationError("Event capacity must be an integer of at least 1")

    return cleaned


class EventStore:
    """Durable record of events."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @translate_storage_errors
    async def create(
        self,
        name: str,
        date: datetime,
        capacity: int,
        description: str | None = None,
    ) -> Event:
        """Insert a new event and flush it to obtain server-set values."""
        fields = validate_event_fields(
            {"name": name, "description": description, "date": date, "capacity": capacity}
        )
        event = Event(**fields)
        self.db.add(event)
        await self.db.flush()
        return event

    @translate_storage_errors
    async def find_by_id(
        self,
        event_id: uuid.UUID,
        *,
        for_update: bool = False,
        include_bookings: bool = False,
    ) -> Event:
        """
        Get event by ID.

        Args:
            event_id: Event ID
            for_update: Lock the event row until the transaction ends and
                refresh any copy already held by the session
            include_bookings: Eagerly load the event's bookings

        Raises:
            NotFoundError: If the event does not exist
        """
        query = select(Event).where(Event.id == event_id)
        if include_bookings:
            query = query.options(selectinload(Event.bookings))
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)

        result = await self.db.execute(query)
        event = result.scalar_one_or_none()
        if event is None:
            raise NotFoundError("Event", event_id)
        return event

    @translate_storage_errors
    async def find_all(
        self,
        name_pattern: str | None = None,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
    ) -> list[Event]:
        """
        List events ordered by date.

        The name filter is a case-insensitive substring match; the date
        filters form an inclusive range and either bound may be omitted.
        """
        query = select(Event)

        if name_pattern:
            query = query.where(Event.name.icontains(name_pattern, autoescape=True))
        if date_from is not None:
            query = query.where(Event.date >= as_utc(date_from))
        if date_to is not None:
            query = query.where(Event.date <= as_utc(date_to))

        query = query.order_by(Event.date.asc(), Event.created_at.asc(), Event.id.asc())

        result = await self.db.execute(query)
        return list(result.scalars().all())

    @translate_storage_errors
    async def update(self, event_id: uuid.UUID, changes: dict) -> Event:
        """Apply a partial update to an event."""
        fields = validate_event_fields(changes)
        event = await self.find_by_id(event_id)

        for field, value in fields.items():
            setattr(event, field, value)

        await self.db.flush()
        return event

    @translate_storage_errors
    async def delete(self, event_id: uuid.UUID) -> None:
        """Delete an event; the database cascades the delete to its bookings."""
        result = await self.db.execute(delete(Event).where(Event.id == event_id))
        if result.rowcount == 0:
            raise NotFoundError("Event", event_id)
