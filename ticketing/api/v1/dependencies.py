"""API dependencies."""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.config import Settings
from ticketing.database import get_db
from ticketing.event_lock import EventLockManager
from ticketing.services.booking_service import BookingService
from ticketing.services.event_service import EventService


def get_app_settings(request: Request) -> Settings:
    """Get the settings the application was created with."""
    return request.app.state.settings


def get_event_locks(request: Request) -> EventLockManager:
    """Get the process-wide per-event lock manager."""
    return request.app.state.event_locks


# Type aliases
DBSession = Annotated[AsyncSession, Depends(get_db)]
AppSettings = Annotated[Settings, Depends(get_app_settings)]
EventLocks = Annotated[EventLockManager, Depends(get_event_locks)]


def get_event_service(
    db: DBSession,
    locks: EventLocks,
    settings: AppSettings,
) -> EventService:
    """Get event service."""
    return EventService(
        db,
        locks,
        allow_capacity_below_booked=settings.ALLOW_CAPACITY_BELOW_BOOKED,
    )


def get_booking_service(db: DBSession, locks: EventLocks) -> BookingService:
    """Get booking service."""
    return BookingService(db, locks)


# Annotated dependencies
EventServiceDep = Annotated[EventService, Depends(get_event_service)]
BookingServiceDep = Annotated[BookingService, Depends(get_booking_service)]
