"""API v1 routers package."""

from ticketing.api.v1.bookings import router as bookings_router
from ticketing.api.v1.events import router as events_router

__all__ = [
    "events_router",
    "bookings_router",
]
