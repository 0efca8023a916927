"""SQLAlchemy models."""

from ticketing.models.base import Base
from ticketing.models.booking import Booking
from ticketing.models.event import Event

__all__ = [
    "Base",
    "Event",
    "Booking",
]
