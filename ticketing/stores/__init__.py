"""Persistence stores."""

from ticketing.stores.booking_store import BookingStore
from ticketing.stores.event_store import EventStore

__all__ = [
    "EventStore",
    "BookingStore",
]
