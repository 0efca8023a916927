"""Services package."""

from ticketing.services.availability import Availability, check_availability
from ticketing.services.booking_service import BookingService
from ticketing.services.booking_transaction import BookingTransactionManager
from ticketing.services.event_service import EventService

__all__ = [
    "Availability",
    "check_availability",
    "BookingTransactionManager",
    "EventService",
    "BookingService",
]
