"""Error taxonomy shared by stores, the transaction manager and services."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ticketing.services.availability import Availability


class TicketingError(Exception):
    """Base class for all ticketing errors."""

    pass


class ValidationError(TicketingError):
    """Input failed validation inside the core."""

    pass


class NotFoundError(TicketingError):
    """Referenced event or booking does not exist."""

    def __init__(self, resource: str, resource_id: object):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} {resource_id} not found")


class CapacityExceededError(TicketingError):
    """Admission rejected because the event has too few tickets left."""

    def __init__(self, availability: "Availability", message: str | None = None):
        self.availability = availability
        super().__init__(
            message
            or (
                f"Not enough tickets available: requested {availability.requested}, "
                f"remaining {availability.remaining}"
            )
        )


class ForeignKeyError(TicketingError):
    """Booking references an event that does not exist."""

    def __init__(self, event_id: object):
        self.event_id = event_id
        super().__init__(f"Event {event_id} referenced by booking does not exist")


class StorageError(TicketingError):
    """Unexpected persistence failure."""

    pass


class LockUnavailableError(StorageError):
    """Per-event lock could not be acquired in time."""

    pass
