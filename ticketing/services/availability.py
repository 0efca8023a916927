"""Ticket availability policy.

Pure computation over already-fetched numbers, shared by every admission path.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Availability:
    """Result of an availability check for one event."""

    available: bool
    capacity: int
    booked: int
    remaining: int
    requested: int


def check_availability(capacity: int, booked_sum: int, requested: int) -> Availability:
    """
    Decide whether ``requested`` more tickets fit into an event.

    Args:
        capacity: Event capacity
        booked_sum: Sum of ticket counts over the event's current bookings
        requested: Number of additional tickets asked for

    Returns:
        Availability with ``remaining = capacity - booked_sum`` and
        ``available = remaining >= requested``
    """
    remaining = capacity - booked_sum
    return Availability(
        available=remaining >= requested,
        capacity=capacity,
        booked=booked_sum,
        remaining=remaining,
        requested=requested,
    )
