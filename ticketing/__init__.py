"""Event ticketing backend with availability-safe bookings."""

__version__ = "1.0.0"
