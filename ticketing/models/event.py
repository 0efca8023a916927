"""Event model."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ticketing.models.base import Base, UTCDateTime, utcnow

if TYPE_CHECKING:
    from ticketing.models.booking import Booking


class Event(Base):
    """Event model representing a ticketed occasion with finite capacity."""

    __tablename__ = "events"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    # Relationships
    bookings: Mapped[list["Booking"]] = relationship(
        "Booking",
        back_populates="event",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="[Booking.created_at.desc(), Booking.id.desc()]",
    )

    __table_args__ = (
        CheckConstraint("capacity >= 1", name="ck_events_capacity_positive"),
        Index("idx_events_date", "date"),
    )
