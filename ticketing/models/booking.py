"""Booking model."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ticketing.models.base import Base, UTCDateTime, utcnow

if TYPE_CHECKING:
    from ticketing.models.event import Event


class Booking(Base):
    """Booking model representing a claim on some of an event's tickets."""

    __tablename__ = "bookings"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    event_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    user_email: Mapped[str] = mapped_column(String(100), nullable=False)
    num_tickets: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    # Relationships
    event: Mapped["Event"] = relationship("Event", back_populates="bookings")

    __table_args__ = (
        CheckConstraint("num_tickets >= 1", name="ck_bookings_num_tickets_positive"),
        Index("idx_bookings_event_id", "event_id"),
        Index("idx_bookings_user_email", "user_email"),
    )
