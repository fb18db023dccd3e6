"""Booking model.

A booking reserves a court for a continuous UTC interval [start, end).
Bookings are written by the booking workflow; the availability and
statistics services only read them.
"""

import enum
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Enum, ForeignKey, Index, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from arena.models.base import Base, TimestampMixin


class BookingStatus(enum.StrEnum):
    PENDING = "pending"  # Held while payment is in progress
    RESERVED = "reserved"
    PAID = "paid"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Booking(TimestampMixin, Base):
    __tablename__ = "bookings"

    id: Mapped[int] = mapped_column(primary_key=True)
    court_id: Mapped[int] = mapped_column(ForeignKey("courts.id"), nullable=False)
    user_id: Mapped[int | None] = mapped_column(Integer)

    # When (UTC)
    start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    status: Mapped[BookingStatus] = mapped_column(
        Enum(BookingStatus, name="booking_status", values_callable=lambda e: [x.value for x in e]),
        default=BookingStatus.RESERVED,
        nullable=False,
    )
    price_cents: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    court: Mapped["Court"] = relationship()

    __table_args__ = (
        CheckConstraint('start < "end"', name="ck_bookings_start_before_end"),
        # Range scans for the availability grid and daily statistics
        Index("ix_bookings_court_start", "court_id", "start"),
        Index("ix_bookings_court_end", "court_id", "end"),
    )

    def __repr__(self) -> str:
        return f"<Booking {self.start:%Y-%m-%d %H:%M}-{self.end:%H:%M} court={self.court_id} {self.status.value}>"


# Import for type hints
from arena.models.organization import Court  # noqa: E402
