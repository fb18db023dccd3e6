"""Club opening hours.

BusinessHours = the recurring weekly pattern, one row per day of week.
SpecialHours = a one-off override for a specific calendar date (holidays, events).

Times are stored as "HH:MM" strings in the club's local wall-clock time.
Day of week follows 0=Sunday..6=Saturday.
"""

import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Date, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from arena.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from arena.models.organization import Club


class BusinessHours(TimestampMixin, Base):
    __tablename__ = "club_business_hours"

    id: Mapped[int] = mapped_column(primary_key=True)
    club_id: Mapped[int] = mapped_column(ForeignKey("clubs.id"), nullable=False)
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)  # 0=Sun..6=Sat
    open_time: Mapped[str | None] = mapped_column(String(5))
    close_time: Mapped[str | None] = mapped_column(String(5))
    is_closed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    club: Mapped["Club"] = relationship(back_populates="business_hours")

    __table_args__ = (Index("ix_business_hours_club_dow", "club_id", "day_of_week", unique=True),)

    def __repr__(self) -> str:
        state = "closed" if self.is_closed else f"{self.open_time}-{self.close_time}"
        return f"<BusinessHours club={self.club_id} dow={self.day_of_week} {state}>"


class SpecialHours(TimestampMixin, Base):
    __tablename__ = "club_special_hours"

    id: Mapped[int] = mapped_column(primary_key=True)
    club_id: Mapped[int] = mapped_column(ForeignKey("clubs.id"), nullable=False)
    date: Mapped[datetime.date] = mapped_column(Date, nullable=False)
    open_time: Mapped[str | None] = mapped_column(String(5))
    close_time: Mapped[str | None] = mapped_column(String(5))
    is_closed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    reason: Mapped[str | None] = mapped_column(String(200))

    club: Mapped["Club"] = relationship(back_populates="special_hours")

    __table_args__ = (Index("ix_special_hours_club_date", "club_id", "date", unique=True),)

    def __repr__(self) -> str:
        state = "closed" if self.is_closed else f"{self.open_time}-{self.close_time}"
        return f"<SpecialHours club={self.club_id} {self.date} {state}>"
