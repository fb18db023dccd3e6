"""Occupancy statistics models.

DailyStatistics = booked vs bookable hours for one club on one club-local date.
MonthlyStatistics = month rollup of the daily rows, computed lazily and cached.
"""

import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Date, Float, ForeignKey, Index, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from arena.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from arena.models.organization import Club


class DailyStatistics(TimestampMixin, Base):
    __tablename__ = "club_daily_statistics"

    id: Mapped[int] = mapped_column(primary_key=True)
    club_id: Mapped[int] = mapped_column(ForeignKey("clubs.id"), nullable=False)
    date: Mapped[datetime.date] = mapped_column(Date, nullable=False)

    # Hour units; booked hours may be fractional (a 30-minute booking is 0.5)
    booked_slots: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    total_slots: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    occupancy_percentage: Mapped[float] = mapped_column(Float, default=0, nullable=False)

    club: Mapped["Club"] = relationship(lazy="raise")

    __table_args__ = (Index("ix_daily_stats_club_date", "club_id", "date", unique=True),)

    def __repr__(self) -> str:
        return f"<DailyStatistics club={self.club_id} {self.date} {self.occupancy_percentage:.2f}%>"


class MonthlyStatistics(TimestampMixin, Base):
    __tablename__ = "club_monthly_statistics"

    id: Mapped[int] = mapped_column(primary_key=True)
    club_id: Mapped[int] = mapped_column(ForeignKey("clubs.id"), nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)  # 1-12
    year: Mapped[int] = mapped_column(Integer, nullable=False)

    average_occupancy: Mapped[float] = mapped_column(Float, nullable=False)
    previous_month_occupancy: Mapped[float | None] = mapped_column(Float)
    occupancy_change_percent: Mapped[float | None] = mapped_column(Float)

    club: Mapped["Club"] = relationship(lazy="raise")

    __table_args__ = (Index("ix_monthly_stats_club_month_year", "club_id", "month", "year", unique=True),)

    def __repr__(self) -> str:
        return f"<MonthlyStatistics club={self.club_id} {self.year}-{self.month:02d} {self.average_occupancy:.2f}%>"
