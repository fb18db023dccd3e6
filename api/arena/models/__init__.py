"""All models imported here for Alembic autogenerate discovery."""

from arena.models.base import Base
from arena.models.booking import Booking, BookingStatus
from arena.models.hours import BusinessHours, SpecialHours
from arena.models.organization import Club, Court, Organization
from arena.models.statistics import DailyStatistics, MonthlyStatistics

__all__ = [
    "Base",
    "Organization",
    "Club",
    "Court",
    "BusinessHours",
    "SpecialHours",
    "Booking",
    "BookingStatus",
    "DailyStatistics",
    "MonthlyStatistics",
]
