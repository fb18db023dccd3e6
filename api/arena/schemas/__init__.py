"""Pydantic schemas for API serialisation.

JSON payloads use camelCase; Python attributes stay snake_case.
"""

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# --- Availability ---


class CourtStatusOut(CamelModel):
    court_id: int
    court_name: str
    court_type: str | None
    indoor: bool
    status: str


class SlotSummaryOut(CamelModel):
    available: int
    partial: int
    booked: int
    pending: int
    total: int


class HourSlotOut(CamelModel):
    hour: int
    start_time: str
    end_time: str
    is_blocked: bool
    courts: list[CourtStatusOut]
    summary: SlotSummaryOut
    overall_status: str


class DayAvailabilityOut(CamelModel):
    date: str
    day_of_week: int
    day_name: str
    is_today: bool
    hours: list[HourSlotOut]


class CourtOut(CamelModel):
    id: int
    name: str
    type: str | None
    indoor: bool
    sport_type: str


class AvailabilityResponse(CamelModel):
    week_start: str
    week_end: str
    mode: str
    days: list[DayAvailabilityOut]
    courts: list[CourtOut]


class OpeningHoursOut(CamelModel):
    club_id: int
    date: str
    timezone: str
    is_closed: bool
    open: str | None = None
    close: str | None = None
    source: str | None = None
    open_utc: dt.datetime | None = None
    close_utc: dt.datetime | None = None


# --- Statistics ---


class DailyStatisticsOut(CamelModel):
    id: int
    club_id: int
    date: dt.date
    booked_slots: float
    total_slots: float
    occupancy_percentage: float
    updated_at: dt.datetime | None = None


class DailyStatisticsCreate(CamelModel):
    club_id: int
    date: dt.date
    booked_slots: float | None = None
    total_slots: float | None = None


class RecalculateRequest(CamelModel):
    date: dt.date | None = None
    fallback_mode: bool = False


class ClubStatisticsResultOut(CamelModel):
    club_id: int
    success: bool
    date: dt.date | None = None
    skipped: bool = False
    statistics: DailyStatisticsOut | None = None
    error: str | None = None


class RecalculateResponse(CamelModel):
    computed: int
    skipped: int
    failed: int
    results: list[ClubStatisticsResultOut]


class BookingStatisticsUpdate(CamelModel):
    club_id: int
    start: dt.datetime
    end: dt.datetime


class DateStatisticsResultOut(CamelModel):
    date: dt.date
    success: bool
    statistics: DailyStatisticsOut | None = None
    error: str | None = None


class MonthlyStatisticsOut(CamelModel):
    id: int
    club_id: int
    month: int
    year: int
    average_occupancy: float
    previous_month_occupancy: float | None
    occupancy_change_percent: float | None
    updated_at: dt.datetime | None = None


class MonthlyStatisticsCreate(CamelModel):
    club_id: int
    month: int = Field(ge=1, le=12)
    year: int
    average_occupancy: float
    previous_month_occupancy: float | None = None


class ClubMonthlyResultOut(CamelModel):
    club_id: int
    club_name: str
    success: bool
    statistics: MonthlyStatisticsOut | None = None
    error: str | None = None
