"""Club occupancy statistics.

Daily figures (hour units):
    total_slots   = active courts x whole hours the club is open that day,
                    counted in elapsed time (DST days can be 23 or 25 hours)
    booked_slots  = hours of non-cancelled bookings falling on that club-local
                    date, fractional (a 30-minute booking is 0.5)
    occupancy     = booked / total x 100, or 0 when nothing is bookable

Daily rows are written with an atomic upsert, so recomputing a day
overwrites it. Monthly rows are a read-through cache of the daily rows: once
created they are returned as-is.

Multi-item operations (all dates a booking touches, all clubs in the nightly
job, all clubs of an organization) run each item in its own savepoint and
report a tagged result per item, so one failure never aborts the rest.
"""

import calendar
import datetime as dt
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from arena.core.config import settings
from arena.core.exceptions import ValidationError
from arena.models.organization import Club
from arena.models.statistics import DailyStatistics, MonthlyStatistics
from arena.services import repository
from arena.services.availability import BookingInterval
from arena.services.business_hours import OpeningWindow, get_opening_window
from arena.services.timezones import (
    get_today_in_timezone,
    local_day_bounds,
    parse_date,
    utc_to_local_date,
    validate_range,
)

logger = logging.getLogger(__name__)


@dataclass
class DateStatisticsResult:
    date: dt.date
    success: bool
    statistics: DailyStatistics | None = None
    error: str | None = None


@dataclass
class ClubStatisticsResult:
    club_id: int
    success: bool
    date: dt.date | None = None
    skipped: bool = False
    statistics: DailyStatistics | None = None
    error: str | None = None


@dataclass
class ClubMonthlyResult:
    club_id: int
    club_name: str
    success: bool
    statistics: MonthlyStatistics | None = None
    error: str | None = None


# ---------------------------------------------------------------------------
# Pure arithmetic
# ---------------------------------------------------------------------------


def occupancy_percentage(booked_slots: float, total_slots: float) -> float:
    if total_slots <= 0:
        return 0.0
    return booked_slots / total_slots * 100


def occupancy_change_percent(current: float, previous: float | None) -> float | None:
    """Month-over-month change in percent.

    None without a baseline. A zero baseline gives exactly 100 when there is
    new activity and 0 when both months are empty.
    """
    if previous is None:
        return None
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return (current - previous) / previous * 100


def total_slots_for_day(court_count: int, window: OpeningWindow | None, on_date: date, tz: str | None) -> float:
    """Bookable court-hours, matching the hour buckets the availability grid shows."""
    if window is None or court_count == 0:
        return 0
    return court_count * window.whole_hours(on_date, tz)


def booked_hours(intervals: Iterable[BookingInterval], day_start: datetime, day_end: datetime) -> float:
    """Hours of the intervals that fall inside [day_start, day_end)."""
    seconds = 0.0
    for interval in intervals:
        overlap = min(interval.end, day_end) - max(interval.start, day_start)
        if overlap > timedelta(0):
            seconds += overlap.total_seconds()
    return seconds / 3600


def month_bounds(month: int, year: int) -> tuple[date, date]:
    if not 1 <= month <= 12:
        raise ValidationError("month", "Month must be between 1 and 12")
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


def previous_month(month: int, year: int) -> tuple[int, int]:
    if month == 1:
        return 12, year - 1
    return month - 1, year


def _mean(values: list[float]) -> float:
    return sum(values) / len(values)


# ---------------------------------------------------------------------------
# Daily statistics
# ---------------------------------------------------------------------------


async def calculate_and_store_daily_statistics(
    db: AsyncSession,
    club_id: int,
    on_date: date | str,
    club: Club | None = None,
) -> DailyStatistics | None:
    """Compute and upsert one club's figures for one club-local date.

    Returns None when the club does not exist.
    """
    club = club or await repository.get_club(db, club_id)
    if club is None:
        return None
    d = parse_date(on_date)

    courts = await repository.get_active_courts_for_club(db, club.id)
    window = await get_opening_window(db, club.id, d)
    total = total_slots_for_day(len(courts), window, d, club.timezone)

    day_start, day_end = local_day_bounds(d, club.timezone)
    bookings = await repository.get_bookings_overlapping(db, [c.id for c in courts], day_start, day_end)
    booked = booked_hours((BookingInterval.from_booking(b) for b in bookings), day_start, day_end)

    percentage = occupancy_percentage(booked, total)
    logger.debug("Daily statistics club=%s date=%s booked=%.2f total=%s", club.id, d, booked, total)
    return await repository.upsert_daily_statistics(db, club.id, d, booked, total, percentage)


async def update_statistics_for_booking(
    db: AsyncSession,
    club_id: int,
    start: datetime | str,
    end: datetime | str,
) -> list[DateStatisticsResult] | None:
    """Recompute every club-local date a booking touches, both endpoint dates included.

    A 23:30-00:30 booking recomputes two days. Returns one result per date in
    order, or None when the club does not exist. Bookings spanning more than
    settings.statistics_max_booking_days dates are rejected.
    """
    start, end = validate_range(start, end)
    club = await repository.get_club(db, club_id)
    if club is None:
        return None

    first = parse_date(utc_to_local_date(start, club.timezone))
    last = parse_date(utc_to_local_date(end, club.timezone))
    span = (last - first).days + 1
    if span > settings.statistics_max_booking_days:
        raise ValidationError(
            "end",
            f"Booking spans {span} days; at most {settings.statistics_max_booking_days} can be recomputed at once",
        )

    results: list[DateStatisticsResult] = []
    d = first
    while d <= last:
        try:
            async with db.begin_nested():
                stats = await calculate_and_store_daily_statistics(db, club.id, d, club=club)
            results.append(DateStatisticsResult(date=d, success=True, statistics=stats))
        except Exception as exc:
            logger.exception("Failed to recompute statistics for club %s on %s", club.id, d)
            results.append(DateStatisticsResult(date=d, success=False, error=str(exc)))
        d += timedelta(days=1)
    return results


async def calculate_daily_statistics_for_all_clubs(
    db: AsyncSession,
    on_date: date | str | None = None,
    fallback_mode: bool = False,
    now: datetime | None = None,
) -> list[ClubStatisticsResult]:
    """Nightly job body: compute one day for every active club.

    Without a date, each club gets "yesterday" in its own timezone. In
    fallback mode clubs that already have a row for the day are skipped.
    """
    target = parse_date(on_date) if on_date else None
    clubs = await repository.get_active_clubs(db)
    results: list[ClubStatisticsResult] = []

    for club in clubs:
        d = target
        try:
            if d is None:
                d = get_today_in_timezone(club.timezone, now) - timedelta(days=1)
            if fallback_mode and await repository.get_daily_statistics(db, club.id, d) is not None:
                results.append(ClubStatisticsResult(club_id=club.id, success=True, date=d, skipped=True))
                continue
            async with db.begin_nested():
                stats = await calculate_and_store_daily_statistics(db, club.id, d, club=club)
            results.append(ClubStatisticsResult(club_id=club.id, success=True, date=d, statistics=stats))
        except Exception as exc:
            logger.exception("Failed to calculate daily statistics for club %s", club.id)
            results.append(ClubStatisticsResult(club_id=club.id, success=False, date=d, error=str(exc)))

    computed = sum(1 for r in results if r.success and not r.skipped)
    skipped = sum(1 for r in results if r.skipped)
    failed = sum(1 for r in results if not r.success)
    logger.info(
        "Daily statistics run: %d computed, %d skipped, %d failed (fallback=%s)", computed, skipped, failed, fallback_mode
    )
    return results


async def store_manual_daily_statistics(
    db: AsyncSession,
    club_id: int,
    on_date: date | str,
    booked_slots: float,
    total_slots: float,
) -> DailyStatistics:
    """Upsert admin-supplied figures for a day, deriving the percentage."""
    if booked_slots < 0 or total_slots < 0:
        raise ValidationError("bookedSlots", "bookedSlots and totalSlots must be non-negative numbers")
    if total_slots == 0:
        raise ValidationError("totalSlots", "totalSlots must be greater than zero")
    if booked_slots > total_slots:
        raise ValidationError("bookedSlots", "bookedSlots cannot exceed totalSlots")
    percentage = occupancy_percentage(booked_slots, total_slots)
    return await repository.upsert_daily_statistics(
        db, club_id, parse_date(on_date), booked_slots, total_slots, percentage
    )


# ---------------------------------------------------------------------------
# Monthly statistics
# ---------------------------------------------------------------------------


async def calculate_average_occupancy_for_month(
    db: AsyncSession, club_id: int, month: int, year: int
) -> float | None:
    """Mean daily occupancy for the month, or None when no day was recorded."""
    first, last = month_bounds(month, year)
    rows = await repository.list_daily_statistics(db, [club_id], first, last)
    if not rows:
        return None
    return _mean([row.occupancy_percentage for row in rows])


async def get_or_calculate_monthly_statistics(
    db: AsyncSession, club_id: int, month: int, year: int
) -> MonthlyStatistics | None:
    """Return the cached month row, creating it from daily rows on first request.

    None (and nothing stored) when the month has no daily statistics.
    """
    month_bounds(month, year)
    existing = await repository.get_monthly_statistics(db, club_id, month, year)
    if existing is not None:
        return existing

    average = await calculate_average_occupancy_for_month(db, club_id, month, year)
    if average is None:
        return None

    prev_month, prev_year = previous_month(month, year)
    previous = await calculate_average_occupancy_for_month(db, club_id, prev_month, prev_year)
    change = occupancy_change_percent(average, previous)

    logger.info("Creating monthly statistics club=%s %d-%02d average=%.2f", club_id, year, month, average)
    return await repository.create_monthly_statistics(db, club_id, month, year, average, previous, change)


async def get_organization_monthly_statistics(
    db: AsyncSession, organization_id: int, month: int, year: int
) -> list[ClubMonthlyResult]:
    """Monthly statistics for every club of an organization, one result per club."""
    month_bounds(month, year)
    clubs = await repository.get_clubs_for_organization(db, organization_id)
    results: list[ClubMonthlyResult] = []
    for club in clubs:
        try:
            async with db.begin_nested():
                stats = await get_or_calculate_monthly_statistics(db, club.id, month, year)
            results.append(ClubMonthlyResult(club_id=club.id, club_name=club.name, success=True, statistics=stats))
        except Exception as exc:
            logger.exception("Failed to get monthly statistics for club %s", club.id)
            results.append(ClubMonthlyResult(club_id=club.id, club_name=club.name, success=False, error=str(exc)))
    return results


async def store_manual_monthly_statistics(
    db: AsyncSession,
    club_id: int,
    month: int,
    year: int,
    average_occupancy: float,
    previous_month_occupancy: float | None = None,
) -> MonthlyStatistics:
    """Upsert admin-supplied month figures; the change percent is derived."""
    month_bounds(month, year)
    if not 2000 <= year <= 2100:
        raise ValidationError("year", "Year must be between 2000 and 2100")
    if not 0 <= average_occupancy <= 100:
        raise ValidationError("averageOccupancy", "averageOccupancy must be between 0 and 100")
    change = occupancy_change_percent(average_occupancy, previous_month_occupancy)
    return await repository.upsert_monthly_statistics(
        db, club_id, month, year, average_occupancy, previous_month_occupancy, change
    )
