"""Persistence reads and writes used by the availability and statistics services.

Everything takes an AsyncSession and returns ORM objects. Instants passed in
are normalised to UTC before they reach the database.
"""

from collections.abc import Iterable, Sequence
from datetime import date, datetime

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from arena.models.booking import Booking, BookingStatus
from arena.models.hours import BusinessHours, SpecialHours
from arena.models.organization import Club, Court
from arena.models.statistics import DailyStatistics, MonthlyStatistics
from arena.services.timezones import as_utc


def _insert(db: AsyncSession, model):
    """Dialect-specific INSERT so ON CONFLICT clauses are available."""
    if db.get_bind().dialect.name == "postgresql":
        return postgresql.insert(model)
    return sqlite.insert(model)


# ---------------------------------------------------------------------------
# Clubs and courts
# ---------------------------------------------------------------------------


async def get_club(db: AsyncSession, club_id: int) -> Club | None:
    result = await db.execute(select(Club).where(Club.id == club_id))
    return result.scalar_one_or_none()


async def get_active_clubs(db: AsyncSession) -> list[Club]:
    result = await db.execute(select(Club).where(Club.status == "active").order_by(Club.id))
    return list(result.scalars().all())


async def get_clubs_for_organization(db: AsyncSession, organization_id: int) -> list[Club]:
    result = await db.execute(select(Club).where(Club.organization_id == organization_id).order_by(Club.id))
    return list(result.scalars().all())


async def get_active_courts_for_club(db: AsyncSession, club_id: int) -> list[Court]:
    result = await db.execute(
        select(Court)
        .where(Court.club_id == club_id, Court.is_active.is_(True))
        .order_by(Court.sort_order, Court.name, Court.id)
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Hours
# ---------------------------------------------------------------------------


async def get_special_hours(db: AsyncSession, club_id: int, on_date: date) -> SpecialHours | None:
    result = await db.execute(
        select(SpecialHours).where(SpecialHours.club_id == club_id, SpecialHours.date == on_date)
    )
    return result.scalar_one_or_none()


async def get_special_hours_between(
    db: AsyncSession, club_id: int, first: date, last: date
) -> dict[date, SpecialHours]:
    """Special hours keyed by date, both ends inclusive."""
    result = await db.execute(
        select(SpecialHours).where(
            SpecialHours.club_id == club_id,
            SpecialHours.date >= first,
            SpecialHours.date <= last,
        )
    )
    return {row.date: row for row in result.scalars().all()}


async def get_business_hours(db: AsyncSession, club_id: int, day_of_week: int) -> BusinessHours | None:
    result = await db.execute(
        select(BusinessHours).where(BusinessHours.club_id == club_id, BusinessHours.day_of_week == day_of_week)
    )
    return result.scalar_one_or_none()


async def get_weekly_business_hours(db: AsyncSession, club_id: int) -> dict[int, BusinessHours]:
    result = await db.execute(select(BusinessHours).where(BusinessHours.club_id == club_id))
    return {row.day_of_week: row for row in result.scalars().all()}


# ---------------------------------------------------------------------------
# Bookings
# ---------------------------------------------------------------------------


async def get_bookings_overlapping(
    db: AsyncSession,
    court_ids: Sequence[int],
    start: datetime,
    end: datetime,
    exclude_statuses: Iterable[BookingStatus] = (BookingStatus.CANCELLED,),
) -> list[Booking]:
    """Bookings on the given courts whose [start, end) intersects [start, end).

    Some drivers hand back naive datetimes; read them through as_utc().
    """
    if not court_ids:
        return []
    start, end = as_utc(start), as_utc(end)
    query = select(Booking).where(
        Booking.court_id.in_(court_ids),
        Booking.start < end,
        Booking.end > start,
    )
    excluded = list(exclude_statuses)
    if excluded:
        query = query.where(Booking.status.not_in(excluded))
    result = await db.execute(query.order_by(Booking.start))
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------


async def get_daily_statistics(db: AsyncSession, club_id: int, on_date: date) -> DailyStatistics | None:
    result = await db.execute(
        select(DailyStatistics)
        .where(DailyStatistics.club_id == club_id, DailyStatistics.date == on_date)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def list_daily_statistics(
    db: AsyncSession,
    club_ids: Sequence[int] | None,
    first: date | None = None,
    last: date | None = None,
) -> list[DailyStatistics]:
    """Daily rows ordered by date, optionally bounded (inclusive). None club_ids means every club."""
    query = select(DailyStatistics)
    if club_ids is not None:
        query = query.where(DailyStatistics.club_id.in_(club_ids))
    if first is not None:
        query = query.where(DailyStatistics.date >= first)
    if last is not None:
        query = query.where(DailyStatistics.date <= last)
    result = await db.execute(query.order_by(DailyStatistics.date, DailyStatistics.club_id))
    return list(result.scalars().all())


async def upsert_daily_statistics(
    db: AsyncSession,
    club_id: int,
    on_date: date,
    booked_slots: float,
    total_slots: float,
    occupancy_percentage: float,
) -> DailyStatistics:
    """Atomic insert-or-replace keyed on (club_id, date).

    Concurrent writers for the same club/date cannot lose updates: the last
    statement wins and nothing is accumulated.
    """
    values = {
        "booked_slots": booked_slots,
        "total_slots": total_slots,
        "occupancy_percentage": occupancy_percentage,
    }
    stmt = _insert(db, DailyStatistics).values(club_id=club_id, date=on_date, **values)
    stmt = stmt.on_conflict_do_update(
        index_elements=[DailyStatistics.club_id, DailyStatistics.date],
        set_={**values, "updated_at": func.now()},
    )
    await db.execute(stmt)
    return await get_daily_statistics(db, club_id, on_date)


async def get_monthly_statistics(db: AsyncSession, club_id: int, month: int, year: int) -> MonthlyStatistics | None:
    result = await db.execute(
        select(MonthlyStatistics)
        .where(
            MonthlyStatistics.club_id == club_id,
            MonthlyStatistics.month == month,
            MonthlyStatistics.year == year,
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def list_monthly_statistics(
    db: AsyncSession,
    club_ids: Sequence[int] | None,
    month: int | None = None,
    year: int | None = None,
) -> list[MonthlyStatistics]:
    query = select(MonthlyStatistics)
    if club_ids is not None:
        query = query.where(MonthlyStatistics.club_id.in_(club_ids))
    if month is not None:
        query = query.where(MonthlyStatistics.month == month)
    if year is not None:
        query = query.where(MonthlyStatistics.year == year)
    query = query.order_by(MonthlyStatistics.year.desc(), MonthlyStatistics.month.desc(), MonthlyStatistics.club_id)
    result = await db.execute(query)
    return list(result.scalars().all())


async def create_monthly_statistics(
    db: AsyncSession,
    club_id: int,
    month: int,
    year: int,
    average_occupancy: float,
    previous_month_occupancy: float | None,
    occupancy_change_percent: float | None,
) -> MonthlyStatistics:
    """Insert the month row if absent and return whichever row is stored.

    Two requests racing to create the same month both end up returning the
    first writer's row instead of one failing on the unique index.
    """
    stmt = _insert(db, MonthlyStatistics).values(
        club_id=club_id,
        month=month,
        year=year,
        average_occupancy=average_occupancy,
        previous_month_occupancy=previous_month_occupancy,
        occupancy_change_percent=occupancy_change_percent,
    )
    stmt = stmt.on_conflict_do_nothing(
        index_elements=[MonthlyStatistics.club_id, MonthlyStatistics.month, MonthlyStatistics.year]
    )
    await db.execute(stmt)
    return await get_monthly_statistics(db, club_id, month, year)


async def upsert_monthly_statistics(
    db: AsyncSession,
    club_id: int,
    month: int,
    year: int,
    average_occupancy: float,
    previous_month_occupancy: float | None,
    occupancy_change_percent: float | None,
) -> MonthlyStatistics:
    """Insert or overwrite the month row. Used for manual admin corrections."""
    values = {
        "average_occupancy": average_occupancy,
        "previous_month_occupancy": previous_month_occupancy,
        "occupancy_change_percent": occupancy_change_percent,
    }
    stmt = _insert(db, MonthlyStatistics).values(club_id=club_id, month=month, year=year, **values)
    stmt = stmt.on_conflict_do_update(
        index_elements=[MonthlyStatistics.club_id, MonthlyStatistics.month, MonthlyStatistics.year],
        set_={**values, "updated_at": func.now()},
    )
    await db.execute(stmt)
    return await get_monthly_statistics(db, club_id, month, year)
