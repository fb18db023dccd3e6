"""Admin occupancy statistics routes.

Scoping: root admins see every club, organization admins the clubs of their
organizations, club admins only the clubs they manage.
"""

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from arena.core.database import get_db
from arena.core.dependencies import (
    AdminContext,
    ensure_club_access,
    ensure_organization_access,
    get_current_admin,
    get_visible_club_ids,
    require_root_admin,
)
from arena.core.exceptions import ValidationError
from arena.schemas import (
    BookingStatisticsUpdate,
    ClubMonthlyResultOut,
    ClubStatisticsResultOut,
    DailyStatisticsCreate,
    DailyStatisticsOut,
    DateStatisticsResultOut,
    MonthlyStatisticsCreate,
    MonthlyStatisticsOut,
    RecalculateRequest,
    RecalculateResponse,
)
from arena.services import repository, statistics

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/statistics", tags=["statistics"])


def _bad_request(e: ValidationError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)


async def _scoped_club_ids(db: AsyncSession, admin: AdminContext, club_id: int | None) -> list[int] | None:
    if club_id is not None:
        await ensure_club_access(db, admin, club_id, action="view")
        return [club_id]
    return await get_visible_club_ids(db, admin)


# ---------------------------------------------------------------------------
# Daily
# ---------------------------------------------------------------------------


@router.get("/daily", response_model=list[DailyStatisticsOut])
async def list_daily_statistics(
    club_id: int | None = Query(None, alias="clubId"),
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    admin: AdminContext = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    club_ids = await _scoped_club_ids(db, admin, club_id)
    rows = await repository.list_daily_statistics(db, club_ids, start_date, end_date)
    return list(reversed(rows))


@router.post("/daily", response_model=DailyStatisticsOut, status_code=status.HTTP_201_CREATED)
async def create_daily_statistics(
    body: DailyStatisticsCreate,
    admin: AdminContext = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Store a day's figures.

    With both bookedSlots and totalSlots the values are taken as given;
    otherwise they are calculated from the club's hours and bookings.
    """
    club = await ensure_club_access(db, admin, body.club_id)
    try:
        if body.booked_slots is not None and body.total_slots is not None:
            return await statistics.store_manual_daily_statistics(
                db, club.id, body.date, body.booked_slots, body.total_slots
            )
        return await statistics.calculate_and_store_daily_statistics(db, club.id, body.date, club=club)
    except ValidationError as e:
        raise _bad_request(e) from None


@router.post("/daily/recalculate", response_model=RecalculateResponse)
async def recalculate_daily_statistics(
    body: RecalculateRequest | None = None,
    admin: AdminContext = Depends(require_root_admin),
    db: AsyncSession = Depends(get_db),
):
    """Run the nightly computation on demand for every active club."""
    body = body or RecalculateRequest()
    logger.info("Manual statistics run by admin %s (date=%s, fallback=%s)", admin.user_id, body.date, body.fallback_mode)
    results = await statistics.calculate_daily_statistics_for_all_clubs(
        db, on_date=body.date, fallback_mode=body.fallback_mode
    )
    return RecalculateResponse(
        computed=sum(1 for r in results if r.success and not r.skipped),
        skipped=sum(1 for r in results if r.skipped),
        failed=sum(1 for r in results if not r.success),
        results=[ClubStatisticsResultOut.model_validate(r) for r in results],
    )


@router.post("/bookings", response_model=list[DateStatisticsResultOut])
async def update_statistics_for_booking(
    body: BookingStatisticsUpdate,
    admin: AdminContext = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Recompute the days a booking touches. Called after a booking is created, moved or cancelled."""
    await ensure_club_access(db, admin, body.club_id)
    try:
        results = await statistics.update_statistics_for_booking(db, body.club_id, body.start, body.end)
    except ValidationError as e:
        raise _bad_request(e) from None
    return [DateStatisticsResultOut.model_validate(r) for r in results]


# ---------------------------------------------------------------------------
# Monthly
# ---------------------------------------------------------------------------


@router.get("/monthly", response_model=None)
async def get_monthly_statistics(
    club_id: int | None = Query(None, alias="clubId"),
    organization_id: int | None = Query(None, alias="organizationId"),
    month: int | None = Query(None),
    year: int | None = Query(None),
    lazy_calculate: bool = Query(False, alias="lazyCalculate"),
    admin: AdminContext = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Monthly statistics.

    With lazyCalculate plus month and year, a missing month row is computed
    from the daily rows, for one club (clubId) or every club of an
    organization (organizationId). Otherwise stored rows are listed.
    """
    if month is not None and not 1 <= month <= 12:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Month must be between 1 and 12")

    if lazy_calculate and month and year and club_id is not None:
        await ensure_club_access(db, admin, club_id, action="view")
        stats = await statistics.get_or_calculate_monthly_statistics(db, club_id, month, year)
        if stats is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="No daily statistics available for this period. Calculate daily statistics first.",
            )
        return MonthlyStatisticsOut.model_validate(stats)

    if lazy_calculate and month and year and organization_id is not None:
        ensure_organization_access(admin, organization_id)
        results = await statistics.get_organization_monthly_statistics(db, organization_id, month, year)
        return [ClubMonthlyResultOut.model_validate(r) for r in results]

    club_ids = await _scoped_club_ids(db, admin, club_id)
    if organization_id is not None:
        org_club_ids = [c.id for c in await repository.get_clubs_for_organization(db, organization_id)]
        club_ids = org_club_ids if club_ids is None else [i for i in club_ids if i in org_club_ids]

    rows = await repository.list_monthly_statistics(db, club_ids, month, year)
    return [MonthlyStatisticsOut.model_validate(r) for r in rows]


@router.post("/monthly", response_model=MonthlyStatisticsOut, status_code=status.HTTP_201_CREATED)
async def create_monthly_statistics(
    body: MonthlyStatisticsCreate,
    admin: AdminContext = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """Store or overwrite a month's figures; the change percent is derived."""
    await ensure_club_access(db, admin, body.club_id)
    try:
        return await statistics.store_manual_monthly_statistics(
            db, body.club_id, body.month, body.year, body.average_occupancy, body.previous_month_occupancy
        )
    except ValidationError as e:
        raise _bad_request(e) from None
