"""Public club availability routes (no auth required)."""

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from arena.core.database import get_db
from arena.core.exceptions import ValidationError
from arena.schemas import AvailabilityResponse, OpeningHoursOut
from arena.services import repository
from arena.services.availability import build_availability
from arena.services.business_hours import get_opening_window
from arena.services.timezones import get_today_in_timezone, parse_date

router = APIRouter(prefix="/clubs", tags=["availability"])


@router.get("/{club_id}/courts/availability", response_model=AvailabilityResponse)
async def get_courts_availability(
    club_id: int,
    start: str | None = Query(None, description="First date, YYYY-MM-DD. Defaults per mode"),
    week_start: str | None = Query(None, alias="weekStart", include_in_schema=False),
    mode: str = Query("rolling", description="rolling (from today) or calendar (Monday-Sunday)"),
    days: int | None = Query(None, description="Number of days, 1-31"),
    db: AsyncSession = Depends(get_db),
):
    """Per-hour, per-court availability for a run of club-local dates.

    Used by the weekly grid: days are rows of hour buckets, each with a status
    per court and a summary across courts.
    """
    club = await repository.get_club(db, club_id)
    if club is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Club not found")

    try:
        return await build_availability(db, club, start=start or week_start, mode=mode, days=days)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from None


@router.get("/{club_id}/hours", response_model=OpeningHoursOut)
async def get_opening_hours(
    club_id: int,
    query_date: str | None = Query(None, alias="date", description="Date in YYYY-MM-DD format, default today"),
    db: AsyncSession = Depends(get_db),
):
    """Effective opening hours for one club-local date, after special-hours overrides."""
    club = await repository.get_club(db, club_id)
    if club is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Club not found")

    try:
        d: date = parse_date(query_date) if query_date else get_today_in_timezone(club.timezone)
        window = await get_opening_window(db, club.id, d)
        if window is None:
            return OpeningHoursOut(club_id=club.id, date=d.isoformat(), timezone=club.timezone, is_closed=True)
        open_utc, close_utc = window.to_utc(d, club.timezone)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message) from None

    return OpeningHoursOut(
        club_id=club.id,
        date=d.isoformat(),
        timezone=club.timezone,
        is_closed=False,
        open_utc=open_utc,
        close_utc=close_utc,
        **window.to_dict(),
    )
