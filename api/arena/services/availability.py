"""Court availability matrix.

Two layers:

* The calculator (pure): for one club-local date, its resolved opening window,
  the active courts and the bookings touching that date, produce per-bucket,
  per-court statuses plus a summary and an overall status.
* The builder (async): resolve a run of dates for a club (rolling from today,
  or the calendar week), fetch courts, hours and bookings once, and assemble
  the days in date order.

Bucket boundaries are UTC instants obtained by converting the club-local
window for that specific date, so they line up with booking instants even
across DST changes.

Per court and bucket, overlapping bookings are folded by strength:
available < partial < booked < pending. A booking covering the whole bucket
makes it booked, a partial overlap makes it partial, and a pending hold
(payment in progress) outranks both.
"""

import enum
import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from arena.core.config import settings
from arena.core.exceptions import ValidationError
from arena.models.booking import Booking, BookingStatus
from arena.models.organization import Club, Court
from arena.services import repository
from arena.services.business_hours import OpeningWindow, get_opening_windows
from arena.services.timezones import (
    as_utc,
    dates_from_start,
    day_name,
    day_of_week,
    format_time,
    get_today_in_timezone,
    get_week_monday,
    local_day_bounds,
    parse_date,
    ranges_overlap,
    resolve_timezone,
)

logger = logging.getLogger(__name__)

MODES = ("rolling", "calendar")


class SlotStatus(enum.StrEnum):
    AVAILABLE = "available"
    PARTIAL = "partial"
    BOOKED = "booked"
    PENDING = "pending"


_STRENGTH = {
    SlotStatus.AVAILABLE: 0,
    SlotStatus.PARTIAL: 1,
    SlotStatus.BOOKED: 2,
    SlotStatus.PENDING: 3,
}


@dataclass(frozen=True)
class BookingInterval:
    court_id: int
    start: datetime
    end: datetime
    pending: bool = False

    @classmethod
    def from_booking(cls, booking: Booking) -> "BookingInterval":
        return cls(
            court_id=booking.court_id,
            start=as_utc(booking.start),
            end=as_utc(booking.end),
            pending=booking.status == BookingStatus.PENDING,
        )


@dataclass(frozen=True)
class Bucket:
    start: datetime  # UTC
    end: datetime  # UTC
    start_time: str  # club-local "HH:MM"
    end_time: str
    hour: int  # club-local hour of start


# ---------------------------------------------------------------------------
# Calculator
# ---------------------------------------------------------------------------


def classify_overlap(interval: BookingInterval, bucket_start: datetime, bucket_end: datetime) -> SlotStatus:
    """Status one booking alone imposes on a bucket."""
    if not ranges_overlap(interval.start, interval.end, bucket_start, bucket_end):
        return SlotStatus.AVAILABLE
    if interval.pending:
        return SlotStatus.PENDING
    if interval.start <= bucket_start and interval.end >= bucket_end:
        return SlotStatus.BOOKED
    return SlotStatus.PARTIAL


def court_status(intervals: Iterable[BookingInterval], bucket_start: datetime, bucket_end: datetime) -> SlotStatus:
    """Strongest status across all bookings on one court. Order of bookings is irrelevant."""
    return max(
        (classify_overlap(i, bucket_start, bucket_end) for i in intervals),
        key=_STRENGTH.__getitem__,
        default=SlotStatus.AVAILABLE,
    )


def overall_status(summary: dict[str, int]) -> SlotStatus:
    total = summary["total"]
    if summary["available"] == total:
        return SlotStatus.AVAILABLE
    if summary["booked"] == total:
        return SlotStatus.BOOKED
    if summary["pending"] == total:
        return SlotStatus.PENDING
    return SlotStatus.PARTIAL


def generate_buckets(
    window: OpeningWindow | None,
    on_date: date,
    tz: str | None,
    slot_minutes: int | None = None,
) -> list[Bucket]:
    """UTC buckets covering the window on one date. A trailing partial bucket is dropped."""
    if window is None:
        return []
    if slot_minutes is None:
        slot_minutes = settings.slot_minutes
    if slot_minutes <= 0:
        raise ValidationError("slot_minutes", f"Slot length must be positive, got {slot_minutes}")

    zone = resolve_timezone(tz)
    open_utc, close_utc = window.to_utc(on_date, tz)
    step = timedelta(minutes=slot_minutes)

    buckets: list[Bucket] = []
    current = open_utc
    while current + step <= close_utc:
        local_start = current.astimezone(zone)
        local_end = (current + step).astimezone(zone)
        buckets.append(
            Bucket(
                start=current,
                end=current + step,
                start_time=format_time(local_start),
                end_time=format_time(local_end),
                hour=local_start.hour,
            )
        )
        current += step
    return buckets


def is_bucket_blocked(on_date: date, bucket: Bucket, today: date, current_hour_start: datetime) -> bool:
    """Advisory display rule for past time.

    Earlier dates are blocked outright. On today, a bucket starting before the
    current local hour is blocked; the in-progress hour stays bookable.
    Booking creation must enforce its own check.
    """
    if on_date < today:
        return True
    if on_date == today:
        return bucket.start < current_hour_start
    return False


def calculate_day_availability(
    courts: Sequence[Court],
    window: OpeningWindow | None,
    intervals: Iterable[BookingInterval],
    on_date: date,
    tz: str | None,
    slot_minutes: int | None = None,
    today: date | None = None,
    current_hour_start: datetime | None = None,
) -> list[dict]:
    """Per-bucket availability for one club-local date.

    Returns a list of dicts with keys: hour, start_time, end_time, is_blocked,
    courts, summary, overall_status. Closed days and clubs without courts
    produce an empty list.
    """
    if not courts:
        return []

    by_court: dict[int, list[BookingInterval]] = defaultdict(list)
    for interval in intervals:
        by_court[interval.court_id].append(interval)

    hours: list[dict] = []
    for bucket in generate_buckets(window, on_date, tz, slot_minutes):
        summary = {"available": 0, "partial": 0, "booked": 0, "pending": 0, "total": len(courts)}
        court_rows = []
        for court in courts:
            status = court_status(by_court.get(court.id, ()), bucket.start, bucket.end)
            summary[status.value] += 1
            court_rows.append(
                {
                    "court_id": court.id,
                    "court_name": court.name,
                    "court_type": court.court_type,
                    "indoor": court.indoor,
                    "status": status,
                }
            )

        blocked = False
        if today is not None and current_hour_start is not None:
            blocked = is_bucket_blocked(on_date, bucket, today, current_hour_start)

        hours.append(
            {
                "hour": bucket.hour,
                "start_time": bucket.start_time,
                "end_time": bucket.end_time,
                "is_blocked": blocked,
                "courts": court_rows,
                "summary": summary,
                "overall_status": overall_status(summary),
            }
        )
    return hours


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


def resolve_range_start(mode: str, start: str | date | None, today: date) -> date:
    """First date of the view: explicit start, else today (rolling) or its Monday (calendar)."""
    if mode not in MODES:
        raise ValidationError("mode", f"Invalid mode: {mode!r}. Expected one of {', '.join(MODES)}")
    if start:
        return parse_date(start)
    if mode == "calendar":
        return get_week_monday(today)
    return today


def validate_num_days(days: int | None) -> int:
    if days is None:
        return settings.availability_default_days
    if not 1 <= days <= settings.availability_max_days:
        raise ValidationError("days", f"days must be between 1 and {settings.availability_max_days}")
    return days


def _build_day(
    courts: Sequence[Court],
    window: OpeningWindow | None,
    intervals: Sequence[BookingInterval],
    on_date: date,
    tz: str,
    slot_minutes: int | None,
    today: date,
    current_hour_start: datetime,
) -> dict:
    return {
        "date": on_date.isoformat(),
        "day_of_week": day_of_week(on_date),
        "day_name": day_name(on_date),
        "is_today": on_date == today,
        "hours": calculate_day_availability(
            courts, window, intervals, on_date, tz, slot_minutes, today, current_hour_start
        ),
    }


async def build_availability(
    db: AsyncSession,
    club: Club,
    start: str | date | None = None,
    mode: str = "rolling",
    days: int | None = None,
    slot_minutes: int | None = None,
    now: datetime | None = None,
) -> dict:
    """Availability for a run of consecutive club-local dates.

    "Today" is derived once per call in the club's timezone and drives the
    default start, each day's is_today flag and past-time blocking.
    """
    tz = club.timezone
    zone = resolve_timezone(tz)
    now = as_utc(now) if now is not None else datetime.now(zone)
    today = get_today_in_timezone(tz, now)
    current_hour_start = now.astimezone(zone).replace(minute=0, second=0, microsecond=0)

    first = resolve_range_start(mode, start, today)
    dates = dates_from_start(first, validate_num_days(days))

    courts = await repository.get_active_courts_for_club(db, club.id)
    windows = await get_opening_windows(db, club.id, dates)

    # One query for the whole range; the extra day catches windows running past midnight
    range_start, _ = local_day_bounds(dates[0], tz)
    _, range_end = local_day_bounds(dates[-1] + timedelta(days=1), tz)
    bookings = await repository.get_bookings_overlapping(db, [c.id for c in courts], range_start, range_end)
    intervals = [BookingInterval.from_booking(b) for b in bookings]

    logger.debug(
        "Building availability club=%s %s..%s courts=%d bookings=%d",
        club.id,
        dates[0],
        dates[-1],
        len(courts),
        len(intervals),
    )

    day_results = [
        _build_day(courts, windows[d], intervals, d, tz, slot_minutes, today, current_hour_start) for d in dates
    ]

    return {
        "week_start": dates[0].isoformat(),
        "week_end": dates[-1].isoformat(),
        "mode": mode,
        "days": day_results,
        "courts": [
            {
                "id": c.id,
                "name": c.name,
                "type": c.court_type,
                "indoor": c.indoor,
                "sport_type": c.sport_type,
            }
            for c in courts
        ],
    }
