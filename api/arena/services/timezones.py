"""Club-local wall clock <-> UTC conversion.

Pure calculation module: no database, no async, no FastAPI dependencies.
Every function takes the IANA zone explicitly, and the offset is always
looked up for the specific date being converted, so DST transitions are
handled (a January offset is never reused for July).

Functions that depend on "now" accept an optional aware ``now`` so callers
can pin the clock.
"""

import re
from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from arena.core.config import settings
from arena.core.exceptions import ValidationError

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_RE = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")

# Indexed by date.weekday() (0=Mon); day names are always English in API payloads
DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


# ---------------------------------------------------------------------------
# Parsing and validation
# ---------------------------------------------------------------------------


def parse_date(value: str | date) -> date:
    """Parse a strict YYYY-MM-DD string. Dates pass through unchanged."""
    if isinstance(value, datetime):
        raise ValidationError("date", f"Expected a calendar date, got a datetime: {value!r}")
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not _DATE_RE.match(value):
        raise ValidationError("date", f"Invalid date format: {value!r}. Expected YYYY-MM-DD")
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError("date", f"Invalid date: {value!r}") from None


def parse_time(value: str | time) -> time:
    """Parse an HH:MM string (H:MM accepted). Times pass through unchanged."""
    if isinstance(value, time):
        return value
    match = _TIME_RE.match(value) if isinstance(value, str) else None
    if match is None:
        raise ValidationError("time", f"Invalid time format: {value!r}. Expected HH:MM")
    return time(int(match.group(1)), int(match.group(2)))


def format_time(value: time | datetime) -> str:
    return value.strftime("%H:%M")


def is_valid_timezone(tz: str | None) -> bool:
    if not tz:
        return False
    try:
        ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def resolve_timezone(tz: str | None) -> ZoneInfo:
    """Return the ZoneInfo for an IANA name. Empty means the platform default.

    Unknown names are rejected rather than silently replaced, so a bad club
    record surfaces instead of producing shifted slots.
    """
    name = tz or settings.default_club_timezone
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValidationError("timezone", f"Invalid IANA timezone: {name!r}") from None


def as_utc(value: datetime | str) -> datetime:
    """Normalise an instant to an aware UTC datetime.

    Naive datetimes are taken to already be UTC (some drivers drop tzinfo on read).
    ISO strings with a trailing "Z" are accepted.
    """
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            raise ValidationError("instant", f"Invalid ISO 8601 datetime: {value!r}") from None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def validate_range(start: datetime, end: datetime) -> tuple[datetime, datetime]:
    """Return (start, end) as UTC, rejecting empty or inverted intervals."""
    start, end = as_utc(start), as_utc(end)
    if end <= start:
        raise ValidationError("end", f"End {end.isoformat()} must be after start {start.isoformat()}")
    return start, end


# ---------------------------------------------------------------------------
# Conversions
# ---------------------------------------------------------------------------


def local_to_utc(local_date: str | date, local_time: str | time, tz: str | None) -> datetime:
    """Interpret a club-local date + wall-clock time and return the UTC instant.

    local_to_utc("2026-01-06", "10:00", "Europe/Kyiv") -> 2026-01-06 08:00 UTC (winter, UTC+2)
    local_to_utc("2026-07-06", "10:00", "Europe/Kyiv") -> 2026-07-06 07:00 UTC (summer, UTC+3)
    """
    zone = resolve_timezone(tz)
    local = datetime.combine(parse_date(local_date), parse_time(local_time), tzinfo=zone)
    return local.astimezone(UTC)


def utc_to_local(instant: datetime | str, tz: str | None) -> datetime:
    return as_utc(instant).astimezone(resolve_timezone(tz))


def utc_to_local_time(instant: datetime | str, tz: str | None) -> str:
    """UTC instant -> club-local "HH:MM"."""
    return format_time(utc_to_local(instant, tz))


def utc_to_local_date(instant: datetime | str, tz: str | None) -> str:
    """UTC instant -> club-local "YYYY-MM-DD". 22:00Z in Kyiv is already the next day."""
    return utc_to_local(instant, tz).date().isoformat()


def time_of_day_to_utc(
    local_time: str | time,
    tz: str | None,
    reference_date: str | date | None = None,
    now: datetime | None = None,
) -> str:
    """Convert a recurring club-local time of day to UTC "HH:MM".

    The offset in force on ``reference_date`` (default: today in the club) is
    used. The result can roll over midnight (22:00 in UTC-5 is 03:00 UTC),
    so callers must not assume it falls on the same day.
    """
    ref = parse_date(reference_date) if reference_date else get_today_in_timezone(tz, now)
    return format_time(local_to_utc(ref, local_time, tz))


def time_of_day_from_utc(
    utc_time: str | time,
    tz: str | None,
    reference_date: str | date | None = None,
    now: datetime | None = None,
) -> str:
    """Inverse of time_of_day_to_utc: UTC "HH:MM" -> club-local "HH:MM"."""
    ref = parse_date(reference_date) if reference_date else get_today_in_timezone(tz, now)
    instant = datetime.combine(ref, parse_time(utc_time), tzinfo=UTC)
    return utc_to_local_time(instant, tz)


def is_dst(instant: datetime | str, tz: str | None) -> bool:
    return bool(utc_to_local(instant, tz).dst())


# ---------------------------------------------------------------------------
# "Now" in a zone
# ---------------------------------------------------------------------------


def _now(now: datetime | None) -> datetime:
    return as_utc(now) if now is not None else datetime.now(UTC)


def get_today_in_timezone(tz: str | None, now: datetime | None = None) -> date:
    return _now(now).astimezone(resolve_timezone(tz)).date()


def get_today_str(tz: str | None, now: datetime | None = None) -> str:
    return get_today_in_timezone(tz, now).isoformat()


def get_current_time_in_timezone(tz: str | None, now: datetime | None = None) -> str:
    return format_time(_now(now).astimezone(resolve_timezone(tz)))


# ---------------------------------------------------------------------------
# Calendar helpers
# ---------------------------------------------------------------------------


def get_week_monday(value: str | date) -> date:
    """The Monday on or before the given date."""
    d = parse_date(value)
    return d - timedelta(days=d.weekday())


def dates_from_start(start: str | date, num_days: int) -> list[date]:
    first = parse_date(start)
    return [first + timedelta(days=i) for i in range(num_days)]


def day_of_week(value: date) -> int:
    """0=Sunday..6=Saturday, the convention used by stored business hours."""
    return (value.weekday() + 1) % 7


def day_name(value: date) -> str:
    return DAY_NAMES[value.weekday()]


def local_day_bounds(local_date: str | date, tz: str | None) -> tuple[datetime, datetime]:
    """UTC instants of local midnight and the following local midnight.

    The span is 23 or 25 hours on DST transition days.
    """
    d = parse_date(local_date)
    return local_to_utc(d, time(0, 0), tz), local_to_utc(d + timedelta(days=1), time(0, 0), tz)


def ranges_overlap(start1: datetime, end1: datetime, start2: datetime, end2: datetime) -> bool:
    """Half-open interval overlap: touching ends do not overlap."""
    return start1 < end2 and start2 < end1
