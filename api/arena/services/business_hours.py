"""Effective opening hours for a club on a calendar date.

Precedence:
1. SpecialHours for the exact date, exclusively (a closed special day stays closed).
2. BusinessHours for the date's day of week, unless marked closed.
3. Otherwise closed.

Stored times are club-local wall-clock "HH:MM". A window whose close is
before its open (e.g. 18:00-02:00, or 08:00-00:00) runs past midnight into the
next calendar day. Equal open and close times are an empty window and count as
closed, except 00:00-00:00 which is open around the clock.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Literal, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from arena.services import repository
from arena.services.timezones import day_of_week, format_time, local_to_utc, parse_date, parse_time

WindowSource = Literal["special", "weekly"]


class HoursRecord(Protocol):
    open_time: str | None
    close_time: str | None
    is_closed: bool


@dataclass(frozen=True)
class OpeningWindow:
    open_time: time
    close_time: time
    source: WindowSource

    @property
    def crosses_midnight(self) -> bool:
        if self.close_time == self.open_time:
            return self.close_time == time(0, 0)
        return self.close_time < self.open_time

    @property
    def minutes(self) -> int:
        """Wall-clock length of the window in minutes."""
        start = self.open_time.hour * 60 + self.open_time.minute
        end = self.close_time.hour * 60 + self.close_time.minute
        if self.crosses_midnight:
            end += 24 * 60
        return end - start

    def to_utc(self, on_date: date | str, tz: str | None) -> tuple[datetime, datetime]:
        """UTC instants of the window's open and close on the given club-local date."""
        d = parse_date(on_date)
        close_date = d + timedelta(days=1) if self.crosses_midnight else d
        return local_to_utc(d, self.open_time, tz), local_to_utc(close_date, self.close_time, tz)

    def whole_hours(self, on_date: date | str, tz: str | None) -> int:
        """Complete elapsed hours between open and close on that date.

        Measured in real time, so a 00:00-06:00 window is 7 hours on the
        autumn DST day and 5 on the spring one.
        """
        open_utc, close_utc = self.to_utc(on_date, tz)
        return int((close_utc - open_utc).total_seconds() // 3600)

    def to_dict(self) -> dict:
        return {
            "open": format_time(self.open_time),
            "close": format_time(self.close_time),
            "source": self.source,
        }


def _window_from_record(record: HoursRecord, source: WindowSource) -> OpeningWindow | None:
    if record.is_closed or not record.open_time or not record.close_time:
        return None
    window = OpeningWindow(parse_time(record.open_time), parse_time(record.close_time), source)
    if window.minutes == 0:
        return None
    return window


def resolve_opening_window(
    special: HoursRecord | None,
    weekly: HoursRecord | None,
) -> OpeningWindow | None:
    """Apply override precedence to already-fetched records. None means closed."""
    if special is not None:
        return _window_from_record(special, "special")
    if weekly is not None:
        return _window_from_record(weekly, "weekly")
    return None


async def get_opening_window(db: AsyncSession, club_id: int, on_date: date | str) -> OpeningWindow | None:
    """Resolve the effective window for one club-local date from the database."""
    d = parse_date(on_date)
    special = await repository.get_special_hours(db, club_id, d)
    if special is not None:
        return resolve_opening_window(special, None)
    weekly = await repository.get_business_hours(db, club_id, day_of_week(d))
    return resolve_opening_window(None, weekly)


async def get_opening_windows(
    db: AsyncSession, club_id: int, dates: list[date]
) -> dict[date, OpeningWindow | None]:
    """Resolve windows for a run of dates with two queries instead of two per date."""
    if not dates:
        return {}
    weekly = await repository.get_weekly_business_hours(db, club_id)
    specials = await repository.get_special_hours_between(db, club_id, min(dates), max(dates))
    return {d: resolve_opening_window(specials.get(d), weekly.get(day_of_week(d))) for d in dates}
