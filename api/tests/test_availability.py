"""Business-hours resolution, the slot calculator and the availability builder."""

from datetime import UTC, date, datetime, time, timedelta
from types import SimpleNamespace

import pytest

from arena.core.exceptions import ValidationError
from arena.models import BookingStatus
from arena.services.availability import (
    BookingInterval,
    SlotStatus,
    build_availability,
    calculate_day_availability,
    court_status,
    generate_buckets,
    is_bucket_blocked,
    overall_status,
    resolve_range_start,
)
from arena.services.business_hours import OpeningWindow, get_opening_window, resolve_opening_window
from arena.services.timezones import parse_date


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=UTC)


def _hours(open_time="09:00", close_time="21:00", is_closed=False):
    return SimpleNamespace(open_time=open_time, close_time=close_time, is_closed=is_closed)


def _court(court_id: int, name: str | None = None):
    return SimpleNamespace(id=court_id, name=name or f"Court {court_id}", court_type="padel", indoor=True)


WINDOW_8_22 = OpeningWindow(time(8, 0), time(22, 0), "weekly")


# ---------------------------------------------------------------------------
# Business hours
# ---------------------------------------------------------------------------


class TestResolveOpeningWindow:
    def test_weekly_hours(self):
        window = resolve_opening_window(None, _hours("09:00", "21:00"))
        assert window == OpeningWindow(time(9, 0), time(21, 0), "weekly")

    def test_closed_special_beats_open_weekly(self):
        assert resolve_opening_window(_hours(is_closed=True), _hours("09:00", "21:00")) is None

    def test_special_hours_replace_weekly(self):
        window = resolve_opening_window(_hours("12:00", "16:00"), _hours("09:00", "21:00"))
        assert window.source == "special"
        assert window.open_time == time(12, 0)
        assert window.close_time == time(16, 0)

    def test_closed_weekly_day(self):
        assert resolve_opening_window(None, _hours(is_closed=True)) is None

    def test_no_record_is_closed(self):
        assert resolve_opening_window(None, None) is None

    def test_missing_times_are_closed(self):
        assert resolve_opening_window(None, _hours(open_time=None)) is None

    def test_malformed_time_is_rejected(self):
        with pytest.raises(ValidationError):
            resolve_opening_window(None, _hours("9am", "21:00"))

    def test_equal_open_and_close_is_closed(self):
        assert resolve_opening_window(None, _hours("09:00", "09:00")) is None
        assert resolve_opening_window(_hours("12:00", "12:00"), _hours("09:00", "21:00")) is None

    def test_midnight_to_midnight_is_open_all_day(self):
        window = resolve_opening_window(None, _hours("00:00", "00:00"))
        assert window.minutes == 24 * 60


class TestOpeningWindow:
    def test_whole_hours(self):
        assert WINDOW_8_22.whole_hours("2026-01-06", "UTC") == 14
        assert OpeningWindow(time(9, 0), time(17, 30), "weekly").whole_hours("2026-01-06", "UTC") == 8

    def test_crosses_midnight(self):
        late = OpeningWindow(time(18, 0), time(2, 0), "weekly")
        assert late.crosses_midnight
        assert late.whole_hours("2026-01-06", "UTC") == 8
        start, end = late.to_utc("2026-01-06", "UTC")
        assert start == utc(2026, 1, 6, 18)
        assert end == utc(2026, 1, 7, 2)

    def test_close_at_midnight_means_end_of_day(self):
        window = OpeningWindow(time(8, 0), time(0, 0), "weekly")
        assert window.whole_hours("2026-01-06", "UTC") == 16
        assert window.to_utc("2026-01-06", "UTC")[1] == utc(2026, 1, 7, 0)

    def test_equal_times_are_an_empty_window(self):
        window = OpeningWindow(time(9, 0), time(9, 0), "weekly")
        assert not window.crosses_midnight
        assert window.minutes == 0
        assert window.whole_hours("2026-01-06", "UTC") == 0
        assert generate_buckets(window, date(2026, 1, 6), "UTC") == []

    def test_midnight_to_midnight(self):
        window = OpeningWindow(time(0, 0), time(0, 0), "weekly")
        assert window.crosses_midnight
        assert window.whole_hours("2026-01-06", "UTC") == 24
        assert len(generate_buckets(window, date(2026, 1, 6), "UTC")) == 24

    @pytest.mark.parametrize("on_date, hours", [("2026-10-25", 7), ("2026-03-29", 5), ("2026-01-06", 6)])
    def test_whole_hours_on_dst_days_match_buckets(self, on_date, hours):
        early = OpeningWindow(time(0, 0), time(6, 0), "weekly")
        assert early.whole_hours(on_date, "Europe/Kyiv") == hours
        assert len(generate_buckets(early, parse_date(on_date), "Europe/Kyiv")) == hours

    def test_to_utc_follows_dst(self):
        assert WINDOW_8_22.to_utc("2026-01-06", "Europe/Kyiv") == (utc(2026, 1, 6, 6), utc(2026, 1, 6, 20))
        assert WINDOW_8_22.to_utc("2026-07-06", "Europe/Kyiv") == (utc(2026, 7, 6, 5), utc(2026, 7, 6, 19))


@pytest.mark.asyncio
async def test_special_closure_overrides_weekly_hours(db, create_club, add_special_hours):
    club, _ = await create_club(open_time="09:00", close_time="21:00")
    monday = date(2026, 1, 5)
    await add_special_hours(club, monday, is_closed=True, reason="Holiday")

    assert await get_opening_window(db, club.id, monday) is None
    # The following Monday still uses the weekly pattern
    window = await get_opening_window(db, club.id, monday + timedelta(days=7))
    assert window == OpeningWindow(time(9, 0), time(21, 0), "weekly")


@pytest.mark.asyncio
async def test_special_hours_shorten_day(db, create_club, add_special_hours):
    club, _ = await create_club()
    await add_special_hours(club, date(2026, 12, 31), open_time="10:00", close_time="15:00")
    window = await get_opening_window(db, club.id, "2026-12-31")
    assert window.source == "special"
    assert window.whole_hours("2026-12-31", club.timezone) == 5


@pytest.mark.asyncio
async def test_club_without_hours_is_closed(db, create_club):
    club, _ = await create_club(open_time=None, close_time=None)
    assert await get_opening_window(db, club.id, "2026-01-06") is None


# ---------------------------------------------------------------------------
# Calculator
# ---------------------------------------------------------------------------


BUCKET = (utc(2026, 1, 6, 10), utc(2026, 1, 6, 11))


class TestCourtStatus:
    def test_no_bookings(self):
        assert court_status([], *BUCKET) == SlotStatus.AVAILABLE

    def test_full_cover_is_booked(self):
        full = BookingInterval(1, utc(2026, 1, 6, 9), utc(2026, 1, 6, 12))
        assert court_status([full], *BUCKET) == SlotStatus.BOOKED

    def test_exact_cover_is_booked(self):
        exact = BookingInterval(1, *BUCKET)
        assert court_status([exact], *BUCKET) == SlotStatus.BOOKED

    def test_partial_overlap(self):
        half = BookingInterval(1, utc(2026, 1, 6, 10, 30), utc(2026, 1, 6, 11, 30))
        assert court_status([half], *BUCKET) == SlotStatus.PARTIAL

    def test_touching_booking_does_not_overlap(self):
        before = BookingInterval(1, utc(2026, 1, 6, 9), utc(2026, 1, 6, 10))
        after = BookingInterval(1, utc(2026, 1, 6, 11), utc(2026, 1, 6, 12))
        assert court_status([before, after], *BUCKET) == SlotStatus.AVAILABLE

    def test_booked_wins_regardless_of_order(self):
        full = BookingInterval(1, utc(2026, 1, 6, 10), utc(2026, 1, 6, 11))
        partial = BookingInterval(1, utc(2026, 1, 6, 10, 30), utc(2026, 1, 6, 12))
        assert court_status([full, partial], *BUCKET) == SlotStatus.BOOKED
        assert court_status([partial, full], *BUCKET) == SlotStatus.BOOKED

    def test_pending_outranks_confirmed(self):
        full = BookingInterval(1, utc(2026, 1, 6, 10), utc(2026, 1, 6, 11))
        pending = BookingInterval(1, utc(2026, 1, 6, 10, 45), utc(2026, 1, 6, 11, 15), pending=True)
        assert court_status([full, pending], *BUCKET) == SlotStatus.PENDING
        assert court_status([pending, full], *BUCKET) == SlotStatus.PENDING


class TestOverallStatus:
    def _summary(self, available=0, partial=0, booked=0, pending=0):
        return {
            "available": available,
            "partial": partial,
            "booked": booked,
            "pending": pending,
            "total": available + partial + booked + pending,
        }

    def test_all_available(self):
        assert overall_status(self._summary(available=3)) == SlotStatus.AVAILABLE

    def test_all_booked(self):
        assert overall_status(self._summary(booked=2)) == SlotStatus.BOOKED

    def test_all_pending(self):
        assert overall_status(self._summary(pending=2)) == SlotStatus.PENDING

    def test_mixed_is_partial(self):
        assert overall_status(self._summary(available=1, booked=1)) == SlotStatus.PARTIAL
        assert overall_status(self._summary(booked=1, pending=1)) == SlotStatus.PARTIAL


class TestGenerateBuckets:
    def test_hourly_buckets(self):
        buckets = generate_buckets(WINDOW_8_22, date(2026, 1, 6), "UTC")
        assert len(buckets) == 14
        assert buckets[0].start_time == "08:00"
        assert buckets[-1].start_time == "21:00"
        assert buckets[-1].end_time == "22:00"
        assert [b.hour for b in buckets] == list(range(8, 22))

    def test_buckets_are_utc_instants_for_the_date(self):
        buckets = generate_buckets(WINDOW_8_22, date(2026, 1, 6), "Europe/Kyiv")
        assert buckets[0].start == utc(2026, 1, 6, 6)
        assert buckets[0].start_time == "08:00"
        summer = generate_buckets(WINDOW_8_22, date(2026, 7, 6), "Europe/Kyiv")
        assert summer[0].start == utc(2026, 7, 6, 5)

    def test_trailing_partial_bucket_dropped(self):
        window = OpeningWindow(time(9, 0), time(17, 30), "weekly")
        buckets = generate_buckets(window, date(2026, 1, 6), "UTC")
        assert len(buckets) == 8
        assert buckets[-1].end_time == "17:00"

    def test_half_hour_slots(self):
        buckets = generate_buckets(WINDOW_8_22, date(2026, 1, 6), "UTC", slot_minutes=30)
        assert len(buckets) == 28
        assert buckets[1].start_time == "08:30"

    def test_closed_day(self):
        assert generate_buckets(None, date(2026, 1, 6), "UTC") == []

    def test_invalid_slot_length(self):
        with pytest.raises(ValidationError):
            generate_buckets(WINDOW_8_22, date(2026, 1, 6), "UTC", slot_minutes=0)


class TestCalculateDayAvailability:
    def test_statuses_and_summary(self):
        courts = [_court(1), _court(2)]
        intervals = [
            BookingInterval(1, utc(2026, 1, 6, 10), utc(2026, 1, 6, 12)),
            BookingInterval(2, utc(2026, 1, 6, 10, 30), utc(2026, 1, 6, 11)),
        ]
        hours = calculate_day_availability(courts, WINDOW_8_22, intervals, date(2026, 1, 6), "UTC")
        by_hour = {h["hour"]: h for h in hours}

        ten = by_hour[10]
        assert [c["status"] for c in ten["courts"]] == [SlotStatus.BOOKED, SlotStatus.PARTIAL]
        assert ten["summary"] == {"available": 0, "partial": 1, "booked": 1, "pending": 0, "total": 2}
        assert ten["overall_status"] == SlotStatus.PARTIAL

        eleven = by_hour[11]
        assert eleven["summary"]["booked"] == 1
        assert eleven["summary"]["available"] == 1

        assert by_hour[8]["overall_status"] == SlotStatus.AVAILABLE
        assert by_hour[8]["is_blocked"] is False

    def test_all_courts_booked(self):
        courts = [_court(1), _court(2)]
        intervals = [BookingInterval(c.id, utc(2026, 1, 6, 8), utc(2026, 1, 6, 9)) for c in courts]
        hours = calculate_day_availability(courts, WINDOW_8_22, intervals, date(2026, 1, 6), "UTC")
        assert hours[0]["overall_status"] == SlotStatus.BOOKED

    def test_no_courts_or_closed(self):
        assert calculate_day_availability([], WINDOW_8_22, [], date(2026, 1, 6), "UTC") == []
        assert calculate_day_availability([_court(1)], None, [], date(2026, 1, 6), "UTC") == []

    def test_overnight_booking_touches_both_dates(self):
        courts = [_court(1)]
        late = [BookingInterval(1, utc(2026, 1, 6, 21, 30), utc(2026, 1, 7, 8, 30))]
        first = calculate_day_availability(courts, WINDOW_8_22, late, date(2026, 1, 6), "UTC")
        second = calculate_day_availability(courts, WINDOW_8_22, late, date(2026, 1, 7), "UTC")
        assert first[-1]["courts"][0]["status"] == SlotStatus.PARTIAL
        assert second[0]["courts"][0]["status"] == SlotStatus.PARTIAL
        assert second[1]["courts"][0]["status"] == SlotStatus.AVAILABLE


class TestBlocking:
    TODAY = date(2026, 1, 6)
    CURRENT_HOUR = utc(2026, 1, 6, 14)

    def _bucket(self, on_date, hour):
        return generate_buckets(WINDOW_8_22, on_date, "UTC")[hour - 8]

    def test_past_date_fully_blocked(self):
        yesterday = self.TODAY - timedelta(days=1)
        assert is_bucket_blocked(yesterday, self._bucket(yesterday, 21), self.TODAY, self.CURRENT_HOUR)

    def test_earlier_hour_today_blocked(self):
        assert is_bucket_blocked(self.TODAY, self._bucket(self.TODAY, 13), self.TODAY, self.CURRENT_HOUR)

    def test_current_hour_still_bookable(self):
        assert not is_bucket_blocked(self.TODAY, self._bucket(self.TODAY, 14), self.TODAY, self.CURRENT_HOUR)

    def test_future_not_blocked(self):
        tomorrow = self.TODAY + timedelta(days=1)
        assert not is_bucket_blocked(tomorrow, self._bucket(tomorrow, 8), self.TODAY, self.CURRENT_HOUR)


class TestRangeStart:
    def test_rolling_starts_today(self):
        assert resolve_range_start("rolling", None, date(2026, 1, 8)) == date(2026, 1, 8)

    def test_calendar_starts_monday(self):
        assert resolve_range_start("calendar", None, date(2026, 1, 8)) == date(2026, 1, 5)

    def test_explicit_start_wins(self):
        assert resolve_range_start("calendar", "2026-02-11", date(2026, 1, 8)) == date(2026, 2, 11)

    def test_invalid_mode(self):
        with pytest.raises(ValidationError):
            resolve_range_start("fortnight", None, date(2026, 1, 8))


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_build_rolling_week(db, create_club, add_booking):
    club, courts = await create_club(court_count=2)
    await add_booking(courts[0], utc(2026, 1, 7, 10), utc(2026, 1, 7, 11))
    await add_booking(courts[1], utc(2026, 1, 7, 10), utc(2026, 1, 7, 10, 30), status=BookingStatus.PENDING)
    await add_booking(courts[1], utc(2026, 1, 7, 12), utc(2026, 1, 7, 13), status=BookingStatus.CANCELLED)

    now = utc(2026, 1, 6, 14, 20)
    result = await build_availability(db, club, now=now)

    assert result["week_start"] == "2026-01-06"
    assert result["week_end"] == "2026-01-12"
    assert result["mode"] == "rolling"
    assert [d["date"] for d in result["days"]] == [f"2026-01-{d:02d}" for d in range(6, 13)]
    assert [d["is_today"] for d in result["days"]] == [True] + [False] * 6
    assert result["days"][0]["day_name"] == "Tuesday"
    assert result["days"][0]["day_of_week"] == 2
    assert [c["name"] for c in result["courts"]] == ["Court 1", "Court 2"]

    today_hours = {h["hour"]: h for h in result["days"][0]["hours"]}
    assert today_hours[13]["is_blocked"] is True
    assert today_hours[14]["is_blocked"] is False

    tomorrow = {h["hour"]: h for h in result["days"][1]["hours"]}
    assert [c["status"] for c in tomorrow[10]["courts"]] == [SlotStatus.BOOKED, SlotStatus.PENDING]
    assert tomorrow[10]["overall_status"] == SlotStatus.PARTIAL
    # Cancelled bookings never occupy a court
    assert tomorrow[12]["overall_status"] == SlotStatus.AVAILABLE


@pytest.mark.asyncio
async def test_build_calendar_week_in_club_timezone(db, create_club):
    club, _ = await create_club(timezone="Europe/Kyiv")
    # Sunday 23:30 UTC is already Monday in Kyiv
    result = await build_availability(db, club, mode="calendar", now=utc(2026, 1, 11, 23, 30))
    assert result["week_start"] == "2026-01-12"
    assert result["week_end"] == "2026-01-18"
    assert result["days"][0]["is_today"] is True
    assert result["days"][0]["hours"][0]["start_time"] == "08:00"


@pytest.mark.asyncio
async def test_build_marks_special_closure(db, create_club, add_special_hours):
    club, _ = await create_club()
    await add_special_hours(club, date(2026, 1, 8), is_closed=True)
    result = await build_availability(db, club, start="2026-01-07", days=3, now=utc(2026, 1, 1))
    assert [len(d["hours"]) for d in result["days"]] == [14, 0, 14]


@pytest.mark.asyncio
async def test_build_past_days_blocked(db, create_club):
    club, _ = await create_club()
    result = await build_availability(db, club, start="2026-01-05", days=2, now=utc(2026, 1, 6, 9))
    assert all(h["is_blocked"] for h in result["days"][0]["hours"])
    assert not result["days"][1]["hours"][1]["is_blocked"]


@pytest.mark.asyncio
async def test_build_rejects_bad_arguments(db, create_club):
    club, _ = await create_club()
    with pytest.raises(ValidationError):
        await build_availability(db, club, start="2026/01/05")
    with pytest.raises(ValidationError):
        await build_availability(db, club, mode="monthly")
    with pytest.raises(ValidationError):
        await build_availability(db, club, days=0)
    with pytest.raises(ValidationError):
        await build_availability(db, club, days=32)


@pytest.mark.asyncio
async def test_build_ignores_inactive_courts(db, create_club):
    club, courts = await create_club(court_count=3)
    courts[2].is_active = False
    await db.commit()
    result = await build_availability(db, club, start="2026-01-07", days=1, now=utc(2026, 1, 1))
    assert len(result["courts"]) == 2
    assert result["days"][0]["hours"][0]["summary"]["total"] == 2
