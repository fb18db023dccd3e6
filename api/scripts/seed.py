"""Seed the database with demo clubs for the availability grid and statistics.

Run with: python -m scripts.seed
Creates one organization, two clubs in different timezones with courts, weekly
hours, a special closed date, and a spread of bookings around today.
"""

import asyncio
from datetime import UTC, datetime, timedelta

from sqlalchemy import select

from arena.core.database import async_session_factory, engine
from arena.models import Base, Booking, BookingStatus, BusinessHours, Club, Court, Organization, SpecialHours
from arena.services.timezones import get_today_in_timezone, local_to_utc

CLUBS = [
    {
        "name": "Padel Arena Kyiv",
        "slug": "padel-arena-kyiv",
        "timezone": "Europe/Kyiv",
        "currency": "UAH",
        # (day_of_week 0=Sun, open, close); missing days are closed
        "hours": [(0, "09:00", "20:00")] + [(d, "08:00", "22:00") for d in range(1, 6)] + [(6, "09:00", "21:00")],
        "courts": [
            {"name": "Court 1", "court_type": "padel", "indoor": True},
            {"name": "Court 2", "court_type": "padel", "indoor": True},
            {"name": "Court 3", "court_type": "padel", "indoor": False},
        ],
    },
    {
        "name": "Riverside Tennis NYC",
        "slug": "riverside-tennis-nyc",
        "timezone": "America/New_York",
        "currency": "USD",
        "hours": [(d, "07:00", "23:00") for d in range(1, 6)] + [(6, "08:00", "18:00")],
        "courts": [
            {"name": "Center Court", "court_type": "tennis", "indoor": False, "sport_type": "TENNIS"},
            {"name": "Bubble 1", "court_type": "tennis", "indoor": True, "sport_type": "TENNIS"},
        ],
    },
]

# (days from today, local start, duration minutes, court index, status)
BOOKINGS = [
    (-1, "10:00", 60, 0, BookingStatus.COMPLETED),
    (-1, "18:00", 120, 1, BookingStatus.PAID),
    (0, "12:00", 90, 0, BookingStatus.RESERVED),
    (0, "19:00", 60, 1, BookingStatus.PENDING),
    (1, "09:00", 60, 0, BookingStatus.PAID),
    (1, "09:30", 60, 1, BookingStatus.RESERVED),
    (2, "17:00", 120, 0, BookingStatus.CANCELLED),
]


async def seed():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_factory() as db:
        existing = await db.execute(select(Organization).where(Organization.slug == "arena-demo"))
        if existing.scalar_one_or_none():
            print("Already seeded, skipping.")
            return

        org = Organization(name="Arena Demo Group", slug="arena-demo")
        db.add(org)
        await db.flush()

        total_courts = 0
        total_bookings = 0
        for club_data in CLUBS:
            club = Club(
                organization_id=org.id,
                name=club_data["name"],
                slug=club_data["slug"],
                timezone=club_data["timezone"],
                default_currency=club_data["currency"],
            )
            db.add(club)
            await db.flush()

            for dow, open_time, close_time in club_data["hours"]:
                db.add(BusinessHours(club_id=club.id, day_of_week=dow, open_time=open_time, close_time=close_time))

            today = get_today_in_timezone(club.timezone)
            db.add(
                SpecialHours(
                    club_id=club.id,
                    date=today + timedelta(days=5),
                    is_closed=True,
                    reason="Maintenance",
                )
            )

            courts = []
            for i, court_data in enumerate(club_data["courts"]):
                court = Court(club_id=club.id, sort_order=i, default_price_cents=50000, **court_data)
                db.add(court)
                courts.append(court)
            await db.flush()
            total_courts += len(courts)

            for offset, local_start, minutes, court_idx, status in BOOKINGS:
                start = local_to_utc(today + timedelta(days=offset), local_start, club.timezone)
                db.add(
                    Booking(
                        court_id=courts[court_idx].id,
                        start=start,
                        end=start + timedelta(minutes=minutes),
                        status=status,
                        price_cents=courts[court_idx].default_price_cents * minutes // 60,
                    )
                )
                total_bookings += 1

        await db.commit()

        print(f"Seeded: {org.name} at {datetime.now(UTC):%Y-%m-%d %H:%M} UTC")
        print(f"  {len(CLUBS)} clubs: {', '.join(c['name'] + ' (' + c['timezone'] + ')' for c in CLUBS)}")
        print(f"  {total_courts} courts")
        print(f"  {total_bookings} bookings around today")
        print("  1 special closure per club, 5 days from today")


if __name__ == "__main__":
    asyncio.run(seed())
