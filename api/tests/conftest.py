"""Shared test fixtures.

Every test gets a throwaway SQLite database (aiosqlite) with the schema
created from the models. The app's get_db dependency is overridden to use it,
so route tests and service tests see the same data.
"""

from datetime import datetime

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from arena.core.auth import create_access_token, create_admin_token
from arena.core.database import get_db
from arena.main import app
from arena.models import Base, Booking, BookingStatus, BusinessHours, Club, Court, Organization, SpecialHours


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'arena-test.db'}")

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # pysqlite's own transaction handling breaks SAVEPOINT; let SQLAlchemy emit BEGIN
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    async def _get_test_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_test_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Data builders
# ---------------------------------------------------------------------------


@pytest.fixture
async def organization(db):
    org = Organization(name="Test Org", slug="test-org")
    db.add(org)
    await db.commit()
    return org


@pytest.fixture
def create_club(db, organization):
    """Factory: a club with N active courts, open the same hours every day by default.

    Returns (club, courts). Everything is committed so API requests see it.
    """

    async def _create(
        slug: str = "test-club",
        timezone: str = "UTC",
        court_count: int = 2,
        open_time: str | None = "08:00",
        close_time: str | None = "22:00",
        organization_id: int | None = None,
        status: str = "active",
    ):
        club = Club(
            organization_id=organization_id if organization_id is not None else organization.id,
            name=slug.replace("-", " ").title(),
            slug=slug,
            timezone=timezone,
            status=status,
        )
        db.add(club)
        await db.flush()

        courts = [
            Court(club_id=club.id, name=f"Court {i + 1}", court_type="padel", indoor=i % 2 == 0, sort_order=i)
            for i in range(court_count)
        ]
        db.add_all(courts)
        if open_time and close_time:
            db.add_all(
                [
                    BusinessHours(club_id=club.id, day_of_week=dow, open_time=open_time, close_time=close_time)
                    for dow in range(7)
                ]
            )
        await db.commit()
        return club, courts

    return _create


@pytest.fixture
def add_booking(db):
    async def _add(court: Court, start: datetime, end: datetime, status: BookingStatus = BookingStatus.PAID):
        booking = Booking(court_id=court.id, start=start, end=end, status=status)
        db.add(booking)
        await db.commit()
        return booking

    return _add


@pytest.fixture
def add_special_hours(db):
    async def _add(club: Club, on_date, open_time=None, close_time=None, is_closed=False, reason=None):
        special = SpecialHours(
            club_id=club.id,
            date=on_date,
            open_time=open_time,
            close_time=close_time,
            is_closed=is_closed,
            reason=reason,
        )
        db.add(special)
        await db.commit()
        return special

    return _add


@pytest.fixture
def auth_headers():
    def _headers(admin_type: str = "root_admin", managed_ids: list[int] | None = None, user_id: int = 1):
        token = create_admin_token(user_id, admin_type, managed_ids)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def player_headers():
    return {"Authorization": f"Bearer {create_access_token('42')}"}
