"""Celery worker: scheduled occupancy statistics.

Beat runs two jobs:
    nightly   recompute "yesterday" (club-local) for every active club
    fallback  a later gap-fill pass that only computes clubs still missing a row

Start with:
    celery -A arena.worker worker --beat --loglevel=info
"""

import asyncio
import logging

from celery import Celery
from celery.schedules import crontab
from celery.signals import setup_logging
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from arena.core.config import settings
from arena.core.logging_config import configure_logging
from arena.services.statistics import calculate_daily_statistics_for_all_clubs

logger = logging.getLogger(__name__)

celery_app = Celery(
    "arena",
    broker=settings.redis_url,
    backend=settings.redis_url,
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
)

celery_app.conf.beat_schedule = {
    "daily-statistics-nightly": {
        "task": "arena.worker.compute_daily_statistics",
        "schedule": crontab(hour=settings.statistics_nightly_hour, minute=settings.statistics_nightly_minute),
        "kwargs": {"fallback_mode": False},
    },
    "daily-statistics-fallback": {
        "task": "arena.worker.compute_daily_statistics",
        "schedule": crontab(hour=settings.statistics_fallback_hour, minute=0),
        "kwargs": {"fallback_mode": True},
    },
}


@setup_logging.connect
def _configure_worker_logging(**kwargs):
    configure_logging()


async def run_daily_statistics(
    session_factory: async_sessionmaker[AsyncSession],
    date: str | None = None,
    fallback_mode: bool = False,
) -> dict:
    """Compute daily statistics for all clubs in one session and summarise the run."""
    async with session_factory() as session:
        try:
            results = await calculate_daily_statistics_for_all_clubs(session, on_date=date, fallback_mode=fallback_mode)
            await session.commit()
        except Exception:
            await session.rollback()
            raise

    failed = [{"club_id": r.club_id, "error": r.error} for r in results if not r.success]
    for failure in failed:
        logger.warning("Statistics failed for club %s: %s", failure["club_id"], failure["error"])
    return {
        "computed": sum(1 for r in results if r.success and not r.skipped),
        "skipped": sum(1 for r in results if r.skipped),
        "failed": failed,
    }


async def _run_with_fresh_engine(date: str | None, fallback_mode: bool) -> dict:
    # Each task gets its own event loop, so pooled connections cannot be shared across runs
    engine = create_async_engine(settings.database_url, echo=settings.database_echo, poolclass=NullPool)
    try:
        return await run_daily_statistics(async_sessionmaker(engine, expire_on_commit=False), date, fallback_mode)
    finally:
        await engine.dispose()


@celery_app.task(name="arena.worker.compute_daily_statistics")
def compute_daily_statistics(date: str | None = None, fallback_mode: bool = False) -> dict:
    """Celery entry point. Retries are left to the next scheduled run."""
    summary = asyncio.run(_run_with_fresh_engine(date, fallback_mode))
    logger.info(
        "Daily statistics task done: computed=%d skipped=%d failed=%d",
        summary["computed"],
        summary["skipped"],
        len(summary["failed"]),
    )
    return summary
