"""Background scheduler for the weekly quota reset."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI

from ..core.config import get_settings
from ..core.database import SessionLocal
from ..services.quota_service import reset_all

logger = logging.getLogger(__name__)

_scheduler = AsyncIOScheduler(timezone="UTC")


def run_reset_once(current_time: datetime | None = None) -> dict[str, int]:
    """Run the weekly reset in its own session and commit it."""

    session = SessionLocal()
    try:
        summary = reset_all(session, now=current_time or datetime.now(timezone.utc))
        session.commit()
        return summary
    except Exception:
        session.rollback()
        logger.exception("weekly reset job failed")
        raise
    finally:
        session.close()


async def _scheduled_job() -> None:
    summary = run_reset_once()
    logger.info("weekly reset completed: %s", summary)


def _ensure_job() -> None:
    if _scheduler.get_job("weekly_reset") is not None:
        return
    settings = get_settings()
    _scheduler.add_job(
        _scheduled_job,
        "cron",
        day_of_week=settings.weekly_reset_day_of_week,
        hour=settings.weekly_reset_hour,
        minute=settings.weekly_reset_minute,
        id="weekly_reset",
        misfire_grace_time=3600,
        coalesce=True,
    )


def register_scheduler(app: FastAPI) -> None:
    """Attach APScheduler lifecycle hooks to the FastAPI app."""

    if not get_settings().scheduler_enabled:
        logger.info("weekly reset scheduler disabled")
        return

    @app.on_event("startup")
    async def start_scheduler() -> None:
        if not _scheduler.running:
            _ensure_job()
            _scheduler.start()
            logger.info("weekly reset scheduler started")

    @app.on_event("shutdown")
    async def shutdown_scheduler() -> None:
        if _scheduler.running:
            _scheduler.shutdown(wait=False)
            logger.info("weekly reset scheduler stopped")
