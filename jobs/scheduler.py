"""
Background scheduler.

APScheduler AsyncIOScheduler running the commission retry sweep in the
API's event loop.
"""

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.config.settings import settings
from jobs.tasks.commission_retry import retry_commissions

COMMISSION_RETRY_JOB_ID = "commission_retry"


def create_scheduler(session_maker: async_sessionmaker) -> AsyncIOScheduler:
    """
    Create scheduler with the commission retry job registered.

    The caller starts it (scheduler.start()) inside a running loop.

    Args:
        session_maker: Session factory passed to jobs

    Returns:
        Configured, not yet started scheduler
    """
    scheduler = AsyncIOScheduler(timezone="UTC")

    if settings.commission_retry_enabled:
        scheduler.add_job(
            retry_commissions,
            "interval",
            minutes=settings.commission_retry_interval_minutes,
            args=[session_maker],
            id=COMMISSION_RETRY_JOB_ID,
            name="Referral commission retry",
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        logger.info(
            "Commission retry job scheduled every "
            f"{settings.commission_retry_interval_minutes} min"
        )
    else:
        logger.info("Commission retry job disabled")

    return scheduler
