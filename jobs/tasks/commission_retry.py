"""
Commission retry task.

Retries failed referral commissions within the attempt limit and
pays out pending commissions left behind by a crash between insert
and payout. Runs on the APScheduler interval configured in settings.
"""

from datetime import timedelta

from loguru import logger
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.config.settings import settings
from app.models.enums import CommissionStatus
from app.repositories.referral_commission_repository import (
    ReferralCommissionRepository,
)
from app.services.referral.commission_ledger import CommissionLedger
from app.utils.datetime_utils import utc_now
from app.utils.exceptions import PromorangError


async def retry_commissions(
    session_maker: async_sessionmaker,
    batch_size: int = 100,
) -> dict[str, int]:
    """
    Run one retry sweep.

    Args:
        session_maker: Session factory
        batch_size: Max commissions per group (failed, stale pending)

    Returns:
        Dict {"retried", "paid", "failed"}
    """
    stats = {"retried": 0, "paid": 0, "failed": 0}
    max_attempts = settings.commission_retry_max_attempts
    stale_before = utc_now() - timedelta(
        minutes=settings.commission_stale_pending_minutes
    )

    async with session_maker() as session:
        repo = ReferralCommissionRepository(session)
        ledger = CommissionLedger(session)

        failed_ids, pending_ids = await repo.get_retryable_ids(
            max_attempts, stale_before, limit=batch_size
        )
        # Release the read transaction before payouts commit
        await session.rollback()

        for commission_id in failed_ids + pending_ids:
            try:
                if commission_id in failed_ids:
                    commission = await ledger.retry_commission(
                        commission_id, max_attempts
                    )
                else:
                    commission = await ledger.process_commission(commission_id)
            except PromorangError as e:
                # Picked up concurrently or out of attempts
                logger.info(
                    f"Commission {commission_id} skipped: {e.code}",
                    extra={"commission_id": commission_id},
                )
                continue
            except Exception as e:
                logger.error(
                    f"Commission {commission_id} retry crashed: {e}",
                    extra={"commission_id": commission_id},
                    exc_info=True,
                )
                await session.rollback()
                stats["retried"] += 1
                stats["failed"] += 1
                continue

            stats["retried"] += 1
            if commission.status == CommissionStatus.PAID.value:
                stats["paid"] += 1
            elif commission.status == CommissionStatus.FAILED.value:
                stats["failed"] += 1

    if stats["retried"]:
        logger.info(
            f"Commission retry sweep: {stats['retried']} retried, "
            f"{stats['paid']} paid, {stats['failed']} failed"
        )
    else:
        logger.debug("Commission retry sweep: nothing to retry")

    return stats
