"""
ReferralCommission repository.

Data access layer for ReferralCommission model.
"""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import CommissionStatus
from app.models.referral_commission import ReferralCommission
from app.repositories.base import BaseRepository


class ReferralCommissionRepository(BaseRepository[ReferralCommission]):
    """ReferralCommission repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize commission repository."""
        super().__init__(ReferralCommission, session)

    async def get_by_source(
        self, source_table: str, source_transaction_id: str
    ) -> ReferralCommission | None:
        """
        Get commission recorded for a source transaction.

        Args:
            source_table: Table of the originating record
            source_transaction_id: Id of the originating record

        Returns:
            ReferralCommission or None
        """
        return await self.get_by(
            source_table=source_table,
            source_transaction_id=source_transaction_id,
        )

    async def claim_for_payout(
        self, commission_id: int, paid_at: datetime
    ) -> bool:
        """
        Flip commission pending -> paid.

        Must run in the same transaction as the balance credit.

        Returns:
            True only for the call that performed the transition
        """
        updated = await self.update_where(
            [
                ReferralCommission.id == commission_id,
                ReferralCommission.status == CommissionStatus.PENDING.value,
            ],
            status=CommissionStatus.PAID.value,
            processed_at=paid_at,
            paid_at=paid_at,
        )
        return updated == 1

    async def mark_failed(
        self, commission_id: int, error: str, processed_at: datetime
    ) -> bool:
        """
        Flip commission pending -> failed and record the attempt.

        Returns:
            True if the commission was still pending
        """
        updated = await self.update_where(
            [
                ReferralCommission.id == commission_id,
                ReferralCommission.status == CommissionStatus.PENDING.value,
            ],
            status=CommissionStatus.FAILED.value,
            attempts=ReferralCommission.attempts + 1,
            last_error=error[:1000],
            processed_at=processed_at,
        )
        return updated == 1

    async def requeue_failed(
        self, commission_id: int, max_attempts: int
    ) -> bool:
        """
        Flip commission failed -> pending if attempts remain.

        Returns:
            True if the commission was requeued
        """
        updated = await self.update_where(
            [
                ReferralCommission.id == commission_id,
                ReferralCommission.status == CommissionStatus.FAILED.value,
                ReferralCommission.attempts < max_attempts,
            ],
            status=CommissionStatus.PENDING.value,
        )
        return updated == 1

    async def get_retryable_ids(
        self,
        max_attempts: int,
        stale_before: datetime,
        limit: int = 100,
    ) -> tuple[list[int], list[int]]:
        """
        Find commissions the retry sweep should pick up.

        Args:
            max_attempts: Failed commissions at or above this are skipped
            stale_before: Pending commissions created before this are stale
            limit: Max ids per group

        Returns:
            Tuple of (failed_ids, stale_pending_ids), oldest first
        """
        failed_stmt = (
            select(ReferralCommission.id)
            .where(
                ReferralCommission.status == CommissionStatus.FAILED.value,
                ReferralCommission.attempts < max_attempts,
            )
            .order_by(ReferralCommission.id)
            .limit(limit)
        )
        pending_stmt = (
            select(ReferralCommission.id)
            .where(
                ReferralCommission.status == CommissionStatus.PENDING.value,
                ReferralCommission.created_at < stale_before,
            )
            .order_by(ReferralCommission.id)
            .limit(limit)
        )
        failed = (await self.session.execute(failed_stmt)).scalars().all()
        pending = (await self.session.execute(pending_stmt)).scalars().all()
        return list(failed), list(pending)

    async def get_recent_paid(
        self, referrer_id: int, limit: int = 10
    ) -> list[ReferralCommission]:
        """Get newest paid commissions of a referrer."""
        stmt = (
            select(ReferralCommission)
            .where(
                ReferralCommission.referrer_id == referrer_id,
                ReferralCommission.status == CommissionStatus.PAID.value,
            )
            .order_by(
                ReferralCommission.created_at.desc(),
                ReferralCommission.id.desc(),
            )
            .limit(limit)
        )
        return await self._fetch_all(stmt)

    async def find_paid(
        self,
        referrer_id: int,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        earning_type: str | None = None,
        limit: int = 100,
    ) -> list[ReferralCommission]:
        """
        Get paid commissions of a referrer with optional filters.

        Args:
            referrer_id: Referrer user ID
            start_date: Inclusive lower bound on created_at
            end_date: Inclusive upper bound on created_at
            earning_type: Earning type filter
            limit: Max number of results

        Returns:
            Commissions, newest first
        """
        stmt = select(ReferralCommission).where(
            ReferralCommission.referrer_id == referrer_id,
            ReferralCommission.status == CommissionStatus.PAID.value,
        )
        if start_date:
            stmt = stmt.where(ReferralCommission.created_at >= start_date)
        if end_date:
            stmt = stmt.where(ReferralCommission.created_at <= end_date)
        if earning_type:
            stmt = stmt.where(ReferralCommission.earning_type == earning_type)

        stmt = stmt.order_by(
            ReferralCommission.created_at.desc(), ReferralCommission.id.desc()
        ).limit(limit)

        return await self._fetch_all(stmt)
