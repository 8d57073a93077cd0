"""
Referral repository.

Data access layer for Referral model.
"""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.enums import ReferralStatus
from app.models.referral import Referral
from app.repositories.base import BaseRepository


class ReferralRepository(BaseRepository[Referral]):
    """Referral repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize referral repository."""
        super().__init__(Referral, session)

    async def get_by_referred(self, referred_id: int) -> Referral | None:
        """
        Get the (only) referral of a referred user.

        Args:
            referred_id: Referred user ID

        Returns:
            Referral or None
        """
        return await self.get_by(referred_id=referred_id)

    async def get_active_by_referred(
        self, referred_id: int
    ) -> Referral | None:
        """Get referral of a referred user if it is active."""
        return await self.get_by(
            referred_id=referred_id, status=ReferralStatus.ACTIVE.value
        )

    async def get_pending_by_referred(
        self, referred_id: int
    ) -> Referral | None:
        """Get referral of a referred user if it is still pending."""
        return await self.get_by(
            referred_id=referred_id, status=ReferralStatus.PENDING.value
        )

    async def activate(
        self, referral_id: int, activated_at: datetime
    ) -> bool:
        """
        Flip referral pending -> active.

        Args:
            referral_id: Referral ID
            activated_at: Activation timestamp

        Returns:
            True only for the call that performed the transition
        """
        updated = await self.update_where(
            [
                Referral.id == referral_id,
                Referral.status == ReferralStatus.PENDING.value,
            ],
            status=ReferralStatus.ACTIVE.value,
            activated_at=activated_at,
        )
        return updated == 1

    async def get_by_referrer(
        self,
        referrer_id: int,
        status: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Referral]:
        """
        Get referrals made by a referrer with referred users loaded.

        Args:
            referrer_id: Referrer user ID
            status: Optional status filter
            limit: Max number of results
            offset: Number of results to skip

        Returns:
            Referrals, newest first
        """
        stmt = (
            select(Referral)
            .options(selectinload(Referral.referred_user))
            .where(Referral.referrer_id == referrer_id)
            .order_by(Referral.created_at.desc(), Referral.id.desc())
        )
        if status:
            stmt = stmt.where(Referral.status == status)
        if offset:
            stmt = stmt.offset(offset)
        if limit:
            stmt = stmt.limit(limit)

        return await self._fetch_all(stmt)

    async def add_earnings(
        self, referral_id: int, currency: str, amount
    ) -> None:
        """
        Add a paid commission to the referral aggregates.

        Args:
            referral_id: Referral ID
            currency: Commission currency (usd, gems, points)
            amount: Commission amount
        """
        column = {
            "usd": "total_commission_paid",
            "gems": "total_gems_earned",
            "points": "total_points_earned",
        }.get(currency)
        if column:
            await self.increment(referral_id, **{column: amount})
