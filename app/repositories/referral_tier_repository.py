"""
ReferralTier repository.

Data access layer for ReferralTier model.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.business_constants import DEFAULT_REFERRAL_TIERS
from app.models.referral_tier import ReferralTier
from app.repositories.base import BaseRepository


class ReferralTierRepository(BaseRepository[ReferralTier]):
    """ReferralTier repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize tier repository."""
        super().__init__(ReferralTier, session)

    async def get_active_tiers(self) -> list[ReferralTier]:
        """Get active tiers ordered by level."""
        stmt = (
            select(ReferralTier)
            .where(ReferralTier.is_active == True)  # noqa: E712
            .order_by(ReferralTier.tier_level)
        )
        return await self._fetch_all(stmt)

    async def get_tier_for_count(
        self, active_referrals: int
    ) -> ReferralTier | None:
        """
        Get highest active tier whose threshold is met.

        Args:
            active_referrals: Referrer's active referral count

        Returns:
            ReferralTier or None if no tier matches
        """
        stmt = (
            select(ReferralTier)
            .where(
                ReferralTier.is_active == True,  # noqa: E712
                ReferralTier.min_referrals <= active_referrals,
            )
            .order_by(ReferralTier.min_referrals.desc())
            .limit(1)
        )
        return await self._fetch_one(stmt)

    async def seed_defaults(self) -> int:
        """
        Insert DEFAULT_REFERRAL_TIERS levels that are missing.

        Returns:
            Number of tiers created
        """
        result = await self.session.execute(select(ReferralTier.tier_level))
        existing = set(result.scalars().all())
        missing = [
            tier
            for tier in DEFAULT_REFERRAL_TIERS
            if tier["tier_level"] not in existing
        ]
        await self.bulk_create(missing)
        return len(missing)
