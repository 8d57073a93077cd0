"""
Tier evaluator.

Recomputes a referrer's tier from their active referral count.
"""

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.referral_tier import ReferralTier
from app.repositories.referral_tier_repository import ReferralTierRepository
from app.repositories.user_repository import UserRepository
from app.utils.exceptions import NotFoundError


class TierEvaluator:
    """Keeps user.referral_tier_id in sync with referral performance."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize tier evaluator."""
        self.session = session
        self.tier_repo = ReferralTierRepository(session)
        self.user_repo = UserRepository(session)

    async def update_referral_tier(self, user_id: int) -> ReferralTier | None:
        """
        Recompute and store the user's tier.

        Idempotent; safe to re-run at any time.

        Args:
            user_id: Referrer user ID

        Returns:
            Current tier, or None if no tier threshold is met

        Raises:
            NotFoundError: If user does not exist
        """
        user = await self.user_repo.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found", "USER_NOT_FOUND")

        tier = await self.tier_repo.get_tier_for_count(user.active_referrals)
        tier_id = tier.id if tier else None

        if user.referral_tier_id != tier_id:
            previous_tier_id = user.referral_tier_id
            await self.user_repo.set_tier(user_id, tier_id)
            logger.info(
                "Referral tier changed",
                extra={
                    "user_id": user_id,
                    "previous_tier_id": previous_tier_id,
                    "tier_id": tier_id,
                    "tier_name": tier.tier_name if tier else None,
                    "active_referrals": user.active_referrals,
                },
            )

        return tier
