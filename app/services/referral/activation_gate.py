"""
Activation gate.

Promotes a pending referral to active once the referred user crosses
the activation thresholds, and awards the one-time activation bonus.
"""

from datetime import datetime

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.business_constants import (
    ACTIVATION_BONUS,
    ACTIVATION_REQUIREMENTS,
)
from app.models.referral import Referral
from app.models.user import User
from app.repositories.referral_repository import ReferralRepository
from app.repositories.user_repository import UserRepository
from app.utils.datetime_utils import ensure_utc, utc_now


def meets_activation_requirements(
    user: User, now: datetime | None = None
) -> bool:
    """
    Check referred user against activation thresholds.

    Args:
        user: Referred user
        now: Reference time (defaults to current UTC time)

    Returns:
        True if points, account age and completed drops all qualify
    """
    now = now or utc_now()

    if user.points_balance < ACTIVATION_REQUIREMENTS["min_points_earned"]:
        return False

    days_active = (now - ensure_utc(user.created_at)).days
    if days_active < ACTIVATION_REQUIREMENTS["min_days_active"]:
        return False

    if user.drops_completed < ACTIVATION_REQUIREMENTS["min_drops_completed"]:
        return False

    return True


class ActivationGate:
    """Manages pending -> active referral transitions."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize activation gate."""
        self.session = session
        self.referral_repo = ReferralRepository(session)
        self.user_repo = UserRepository(session)

    async def evaluate(self, referred_id: int) -> Referral | None:
        """
        Activate the referral of a user if thresholds are met.

        The status flip is a conditional UPDATE on status=pending; the
        bonus and the referrer's active counter are only touched by the
        call whose UPDATE affected the row, so concurrent evaluations
        award the bonus once.

        Args:
            referred_id: Referred user ID

        Returns:
            Activated Referral, or None if nothing changed
        """
        referral = await self.referral_repo.get_pending_by_referred(
            referred_id
        )
        if not referral:
            return None

        user = await self.user_repo.get_by_id(referred_id)
        if not user:
            return None

        now = utc_now()
        if not meets_activation_requirements(user, now):
            logger.debug(
                "Activation requirements not met",
                extra={
                    "referred_id": referred_id,
                    "points": str(user.points_balance),
                    "drops": user.drops_completed,
                },
            )
            return None

        if not await self.referral_repo.activate(referral.id, now):
            return None

        await self.user_repo.increment(
            referral.referrer_id,
            gems_balance=ACTIVATION_BONUS["gems"],
            points_balance=ACTIVATION_BONUS["points"],
            active_referrals=1,
        )

        logger.info(
            "Referral activated, bonus awarded",
            extra={
                "referral_id": referral.id,
                "referrer_id": referral.referrer_id,
                "referred_id": referred_id,
                "bonus_gems": str(ACTIVATION_BONUS["gems"]),
                "bonus_points": str(ACTIVATION_BONUS["points"]),
            },
        )

        return await self.referral_repo.get_by_id(referral.id)
