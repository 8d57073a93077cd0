"""
Referral statistics module.

Read-only queries behind the referral dashboard: summary, referral
list, earnings history, tiers and the leaderboard.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.config.business_constants import (
    DEFAULT_LEADERBOARD_LIMIT,
    MAX_PAGE_SIZE,
    RECENT_COMMISSIONS_LIMIT,
)
from app.models.referral import Referral
from app.models.referral_commission import ReferralCommission
from app.models.user import User
from app.repositories.affiliate_click_repository import (
    AffiliateClickRepository,
)
from app.repositories.referral_commission_repository import (
    ReferralCommissionRepository,
)
from app.repositories.referral_repository import ReferralRepository
from app.repositories.referral_tier_repository import ReferralTierRepository
from app.repositories.user_repository import UserRepository
from app.utils.exceptions import NotFoundError


def format_conversion_rate(total: int, active: int) -> str:
    """
    Active/total as a percentage string with one decimal.

    Examples:
        >>> format_conversion_rate(3, 1)
        '33.3'
        >>> format_conversion_rate(0, 0)
        '0.0'
    """
    rate = (active / total) * 100 if total > 0 else 0.0
    return f"{rate:.1f}"


def serialize_user(user: User | None) -> dict[str, Any] | None:
    """Public profile fields of a user."""
    if user is None:
        return None
    return {
        "id": user.id,
        "username": user.username,
        "display_name": user.display_name,
        "profile_image": user.profile_image,
    }


def serialize_referral(referral: Referral) -> dict[str, Any]:
    """Referral row for the dashboard (referred user must be loaded)."""
    return {
        "id": referral.id,
        "referred_id": referral.referred_id,
        "referral_code": referral.referral_code,
        "status": referral.status,
        "activated_at": referral.activated_at,
        "total_commission_paid": referral.total_commission_paid,
        "total_gems_earned": referral.total_gems_earned,
        "total_points_earned": referral.total_points_earned,
        "created_at": referral.created_at,
        "referred_user": serialize_user(referral.referred_user),
    }


def serialize_commission_summary(
    commission: ReferralCommission,
) -> dict[str, Any]:
    """Short commission entry for the recent list."""
    return {
        "id": commission.id,
        "earning_type": commission.earning_type,
        "commission_amount": commission.commission_amount,
        "commission_currency": commission.commission_currency,
        "paid_at": commission.paid_at,
        "created_at": commission.created_at,
    }


class ReferralStatisticsManager:
    """Manages referral statistics and analytics."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize statistics manager."""
        self.session = session
        self.user_repo = UserRepository(session)
        self.referral_repo = ReferralRepository(session)
        self.commission_repo = ReferralCommissionRepository(session)
        self.tier_repo = ReferralTierRepository(session)
        self.click_repo = AffiliateClickRepository(session)

    async def _get_user(self, user_id: int) -> User:
        user = await self.user_repo.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found", "USER_NOT_FOUND")
        return user

    async def get_referral_stats(self, user_id: int) -> dict[str, Any]:
        """
        Get dashboard statistics for a referrer.

        Counters come from the user record, which attribution,
        activation and payout maintain transactionally.

        Args:
            user_id: Referrer user ID

        Returns:
            Dict with summary, referrals and recent_commissions

        Raises:
            NotFoundError: If user does not exist
        """
        user = await self._get_user(user_id)

        tier = None
        if user.referral_tier_id is not None:
            tier = await self.tier_repo.get_by_id(user.referral_tier_id)

        referrals = await self.referral_repo.get_by_referrer(user_id)
        recent = await self.commission_repo.get_recent_paid(
            user_id, limit=RECENT_COMMISSIONS_LIMIT
        )
        clicks = await self.click_repo.count_for_affiliate(user_id)

        total = user.total_referrals
        active = user.active_referrals

        return {
            "summary": {
                "total_referrals": total,
                "active_referrals": active,
                "pending_referrals": total - active,
                "conversion_rate": format_conversion_rate(total, active),
                "total_earnings": {
                    "usd": user.referral_earnings_usd,
                    "gems": user.referral_earnings_gems,
                    "points": user.referral_earnings_points,
                },
                "referral_code": user.primary_referral_code,
                "tier": tier.to_dict() if tier else None,
                "affiliate_clicks": clicks,
            },
            "referrals": [serialize_referral(r) for r in referrals],
            "recent_commissions": [
                serialize_commission_summary(c) for c in recent
            ],
        }

    async def get_my_referrals(
        self,
        user_id: int,
        status: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> dict[str, Any]:
        """
        Get a page of referrals made by a user.

        Args:
            user_id: Referrer user ID
            status: Optional pending/active filter
            limit: Page size (capped)
            offset: Rows to skip

        Returns:
            Dict with referrals, total, limit, offset
        """
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        offset = max(0, offset)

        referrals = await self.referral_repo.get_by_referrer(
            user_id, status=status, limit=limit, offset=offset
        )
        filters: dict[str, Any] = {"referrer_id": user_id}
        if status:
            filters["status"] = status
        total = await self.referral_repo.count(**filters)

        return {
            "referrals": [serialize_referral(r) for r in referrals],
            "total": total,
            "limit": limit,
            "offset": offset,
        }

    async def get_earnings(
        self,
        user_id: int,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        earning_type: str | None = None,
        limit: int = 100,
    ) -> dict[str, Any]:
        """
        Get paid commission history of a referrer.

        Args:
            user_id: Referrer user ID
            start_date: Inclusive lower bound
            end_date: Inclusive upper bound
            earning_type: Earning type filter
            limit: Max rows (capped)

        Returns:
            Dict with earnings list and total per currency
        """
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        earnings = await self.commission_repo.find_paid(
            user_id,
            start_date=start_date,
            end_date=end_date,
            earning_type=earning_type,
            limit=limit,
        )

        totals = {
            "usd": Decimal("0"),
            "gems": Decimal("0"),
            "points": Decimal("0"),
        }
        for commission in earnings:
            if commission.commission_currency in totals:
                totals[commission.commission_currency] += (
                    commission.commission_amount
                )

        return {
            "earnings": [c.to_dict() for c in earnings],
            "total": totals,
        }

    async def get_tiers(self) -> list[dict[str, Any]]:
        """Get active tiers ordered by level."""
        tiers = await self.tier_repo.get_active_tiers()
        return [tier.to_dict() for tier in tiers]

    async def get_leaderboard(
        self, limit: int = DEFAULT_LEADERBOARD_LIMIT
    ) -> list[dict[str, Any]]:
        """
        Get top referrers.

        Args:
            limit: Max entries (capped)

        Returns:
            Entries with 1-based rank, most referrals first
        """
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        users = await self.user_repo.get_leaderboard(limit)
        return [
            {
                "rank": position,
                **serialize_user(user),
                "total_referrals": user.total_referrals,
                "active_referrals": user.active_referrals,
                "referral_tier_id": user.referral_tier_id,
            }
            for position, user in enumerate(users, start=1)
        ]
