"""
Referral service.

Facade over the referral package: one object per request/session that
exposes every referral operation with its transaction boundary.
"""

from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.referral import Referral
from app.models.referral_commission import ReferralCommission
from app.models.referral_tier import ReferralTier
from app.repositories.user_repository import UserRepository
from app.services.base_service import BaseService, log_operation, transaction
from app.services.referral import (
    AffiliateManager,
    CommissionLedger,
    ReferralAttributionLedger,
    ReferralCodeRegistry,
    ReferralStatisticsManager,
    ReferralTracker,
    build_affiliate_link,
    build_share_links,
)
from app.utils.exceptions import NotFoundError, PromorangError


class ReferralService(BaseService):
    """Referral service for codes, attribution, commissions and stats."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize referral service."""
        super().__init__(session)
        self.user_repo = UserRepository(session)
        self.registry = ReferralCodeRegistry(session)
        self.attribution = ReferralAttributionLedger(session)
        self.ledger = CommissionLedger(session)
        self.tracker = ReferralTracker(session)
        self.statistics = ReferralStatisticsManager(session)
        self.affiliate = AffiliateManager(session)

    # ------------------------------------------------------------------
    # Codes
    # ------------------------------------------------------------------

    @transaction
    async def generate_code(
        self,
        user_id: int,
        prefix: str | None = None,
        display_name: str | None = None,
    ) -> str:
        """
        Get or create the user's active referral code.

        Args:
            user_id: Code owner
            prefix: Code prefix (defaults to settings)
            display_name: Optional label

        Returns:
            Code text
        """
        referral_code = await self.registry.generate_code(
            user_id, prefix=prefix, display_name=display_name
        )
        return referral_code.code

    async def get_my_code(self, user_id: int) -> dict[str, str]:
        """
        Get share links for the user's code, creating the code if needed.

        Returns:
            Dict with code, share_url, qr_code_url
        """
        code = await self.generate_code(user_id)
        return build_share_links(code)

    async def validate_code(self, code: str) -> dict[str, Any]:
        """
        Validate a code before signup.

        Returns:
            Dict {"valid": True, "referrer": public profile}

        Raises:
            InvalidCode, InactiveCode, MaxUsesReached, ExpiredCode
        """
        referral_code = await self.registry.validate_code(code)
        referrer = await self.user_repo.get_by_id(referral_code.user_id)
        return {
            "valid": True,
            "referrer": {
                "username": referrer.username if referrer else None,
                "display_name": referrer.display_name if referrer else None,
                "profile_image": referrer.profile_image if referrer else None,
            },
        }

    # ------------------------------------------------------------------
    # Attribution and activation
    # ------------------------------------------------------------------

    @transaction
    async def attribute(
        self,
        referred_id: int,
        code: str,
        metadata: dict[str, Any] | None = None,
    ) -> Referral:
        """
        Attribute a new user to a referral code.

        Raises:
            InvalidCode, InactiveCode, MaxUsesReached, ExpiredCode,
            SelfReferral, AlreadyReferred, NotFoundError
        """
        return await self.attribution.attribute(referred_id, code, metadata)

    async def track_oauth_signup(
        self,
        user_id: int,
        referral_code: str | None,
        user_agent: str | None = None,
    ) -> dict[str, Any]:
        """
        Attribute an OAuth signup.

        Never raises: the auth flow must not fail because of referral
        tracking.

        Returns:
            Dict {"tracked": bool, "message"?: str, "referral"?: Referral}
        """
        if not referral_code:
            return {"tracked": False, "message": "No referral code provided"}

        try:
            referral = await self.attribute(
                user_id,
                referral_code,
                {"signup_source": "oauth_google", "user_agent": user_agent},
            )
        except PromorangError as e:
            return {"tracked": False, "message": e.message}
        except Exception:
            self.logger.exception(
                "OAuth referral tracking failed",
                extra={"user_id": user_id},
            )
            return {"tracked": False, "message": "Failed to track referral"}

        return {"tracked": True, "referral": referral}

    async def evaluate_activation(self, referred_id: int) -> Referral | None:
        """Run the activation gate for a referred user."""
        return await self.tracker.evaluate_activation(referred_id)

    # ------------------------------------------------------------------
    # Commissions
    # ------------------------------------------------------------------

    async def calculate_commission(
        self,
        referred_user_id: int,
        earning_type: str,
        earning_amount: Any,
        earning_currency: str = "usd",
        source_transaction_id: str | None = None,
        source_table: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> ReferralCommission | None:
        """Record and pay a commission (None if user is not an active referral)."""
        return await self.tracker.calculate_commission(
            referred_user_id=referred_user_id,
            earning_type=earning_type,
            earning_amount=earning_amount,
            earning_currency=earning_currency,
            source_transaction_id=source_transaction_id,
            source_table=source_table,
            metadata=metadata,
        )

    async def process_commission(
        self, commission_id: int
    ) -> ReferralCommission:
        """Pay a pending commission."""
        return await self.ledger.process_commission(commission_id)

    async def retry_commission(
        self, commission_id: int
    ) -> ReferralCommission:
        """Requeue and pay a failed commission."""
        return await self.ledger.retry_commission(commission_id)

    async def track_earning(self, user_id: int, **earning: Any) -> dict[str, Any]:
        """
        Track an earning of a (possibly referred) user.

        Args:
            user_id: User who earned
            **earning: earning_type, earning_amount and optional
                earning_currency, source_transaction_id, source_table,
                metadata

        Returns:
            Dict {"commission_calculated": bool, "commission": commission or None}
        """
        return await self.tracker.track_earning(user_id, **earning)

    async def update_referral_tier(self, user_id: int) -> ReferralTier | None:
        """Recompute the user's tier."""
        return await self.tracker.update_referral_tier(user_id)

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    @log_operation
    async def get_referral_stats(self, user_id: int) -> dict[str, Any]:
        """Dashboard statistics for a referrer."""
        return await self.statistics.get_referral_stats(user_id)

    async def get_my_referrals(
        self,
        user_id: int,
        status: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> dict[str, Any]:
        """Page of referrals made by a user."""
        return await self.statistics.get_my_referrals(
            user_id, status=status, limit=limit, offset=offset
        )

    async def get_earnings(
        self,
        user_id: int,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        earning_type: str | None = None,
        limit: int = 100,
    ) -> dict[str, Any]:
        """Paid commission history of a referrer."""
        return await self.statistics.get_earnings(
            user_id,
            start_date=start_date,
            end_date=end_date,
            earning_type=earning_type,
            limit=limit,
        )

    async def get_tiers(self) -> list[dict[str, Any]]:
        """Active tiers ordered by level."""
        return await self.statistics.get_tiers()

    async def get_leaderboard(self, limit: int = 50) -> list[dict[str, Any]]:
        """Top referrers with rank."""
        return await self.statistics.get_leaderboard(limit)

    # ------------------------------------------------------------------
    # Affiliate
    # ------------------------------------------------------------------

    async def get_affiliate_link(
        self,
        user_id: int,
        product_id: str | None = None,
        store_id: str | None = None,
        url: str | None = None,
    ) -> dict[str, Any]:
        """
        Build an affiliate link with the user's code.

        Returns:
            Dict with affiliate_link, referral_code, product_id, store_id
        """
        user = await self.user_repo.get_by_id(user_id)
        if not user:
            raise NotFoundError("User not found", "USER_NOT_FOUND")

        code = user.primary_referral_code or await self.generate_code(user_id)
        return {
            "affiliate_link": build_affiliate_link(
                code, product_id=product_id, store_id=store_id, url=url
            ),
            "referral_code": code,
            "product_id": product_id,
            "store_id": store_id,
        }

    @transaction
    async def track_click(
        self,
        referral_code: str,
        product_id: str | None = None,
        store_id: str | None = None,
        target_url: str | None = None,
        ip: str | None = None,
        user_agent: str | None = None,
    ) -> dict[str, Any]:
        """Record an affiliate link click."""
        return await self.affiliate.track_click(
            referral_code,
            product_id=product_id,
            store_id=store_id,
            target_url=target_url,
            ip=ip,
            user_agent=user_agent,
        )
