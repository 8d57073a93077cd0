"""
Referral earning tracker.

Entry point for collaborators (drop completion, marketplace checkout,
campaign billing) that report earnings of possibly-referred users.
Runs the activation gate, the commission calculator and payout, and
the tier evaluator, each step in its own transaction.
"""

from decimal import Decimal
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import EarningType
from app.models.referral import Referral
from app.models.referral_commission import ReferralCommission
from app.models.referral_tier import ReferralTier
from app.repositories.referral_commission_repository import (
    ReferralCommissionRepository,
)
from app.services.base_service import BaseService, transaction
from app.services.referral.activation_gate import ActivationGate
from app.services.referral.commission_calculator import CommissionCalculator
from app.services.referral.commission_ledger import CommissionLedger
from app.services.referral.tier_evaluator import TierEvaluator

Amount = Decimal | int | float | str


class ReferralTracker(BaseService):
    """Tracks earnings of referred users and pays commissions."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize referral tracker."""
        super().__init__(session)
        self.gate = ActivationGate(session)
        self.calculator = CommissionCalculator(session)
        self.ledger = CommissionLedger(session)
        self.tier_evaluator = TierEvaluator(session)
        self.commission_repo = ReferralCommissionRepository(session)

    @transaction
    async def evaluate_activation(self, referred_id: int) -> Referral | None:
        """
        Run the activation gate for a referred user.

        On activation the referrer's tier is recomputed in the same
        transaction, since active_referrals changed.

        Args:
            referred_id: Referred user ID

        Returns:
            Activated Referral, or None if nothing changed
        """
        referral = await self.gate.evaluate(referred_id)
        if referral:
            await self.tier_evaluator.update_referral_tier(referral.referrer_id)
        return referral

    @transaction
    async def update_referral_tier(self, user_id: int) -> ReferralTier | None:
        """Recompute the user's referral tier."""
        return await self.tier_evaluator.update_referral_tier(user_id)

    async def calculate_commission(
        self,
        referred_user_id: int,
        earning_type: str,
        earning_amount: Amount,
        earning_currency: str = "usd",
        source_transaction_id: str | None = None,
        source_table: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> ReferralCommission | None:
        """
        Record a commission for an earning and pay it out.

        The pending commission is committed before payout, so a crash
        during payout leaves a pending row for the retry sweep.
        Idempotent per (source_table, source_transaction_id).

        Args:
            referred_user_id: User who earned
            earning_type: drop_completion, product_sale, ...
            earning_amount: Earned amount
            earning_currency: Earned currency
            source_transaction_id: Id of the originating record
            source_table: Table of the originating record
            metadata: Extra context

        Returns:
            Commission after payout (paid or failed), or None if the
            user is not an active referral
        """
        has_source = bool(source_table and source_transaction_id)

        if has_source:
            existing = await self.commission_repo.get_by_source(
                source_table, source_transaction_id
            )
            if existing:
                self.logger.info(
                    "Commission already recorded for source",
                    extra={
                        "commission_id": existing.id,
                        "source_table": source_table,
                        "source_transaction_id": source_transaction_id,
                    },
                )
                return await self.ledger.process_commission(existing.id)

        try:
            commission = await self.calculator.calculate(
                referred_user_id=referred_user_id,
                earning_type=earning_type,
                earning_amount=earning_amount,
                earning_currency=earning_currency,
                source_transaction_id=source_transaction_id,
                source_table=source_table,
                metadata=metadata,
            )
            await self.commit()
        except IntegrityError:
            await self.rollback()
            if not has_source:
                raise
            # Concurrent report of the same source won the insert
            existing = await self.commission_repo.get_by_source(
                source_table, source_transaction_id
            )
            if existing is None:
                raise
            return existing
        except Exception:
            await self.rollback()
            raise

        if commission is None:
            return None

        return await self.ledger.process_commission(commission.id)

    async def track_earning(
        self,
        user_id: int,
        earning_type: str,
        earning_amount: Amount,
        earning_currency: str = "usd",
        source_transaction_id: str | None = None,
        source_table: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Track an earning of a (possibly referred) user.

        Runs activation first so the qualifying earning can activate
        the referral, then commission calculation and payout, then the
        referrer's tier update.

        Args:
            user_id: User who earned
            earning_type: drop_completion, product_sale, ...
            earning_amount: Earned amount
            earning_currency: Earned currency
            source_transaction_id: Id of the originating record
            source_table: Table of the originating record
            metadata: Extra context

        Returns:
            Dict {"commission_calculated": bool, "commission": commission or None}
        """
        await self.evaluate_activation(user_id)

        commission = await self.calculate_commission(
            referred_user_id=user_id,
            earning_type=earning_type,
            earning_amount=earning_amount,
            earning_currency=earning_currency,
            source_transaction_id=source_transaction_id,
            source_table=source_table,
            metadata=metadata,
        )
        if commission is None:
            return {"commission_calculated": False, "commission": None}

        referrer_id = commission.referrer_id
        try:
            await self.update_referral_tier(referrer_id)
        except Exception as e:
            # Re-runnable: next earning or activation recomputes the tier
            self.logger.warning(
                "Tier update after commission failed",
                extra={"referrer_id": referrer_id, "error": str(e)},
            )

        return {"commission_calculated": True, "commission": commission}

    async def track_drop_completion(
        self, user_id: int, gem_reward: Amount, drop_id: int | str
    ) -> dict[str, Any]:
        """Track gems earned by completing a drop."""
        return await self.track_earning(
            user_id,
            EarningType.DROP_COMPLETION.value,
            gem_reward,
            earning_currency="gems",
            source_transaction_id=f"{drop_id}:{user_id}",
            source_table="drop_completions",
            metadata={"drop_id": str(drop_id)},
        )

    async def track_product_sale(
        self, user_id: int, total_usd: Amount, order_id: int | str
    ) -> dict[str, Any]:
        """Track a marketplace purchase."""
        return await self.track_earning(
            user_id,
            EarningType.PRODUCT_SALE.value,
            total_usd,
            earning_currency="usd",
            source_transaction_id=str(order_id),
            source_table="orders",
            metadata={"order_id": str(order_id)},
        )

    async def track_campaign_spend(
        self, user_id: int, amount_usd: Amount, transaction_id: int | str
    ) -> dict[str, Any]:
        """Track advertiser campaign spend."""
        return await self.track_earning(
            user_id,
            EarningType.CAMPAIGN_SPEND.value,
            amount_usd,
            earning_currency="usd",
            source_transaction_id=str(transaction_id),
            source_table="campaign_transactions",
        )

    async def track_subscription(
        self, user_id: int, amount_usd: Amount, payment_id: int | str
    ) -> dict[str, Any]:
        """Track a subscription payment."""
        return await self.track_earning(
            user_id,
            EarningType.SUBSCRIPTION.value,
            amount_usd,
            earning_currency="usd",
            source_transaction_id=str(payment_id),
            source_table="subscription_payments",
        )

    async def track_content_monetization(
        self,
        user_id: int,
        amount: Amount,
        source_id: int | str,
        currency: str = "gems",
    ) -> dict[str, Any]:
        """Track creator earnings from content."""
        return await self.track_earning(
            user_id,
            EarningType.CONTENT_MONETIZATION.value,
            amount,
            earning_currency=currency,
            source_transaction_id=str(source_id),
            source_table="content_earnings",
        )
