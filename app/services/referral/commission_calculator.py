"""
Commission calculator.

Resolves the referrer's commission rate for an earning event and
records a pending commission.
"""

from decimal import Decimal
from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.business_constants import (
    COMMISSION_RATES,
    DEFAULT_COMMISSION_RATE,
    FALLBACK_COMMISSION_CURRENCY,
    SUPPORTED_COMMISSION_CURRENCIES,
)
from app.models.enums import CommissionStatus
from app.models.referral_commission import ReferralCommission
from app.models.referral_tier import ReferralTier
from app.repositories.referral_commission_repository import (
    ReferralCommissionRepository,
)
from app.repositories.referral_repository import ReferralRepository
from app.repositories.referral_tier_repository import ReferralTierRepository
from app.repositories.user_repository import UserRepository
from app.utils.exceptions import ValidationError
from app.utils.validation import round_money, to_decimal


def resolve_commission_rate(
    earning_type: str, tier: ReferralTier | None = None
) -> Decimal:
    """
    Resolve commission rate.

    Tier rate (plus bonus) wins over the per-type default.

    Examples:
        >>> resolve_commission_rate("subscription")
        Decimal('0.10')
        >>> resolve_commission_rate("unknown")
        Decimal('0.05')
    """
    if tier is not None:
        return tier.effective_rate
    return COMMISSION_RATES.get(earning_type, DEFAULT_COMMISSION_RATE)


def normalize_commission_currency(earning_currency: str) -> str:
    """
    Map earning currency to payout currency.

    Unsupported currencies are paid in gems with no exchange rate.

    Examples:
        >>> normalize_commission_currency("usd")
        'usd'
        >>> normalize_commission_currency("gold")
        'gems'
    """
    currency = (earning_currency or "").lower()
    if currency in SUPPORTED_COMMISSION_CURRENCIES:
        return currency
    return FALLBACK_COMMISSION_CURRENCY


def compute_commission_amount(
    earning_amount: Decimal, rate: Decimal
) -> Decimal:
    """
    Commission amount rounded to 2 places.

    Examples:
        >>> compute_commission_amount(Decimal("100"), Decimal("0.06"))
        Decimal('6.00')
    """
    return round_money(earning_amount * rate)


class CommissionCalculator:
    """Computes and records referral commissions."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize commission calculator."""
        self.session = session
        self.referral_repo = ReferralRepository(session)
        self.commission_repo = ReferralCommissionRepository(session)
        self.tier_repo = ReferralTierRepository(session)
        self.user_repo = UserRepository(session)

    async def get_referrer_tier(self, referrer_id: int) -> ReferralTier | None:
        """Get referrer's current active tier, if any."""
        referrer = await self.user_repo.get_by_id(referrer_id)
        if not referrer or referrer.referral_tier_id is None:
            return None
        tier = await self.tier_repo.get_by_id(referrer.referral_tier_id)
        if tier is None or not tier.is_active:
            return None
        return tier

    async def calculate(
        self,
        referred_user_id: int,
        earning_type: str,
        earning_amount: Decimal | int | float | str,
        earning_currency: str = "usd",
        source_transaction_id: str | None = None,
        source_table: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> ReferralCommission | None:
        """
        Record a pending commission for an earning of a referred user.

        Earnings of users without an active referral produce no
        commission and no writes.

        Args:
            referred_user_id: User who earned
            earning_type: drop_completion, product_sale, ...
            earning_amount: Earned amount (positive)
            earning_currency: Earned currency
            source_transaction_id: Id of the originating record
            source_table: Table of the originating record
            metadata: Extra context stored with the commission

        Returns:
            Pending ReferralCommission, or None if user is not an
            active referral

        Raises:
            ValidationError: If earning amount is not positive
        """
        amount = to_decimal(earning_amount, "earning_amount")
        if amount <= 0:
            raise ValidationError("earning_amount must be positive")

        referral = await self.referral_repo.get_active_by_referred(
            referred_user_id
        )
        if not referral:
            return None

        tier = await self.get_referrer_tier(referral.referrer_id)
        rate = resolve_commission_rate(earning_type, tier)
        commission_amount = compute_commission_amount(amount, rate)
        commission_currency = normalize_commission_currency(earning_currency)

        commission = await self.commission_repo.create(
            referral_id=referral.id,
            referrer_id=referral.referrer_id,
            referred_user_id=referred_user_id,
            earning_type=earning_type,
            earning_amount=amount,
            earning_currency=earning_currency,
            commission_rate=rate,
            commission_amount=commission_amount,
            commission_currency=commission_currency,
            status=CommissionStatus.PENDING.value,
            source_transaction_id=source_transaction_id,
            source_table=source_table,
            metadata_=metadata or {},
        )

        logger.info(
            "Commission recorded",
            extra={
                "commission_id": commission.id,
                "referrer_id": referral.referrer_id,
                "referred_user_id": referred_user_id,
                "earning_type": earning_type,
                "rate": str(rate),
                "amount": str(commission_amount),
                "currency": commission_currency,
                "tier": tier.tier_name if tier else None,
            },
        )
        return commission
