"""
Unit tests for commission rate resolution and amount calculation.

Pure functions only; no database.
"""

from decimal import Decimal

import pytest

from app.models.referral_tier import ReferralTier
from app.services.referral import (
    compute_commission_amount,
    normalize_commission_currency,
    resolve_commission_rate,
)
from app.utils.validation import round_money


def make_tier(rate: str, bonus: str | None = None) -> ReferralTier:
    """Build a transient tier."""
    return ReferralTier(
        tier_level=2,
        tier_name="Silver",
        min_referrals=10,
        commission_rate=Decimal(rate),
        bonus_rate=Decimal(bonus) if bonus is not None else None,
        is_active=True,
    )


class TestResolveCommissionRate:
    """Tests for tier vs. per-type default rate."""

    @pytest.mark.parametrize(
        "earning_type,expected",
        [
            ("drop_completion", Decimal("0.05")),
            ("campaign_spend", Decimal("0.05")),
            ("product_sale", Decimal("0.05")),
            ("subscription", Decimal("0.10")),
            ("content_monetization", Decimal("0.05")),
        ],
    )
    def test_default_rate_per_earning_type(self, earning_type, expected):
        """Without a tier the per-type default applies."""
        assert resolve_commission_rate(earning_type) == expected

    def test_unknown_earning_type_uses_default(self):
        """Unknown earning types fall back to 5%."""
        assert resolve_commission_rate("tips") == Decimal("0.05")

    def test_tier_rate_wins_over_type_default(self):
        """A tier overrides even the 10% subscription default."""
        tier = make_tier("0.06")
        assert resolve_commission_rate("subscription", tier) == Decimal("0.06")

    def test_tier_bonus_is_added(self):
        """Effective rate is rate + bonus."""
        tier = make_tier("0.075", bonus="0.01")
        assert resolve_commission_rate("product_sale", tier) == Decimal("0.085")


class TestCommissionCurrency:
    """Tests for payout currency normalization."""

    @pytest.mark.parametrize("currency", ["usd", "gems", "points"])
    def test_supported_currency_kept(self, currency):
        """Supported currencies are paid as earned."""
        assert normalize_commission_currency(currency) == currency

    def test_case_insensitive(self):
        """Currency comparison ignores case."""
        assert normalize_commission_currency("USD") == "usd"

    @pytest.mark.parametrize("currency", ["xyz", "gold", "", None])
    def test_unsupported_currency_falls_back_to_gems(self, currency):
        """Anything else is paid in gems, with no conversion."""
        assert normalize_commission_currency(currency) == "gems"


class TestCommissionAmount:
    """Tests for commission amount rounding."""

    def test_fixed_tier_rate(self):
        """100 at 6% is exactly 6.00."""
        amount = compute_commission_amount(Decimal("100"), Decimal("0.06"))
        assert amount == Decimal("6.00")
        assert str(amount) == "6.00"

    def test_product_sale_default(self):
        """200 at the 5% default is 10.00."""
        assert compute_commission_amount(
            Decimal("200"), Decimal("0.05")
        ) == Decimal("10.00")

    def test_rounds_half_up(self):
        """Half cents round up."""
        # 0.1 * 0.05 = 0.005
        assert compute_commission_amount(
            Decimal("0.1"), Decimal("0.05")
        ) == Decimal("0.01")

    def test_rounds_down_below_half(self):
        """Below half a cent rounds down."""
        assert compute_commission_amount(
            Decimal("10.01"), Decimal("0.05")
        ) == Decimal("0.50")

    @pytest.mark.parametrize(
        "value,expected",
        [
            (Decimal("6.005"), Decimal("6.01")),
            (Decimal("6.004"), Decimal("6.00")),
            (Decimal("0"), Decimal("0.00")),
            (Decimal("1234.5"), Decimal("1234.50")),
        ],
    )
    def test_round_money(self, value, expected):
        """round_money keeps two places, half up."""
        assert round_money(value) == expected
