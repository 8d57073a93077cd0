"""
Unit tests for coupon rules and discount math.

Coupons are transient model instances; nothing touches the database.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from app.models.coupon import Coupon
from app.services.coupon_service import (
    apply_discount,
    build_cart_total,
    calculate_discount,
    check_coupon_window,
    check_min_purchase,
)
from app.utils.datetime_utils import utc_now
from app.utils.exceptions import CouponError, CouponExpired, ValidationError


def make_coupon(**overrides) -> Coupon:
    """Build a transient active percentage coupon."""
    data = {
        "code": "SAVE10",
        "discount_type": "percentage",
        "discount_value": Decimal("10"),
        "max_discount_usd": None,
        "min_purchase_usd": None,
        "min_purchase_gems": None,
        "max_uses": None,
        "max_uses_per_user": 1,
        "current_uses": 0,
        "campaign_id": None,
        "drop_id": None,
        "starts_at": None,
        "expires_at": None,
        "is_active": True,
    }
    data.update(overrides)
    return Coupon(**data)


class TestBuildCartTotal:
    """Tests for cart normalization."""

    def test_missing_subtotals_are_zero(self):
        """Omitted currencies default to zero."""
        assert build_cart_total(Decimal("12.50")) == {
            "usd": Decimal("12.50"),
            "gems": Decimal("0"),
            "gold": Decimal("0"),
        }

    def test_negative_subtotal_rejected(self):
        """Negative subtotals are invalid input."""
        with pytest.raises(ValidationError):
            build_cart_total(Decimal("-1"))


class TestCalculateDiscount:
    """Tests for discount computation per type."""

    def test_percentage_all_currencies(self):
        """Percentage applies to usd (cents) and gems/gold (floored)."""
        cart = build_cart_total(Decimal("49.99"), Decimal("155"), Decimal("19"))
        discount = calculate_discount(make_coupon(), cart)

        assert discount["usd"] == Decimal("5.00")
        assert discount["gems"] == Decimal("15")
        assert discount["gold"] == Decimal("1")
        assert discount["shipping"] is False

    def test_percentage_capped_by_max_discount(self):
        """max_discount_usd caps the usd discount."""
        coupon = make_coupon(
            discount_value=Decimal("50"), max_discount_usd=Decimal("20")
        )
        discount = calculate_discount(coupon, build_cart_total(Decimal("100")))

        assert discount["usd"] == Decimal("20")

    def test_fixed_usd_clamped_to_cart(self):
        """Fixed discount never exceeds the subtotal."""
        coupon = make_coupon(
            discount_type="fixed_usd", discount_value=Decimal("25")
        )
        discount = calculate_discount(coupon, build_cart_total(Decimal("10")))

        assert discount["usd"] == Decimal("10")
        assert discount["gems"] == Decimal("0")

    def test_fixed_gems(self):
        """Fixed gems discount only touches gems."""
        coupon = make_coupon(
            discount_type="fixed_gems", discount_value=Decimal("30")
        )
        cart = build_cart_total(Decimal("10"), Decimal("100"))
        discount = calculate_discount(coupon, cart)

        assert discount["gems"] == Decimal("30")
        assert discount["usd"] == Decimal("0")

    def test_free_shipping(self):
        """Free shipping sets the flag only."""
        coupon = make_coupon(
            discount_type="free_shipping", discount_value=Decimal("0")
        )
        discount = calculate_discount(coupon, build_cart_total(Decimal("10")))

        assert discount["shipping"] is True
        assert discount["usd"] == Decimal("0")

    def test_final_total_floored_at_zero(self):
        """Totals never go negative."""
        cart = build_cart_total(Decimal("5"))
        discount = {
            "usd": Decimal("8"),
            "gems": Decimal("0"),
            "gold": Decimal("0"),
            "shipping": False,
        }

        assert apply_discount(cart, discount)["usd"] == Decimal("0")


class TestCouponWindow:
    """Tests for the ordered validity checks."""

    def test_valid_coupon_passes(self):
        """An active coupon inside its window passes."""
        now = utc_now()
        coupon = make_coupon(
            starts_at=now - timedelta(days=1), expires_at=now + timedelta(days=1)
        )
        check_coupon_window(coupon, now)

    def test_scope_checked_before_activity(self):
        """Scope mismatch is reported even for inactive coupons."""
        coupon = make_coupon(campaign_id=7, is_active=False)

        with pytest.raises(CouponError) as exc_info:
            check_coupon_window(coupon, utc_now(), campaign_id=8)
        assert exc_info.value.code == "COUPON_SCOPE_MISMATCH"

    def test_scoped_coupon_requires_scope(self):
        """A drop-bound coupon fails without a drop."""
        with pytest.raises(CouponError) as exc_info:
            check_coupon_window(make_coupon(drop_id=3), utc_now())
        assert exc_info.value.code == "COUPON_SCOPE_MISMATCH"

    def test_matching_scope_passes(self):
        """Matching campaign passes."""
        check_coupon_window(make_coupon(campaign_id=7), utc_now(), campaign_id=7)

    def test_inactive(self):
        """Inactive coupons are rejected."""
        with pytest.raises(CouponError) as exc_info:
            check_coupon_window(make_coupon(is_active=False), utc_now())
        assert exc_info.value.code == "COUPON_INACTIVE"

    def test_not_started(self):
        """Future start date is rejected."""
        now = utc_now()
        coupon = make_coupon(starts_at=now + timedelta(hours=1))

        with pytest.raises(CouponError) as exc_info:
            check_coupon_window(coupon, now)
        assert exc_info.value.code == "COUPON_NOT_STARTED"

    def test_expired_one_second_ago(self):
        """expires_at = now - 1s is expired."""
        now = utc_now()
        coupon = make_coupon(expires_at=now - timedelta(seconds=1))

        with pytest.raises(CouponExpired) as exc_info:
            check_coupon_window(coupon, now)
        assert exc_info.value.code == "COUPON_EXPIRED"

    def test_expires_in_one_second(self):
        """expires_at = now + 1s is still valid."""
        now = utc_now()
        check_coupon_window(make_coupon(expires_at=now + timedelta(seconds=1)), now)

    def test_usage_limit(self):
        """Global cap reached is rejected."""
        coupon = make_coupon(max_uses=5, current_uses=5)

        with pytest.raises(CouponError) as exc_info:
            check_coupon_window(coupon, utc_now())
        assert exc_info.value.code == "COUPON_USAGE_LIMIT"

    def test_expired_reported_before_usage_limit(self):
        """Expiry is checked before the usage cap."""
        now = utc_now()
        coupon = make_coupon(
            expires_at=now - timedelta(seconds=1), max_uses=1, current_uses=1
        )

        with pytest.raises(CouponExpired):
            check_coupon_window(coupon, now)


class TestMinPurchase:
    """Tests for cart minimums."""

    def test_usd_minimum(self):
        """Cart below usd minimum is rejected."""
        coupon = make_coupon(min_purchase_usd=Decimal("50"))

        with pytest.raises(CouponError) as exc_info:
            check_min_purchase(coupon, build_cart_total(Decimal("49.99")))
        assert exc_info.value.code == "COUPON_MIN_PURCHASE"
        assert "$50.00" in exc_info.value.message

    def test_gems_minimum_met(self):
        """Meeting the gems minimum passes."""
        coupon = make_coupon(min_purchase_gems=Decimal("100"))
        check_min_purchase(coupon, build_cart_total(0, Decimal("100")))
