"""
Coupon service.

Validates coupons against scope, activity window, usage caps and cart
minimums, computes discounts, and records redemptions.
"""

import math
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.coupon import Coupon, CouponUsage
from app.models.enums import DiscountKind
from app.repositories.coupon_repository import (
    CouponRepository,
    CouponUsageRepository,
)
from app.services.base_service import BaseService, log_operation, transaction
from app.utils.datetime_utils import ensure_utc, utc_now
from app.utils.exceptions import (
    AuthorizationError,
    CouponError,
    CouponExpired,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from app.utils.validation import normalize_code, round_money, to_decimal

ZERO = Decimal("0")

# Cart/discount currencies
CART_CURRENCIES = ("usd", "gems", "gold")


def build_cart_total(
    subtotal_usd: Any = 0, subtotal_gems: Any = 0, subtotal_gold: Any = 0
) -> dict[str, Decimal]:
    """
    Normalize order subtotals into a cart total.

    Raises:
        ValidationError: If a subtotal is negative or not a number
    """
    cart = {
        "usd": to_decimal(subtotal_usd or 0, "subtotal_usd"),
        "gems": to_decimal(subtotal_gems or 0, "subtotal_gems"),
        "gold": to_decimal(subtotal_gold or 0, "subtotal_gold"),
    }
    for currency, value in cart.items():
        if value < 0:
            raise ValidationError(f"Negative {currency} subtotal")
    return cart


def check_coupon_window(
    coupon: Coupon,
    now: datetime,
    campaign_id: int | None = None,
    drop_id: int | None = None,
) -> None:
    """
    Check scope, activity, start/expiry and global usage cap, in order.

    Raises:
        CouponError: First failing rule
    """
    if coupon.campaign_id is not None and coupon.campaign_id != campaign_id:
        raise CouponError(
            "This coupon is not valid for this campaign",
            "COUPON_SCOPE_MISMATCH",
        )
    if coupon.drop_id is not None and coupon.drop_id != drop_id:
        raise CouponError(
            "This coupon is not valid for this drop", "COUPON_SCOPE_MISMATCH"
        )

    if not coupon.is_active:
        raise CouponError("This coupon is no longer active", "COUPON_INACTIVE")

    if coupon.starts_at and ensure_utc(coupon.starts_at) > now:
        raise CouponError("This coupon is not yet valid", "COUPON_NOT_STARTED")

    if coupon.expires_at and ensure_utc(coupon.expires_at) < now:
        raise CouponExpired()

    if coupon.max_uses is not None and coupon.current_uses >= coupon.max_uses:
        raise CouponError(
            "This coupon has reached its usage limit", "COUPON_USAGE_LIMIT"
        )


def check_min_purchase(coupon: Coupon, cart_total: dict[str, Decimal]) -> None:
    """
    Check cart minimums.

    Raises:
        CouponError: If usd or gems minimum is not met
    """
    if coupon.min_purchase_usd and cart_total["usd"] < coupon.min_purchase_usd:
        raise CouponError(
            f"Minimum purchase of ${coupon.min_purchase_usd:.2f} required",
            "COUPON_MIN_PURCHASE",
        )
    if coupon.min_purchase_gems and cart_total["gems"] < coupon.min_purchase_gems:
        raise CouponError(
            f"Minimum purchase of {coupon.min_purchase_gems:.0f} gems required",
            "COUPON_MIN_PURCHASE",
        )


def calculate_discount(
    coupon: Coupon, cart_total: dict[str, Decimal]
) -> dict[str, Any]:
    """
    Compute discount per currency.

    Percentage discounts apply to every currency in the cart (usd capped
    by max_discount_usd, gems and gold floored to whole units). Fixed
    discounts are clamped to the cart subtotal of their currency.

    Args:
        coupon: Validated coupon
        cart_total: Cart subtotals per currency

    Returns:
        Dict {"usd", "gems", "gold", "shipping"}
    """
    discount: dict[str, Any] = {
        "usd": ZERO,
        "gems": ZERO,
        "gold": ZERO,
        "shipping": False,
    }
    value = to_decimal(coupon.discount_value, "discount_value")

    kind = coupon.discount_type
    if kind == DiscountKind.PERCENTAGE:
        if cart_total["usd"] > 0:
            usd = round_money(cart_total["usd"] * value / 100)
            if coupon.max_discount_usd is not None:
                usd = min(usd, to_decimal(coupon.max_discount_usd))
            discount["usd"] = usd
        for currency in ("gems", "gold"):
            if cart_total[currency] > 0:
                discount[currency] = Decimal(
                    math.floor(cart_total[currency] * value / 100)
                )
    elif kind == DiscountKind.FIXED_USD:
        discount["usd"] = min(value, cart_total["usd"])
    elif kind == DiscountKind.FIXED_GEMS:
        discount["gems"] = min(value, cart_total["gems"])
    elif kind == DiscountKind.FIXED_GOLD:
        discount["gold"] = min(value, cart_total["gold"])
    elif kind == DiscountKind.FREE_SHIPPING:
        discount["shipping"] = True

    return discount


def apply_discount(
    cart_total: dict[str, Decimal], discount: dict[str, Any]
) -> dict[str, Decimal]:
    """Subtract discount from cart, floored at zero."""
    return {
        currency: max(ZERO, cart_total[currency] - discount[currency])
        for currency in CART_CURRENCIES
    }


class CouponService(BaseService):
    """Coupon service for validation, discounts and redemptions."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize coupon service."""
        super().__init__(session)
        self.coupon_repo = CouponRepository(session)
        self.usage_repo = CouponUsageRepository(session)

    async def _get_coupon(self, coupon_id: int) -> Coupon:
        coupon = await self.coupon_repo.get_by_id(coupon_id)
        if not coupon:
            raise NotFoundError("Coupon not found", "COUPON_NOT_FOUND")
        return coupon

    async def validate_coupon(
        self,
        code: str,
        user_id: int,
        cart_total: dict[str, Decimal] | None = None,
        campaign_id: int | None = None,
        drop_id: int | None = None,
    ) -> Coupon:
        """
        Validate a coupon for a user and cart.

        Checks run in order: not found, scope, inactive, not started,
        expired, global cap, per-user cap, minimum purchase.

        Args:
            code: Coupon code (case-insensitive)
            user_id: Redeeming user
            cart_total: Cart subtotals (zero cart when omitted)
            campaign_id: Campaign the coupon is used in
            drop_id: Drop the coupon is used in

        Returns:
            Valid coupon

        Raises:
            NotFoundError: COUPON_NOT_FOUND
            CouponError: First failing rule
        """
        cart_total = cart_total or build_cart_total()

        coupon = await self.coupon_repo.get_by_code(normalize_code(code))
        if not coupon:
            raise NotFoundError("Invalid coupon code", "COUPON_NOT_FOUND")

        check_coupon_window(coupon, utc_now(), campaign_id, drop_id)

        if coupon.max_uses_per_user:
            used = await self.usage_repo.count_for_user(coupon.id, user_id)
            if used >= coupon.max_uses_per_user:
                raise CouponError(
                    "You have already used this coupon the maximum number "
                    "of times",
                    "COUPON_USER_LIMIT",
                )

        check_min_purchase(coupon, cart_total)

        self.logger.debug(
            "Coupon validated",
            extra={"coupon_id": coupon.id, "user_id": user_id},
        )
        return coupon

    async def apply_coupon(
        self,
        code: str,
        user_id: int,
        order: dict[str, Any],
    ) -> dict[str, Any]:
        """
        Price an order with a coupon (no redemption is recorded).

        Args:
            code: Coupon code
            user_id: Redeeming user
            order: subtotal_usd, subtotal_gems, subtotal_gold and
                optional campaign_id, drop_id

        Returns:
            Dict {"coupon", "discount", "original_total", "final_total"}
        """
        cart_total = build_cart_total(
            order.get("subtotal_usd"),
            order.get("subtotal_gems"),
            order.get("subtotal_gold"),
        )
        coupon = await self.validate_coupon(
            code,
            user_id,
            cart_total,
            campaign_id=order.get("campaign_id"),
            drop_id=order.get("drop_id"),
        )
        discount = calculate_discount(coupon, cart_total)
        return {
            "coupon": coupon,
            "discount": discount,
            "original_total": cart_total,
            "final_total": apply_discount(cart_total, discount),
        }

    async def _record_usage(
        self,
        coupon: Coupon,
        user_id: int,
        order_id: str | None,
        discount: dict[str, Any],
        original_total: dict[str, Decimal],
        final_total: dict[str, Decimal],
    ) -> CouponUsage:
        coupon_id = coupon.id
        max_per_user = coupon.max_uses_per_user

        if not await self.coupon_repo.increment_uses(coupon_id):
            raise CouponError(
                "This coupon has reached its usage limit", "COUPON_USAGE_LIMIT"
            )
        if max_per_user:
            used = await self.usage_repo.count_for_user(coupon_id, user_id)
            if used >= max_per_user:
                raise CouponError(
                    "You have already used this coupon the maximum number "
                    "of times",
                    "COUPON_USER_LIMIT",
                )

        usage = await self.usage_repo.create(
            coupon_id=coupon_id,
            user_id=user_id,
            order_id=str(order_id) if order_id is not None else None,
            discount_amount_usd=discount.get("usd", ZERO),
            discount_amount_gems=discount.get("gems", ZERO),
            discount_amount_gold=discount.get("gold", ZERO),
            original_total_usd=original_total.get("usd", ZERO),
            final_total_usd=final_total.get("usd", ZERO),
        )

        self.logger.info(
            "Coupon redeemed",
            extra={
                "coupon_id": coupon_id,
                "user_id": user_id,
                "order_id": order_id,
                "discount_usd": str(usage.discount_amount_usd),
            },
        )
        return usage

    @transaction
    async def track_coupon_usage(
        self,
        coupon_id: int,
        user_id: int,
        order_id: str | None,
        discount: dict[str, Any],
        original_total: dict[str, Decimal],
        final_total: dict[str, Decimal],
    ) -> CouponUsage:
        """
        Record a redemption and count it against the coupon.

        The usage row and the current_uses increment commit together;
        the global cap is re-checked by the increment.

        Raises:
            NotFoundError: If coupon is missing
            CouponError: If a usage cap was reached meanwhile
        """
        coupon = await self._get_coupon(coupon_id)
        return await self._record_usage(
            coupon, user_id, order_id, discount, original_total, final_total
        )

    @transaction
    async def redeem_coupon(
        self,
        code: str,
        user_id: int,
        order: dict[str, Any],
        order_id: str,
    ) -> dict[str, Any]:
        """
        Price an order with a coupon and record the redemption.

        Returns:
            apply_coupon result plus "usage_id"
        """
        priced = await self.apply_coupon(code, user_id, order)
        usage = await self._record_usage(
            priced["coupon"],
            user_id,
            order_id,
            priced["discount"],
            priced["original_total"],
            priced["final_total"],
        )
        return {**priced, "usage_id": usage.id}

    @transaction
    async def create_coupon(
        self,
        user_id: int,
        code: str,
        discount_type: str,
        discount_value: Any,
        name: str | None = None,
        description: str | None = None,
        store_id: int | None = None,
        campaign_id: int | None = None,
        drop_id: int | None = None,
        max_discount_usd: Any = None,
        min_purchase_usd: Any = None,
        min_purchase_gems: Any = None,
        max_uses: int | None = None,
        max_uses_per_user: int | None = 1,
        starts_at: datetime | None = None,
        expires_at: datetime | None = None,
    ) -> Coupon:
        """
        Create a coupon.

        Raises:
            ValidationError: If discount type/value or window is invalid
            StateConflictError: If code exists (COUPON_EXISTS)
        """
        normalized = normalize_code(code)
        try:
            kind = DiscountKind(discount_type)
        except ValueError:
            raise ValidationError(
                f"Invalid discount type: {discount_type}"
            ) from None

        value = to_decimal(discount_value or 0, "discount_value")
        if kind != DiscountKind.FREE_SHIPPING and value <= 0:
            raise ValidationError("Discount value must be positive")
        if kind == DiscountKind.PERCENTAGE and value > 100:
            raise ValidationError("Percentage discount cannot exceed 100")

        starts_at = starts_at or utc_now()
        if expires_at and ensure_utc(expires_at) <= ensure_utc(starts_at):
            raise ValidationError("Coupon must expire after it starts")

        if await self.coupon_repo.get_by_code(normalized):
            raise StateConflictError("Coupon code already exists", "COUPON_EXISTS")

        try:
            coupon = await self.coupon_repo.create(
                code=normalized,
                name=name,
                description=description,
                created_by=user_id,
                store_id=store_id,
                campaign_id=campaign_id,
                drop_id=drop_id,
                discount_type=kind.value,
                discount_value=value,
                max_discount_usd=(
                    to_decimal(max_discount_usd, "max_discount_usd")
                    if max_discount_usd is not None
                    else None
                ),
                min_purchase_usd=(
                    to_decimal(min_purchase_usd, "min_purchase_usd")
                    if min_purchase_usd is not None
                    else None
                ),
                min_purchase_gems=(
                    to_decimal(min_purchase_gems, "min_purchase_gems")
                    if min_purchase_gems is not None
                    else None
                ),
                max_uses=max_uses,
                max_uses_per_user=max_uses_per_user,
                starts_at=starts_at,
                expires_at=expires_at,
                is_active=True,
            )
        except IntegrityError:
            raise StateConflictError(
                "Coupon code already exists", "COUPON_EXISTS"
            ) from None

        self.logger.info(
            "Coupon created",
            extra={"coupon_id": coupon.id, "code": normalized, "created_by": user_id},
        )
        return coupon

    @transaction
    async def deactivate_coupon(self, coupon_id: int, user_id: int) -> bool:
        """
        Soft-delete a coupon (creator only).

        Raises:
            NotFoundError: If coupon is missing
            AuthorizationError: If user did not create the coupon
        """
        coupon = await self._get_coupon(coupon_id)
        if coupon.created_by != user_id:
            raise AuthorizationError("Not authorized to delete this coupon")

        await self.coupon_repo.update(coupon_id, is_active=False)
        self.logger.info(
            "Coupon deactivated",
            extra={"coupon_id": coupon_id, "user_id": user_id},
        )
        return True

    @log_operation
    async def get_coupon_analytics(
        self, coupon_id: int, user_id: int | None = None
    ) -> dict[str, Any]:
        """
        Get redemption analytics of a coupon.

        Args:
            coupon_id: Coupon ID
            user_id: When given, must be the coupon creator

        Returns:
            Dict {"coupon", "analytics"}
        """
        coupon = await self._get_coupon(coupon_id)
        if user_id is not None and coupon.created_by != user_id:
            raise AuthorizationError("Not authorized to view this coupon")

        totals = await self.usage_repo.get_totals(coupon_id)
        uses = totals["uses"]
        avg_usd = round_money(totals["usd"] / uses) if uses else ZERO

        return {
            "coupon": coupon.to_dict(),
            "analytics": {
                "total_uses": uses,
                "total_discount_usd": totals["usd"],
                "total_discount_gems": totals["gems"],
                "total_discount_gold": totals["gold"],
                "avg_discount_usd": avg_usd,
                "usage_by_day": await self.usage_repo.get_usage_by_day(coupon_id),
            },
        }
