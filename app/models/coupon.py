"""
Coupon models.

Coupon holds discount rules; CouponUsage records every redemption and
backs the per-user usage cap.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.types import DiscountType, MoneyType


class Coupon(Base):
    """
    Coupon entity.

    Attributes:
        code: Unique upper-cased code
        discount_type: percentage, fixed_usd, fixed_gems, fixed_gold,
            free_shipping
        discount_value: Percent (0-100) or fixed amount
        max_discount_usd: Cap for percentage discounts on usd totals
        campaign_id / drop_id: Optional scope binding
        min_purchase_usd / min_purchase_gems: Cart minimums
        max_uses: Global redemption cap
        max_uses_per_user: Per-user redemption cap
        current_uses: Redemptions so far
    """

    __tablename__ = "coupons"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    code: Mapped[str] = mapped_column(
        String(64), nullable=False, unique=True, index=True
    )
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    store_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Scope
    campaign_id: Mapped[int | None] = mapped_column(
        Integer, nullable=True, index=True
    )
    drop_id: Mapped[int | None] = mapped_column(
        Integer, nullable=True, index=True
    )

    # Discount
    discount_type: Mapped[str] = mapped_column(String(20), nullable=False)
    discount_value: Mapped[Decimal] = mapped_column(
        DiscountType, nullable=False
    )
    max_discount_usd: Mapped[Decimal | None] = mapped_column(
        MoneyType, nullable=True
    )

    # Conditions
    min_purchase_usd: Mapped[Decimal | None] = mapped_column(
        MoneyType, nullable=True
    )
    min_purchase_gems: Mapped[Decimal | None] = mapped_column(
        MoneyType, nullable=True
    )
    max_uses: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_uses_per_user: Mapped[int | None] = mapped_column(
        Integer, nullable=True
    )
    current_uses: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    starts_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Coupon(id={self.id}, code={self.code!r}, "
            f"type={self.discount_type}, value={self.discount_value})>"
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API responses."""
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "description": self.description,
            "discount_type": self.discount_type,
            "discount_value": self.discount_value,
            "max_discount_usd": self.max_discount_usd,
            "campaign_id": self.campaign_id,
            "drop_id": self.drop_id,
            "min_purchase_usd": self.min_purchase_usd,
            "min_purchase_gems": self.min_purchase_gems,
            "max_uses": self.max_uses,
            "max_uses_per_user": self.max_uses_per_user,
            "current_uses": self.current_uses,
            "starts_at": self.starts_at,
            "expires_at": self.expires_at,
            "is_active": self.is_active,
        }


class CouponUsage(Base):
    """CouponUsage - one row per redemption."""

    __tablename__ = "coupon_usage"
    __table_args__ = (
        Index("idx_coupon_usage_coupon_user", "coupon_id", "user_id"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    coupon_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("coupons.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    order_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    discount_amount_usd: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    discount_amount_gems: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    discount_amount_gold: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    original_total_usd: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    final_total_usd: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    used_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
