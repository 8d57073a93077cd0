"""
ReferralTier model.

Static commission-rate brackets keyed by active referral count.
"""

from decimal import Decimal
from typing import Any

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.types import RateType


class ReferralTier(Base):
    """ReferralTier - commission bracket configuration."""

    __tablename__ = "referral_tiers"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    tier_level: Mapped[int] = mapped_column(
        Integer, nullable=False, unique=True
    )
    tier_name: Mapped[str] = mapped_column(String(50), nullable=False)
    min_referrals: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    commission_rate: Mapped[Decimal] = mapped_column(
        RateType, nullable=False
    )
    bonus_rate: Mapped[Decimal | None] = mapped_column(
        RateType, nullable=True
    )
    badge_icon: Mapped[str | None] = mapped_column(String(16), nullable=True)
    badge_color: Mapped[str | None] = mapped_column(String(16), nullable=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<ReferralTier(level={self.tier_level}, name={self.tier_name!r}, "
            f"rate={self.commission_rate})>"
        )

    @property
    def effective_rate(self) -> Decimal:
        """Commission rate including the tier bonus."""
        return self.commission_rate + (self.bonus_rate or Decimal("0"))

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API responses."""
        return {
            "id": self.id,
            "tier_level": self.tier_level,
            "tier_name": self.tier_name,
            "min_referrals": self.min_referrals,
            "commission_rate": self.commission_rate,
            "bonus_rate": self.bonus_rate,
            "badge_icon": self.badge_icon,
            "badge_color": self.badge_color,
        }
