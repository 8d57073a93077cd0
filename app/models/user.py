"""
User model.

Represents a platform user: balances, activity counters and
denormalized referral data.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.types import MoneyType


class User(Base):
    """User model - registered platform users."""

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            "usd_balance >= 0", name="check_user_usd_balance_non_negative"
        ),
        CheckConstraint(
            "gems_balance >= 0", name="check_user_gems_balance_non_negative"
        ),
        CheckConstraint(
            "points_balance >= 0",
            name="check_user_points_balance_non_negative",
        ),
        CheckConstraint(
            "gold_balance >= 0", name="check_user_gold_balance_non_negative"
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    # Profile
    username: Mapped[str | None] = mapped_column(
        String(255), nullable=True, unique=True, index=True
    )
    display_name: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    email: Mapped[str | None] = mapped_column(
        String(255), nullable=True, unique=True, index=True
    )
    profile_image: Mapped[str | None] = mapped_column(
        String(512), nullable=True
    )

    # Balances
    usd_balance: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    gems_balance: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    points_balance: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    gold_balance: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )

    # Activity
    drops_completed: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Completed drops (tasks), used by the activation gate",
    )

    # Referral (denormalized)
    referred_by_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    primary_referral_code: Mapped[str | None] = mapped_column(
        String(32), nullable=True
    )
    referral_tier_id: Mapped[int | None] = mapped_column(
        ForeignKey("referral_tiers.id", ondelete="SET NULL"),
        nullable=True,
        comment="Recomputed by the tier evaluator, never written directly",
    )
    total_referrals: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    active_referrals: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    referral_earnings_usd: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    referral_earnings_gems: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    referral_earnings_points: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )

    # Timestamps
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
        return f"<User(id={self.id}, username={self.username!r})>"
