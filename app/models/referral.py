"""
Referral model.

Attribution edge between a referrer and the user they brought in.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base
from app.models.enums import ReferralStatus
from app.models.types import MoneyType


if TYPE_CHECKING:
    from app.models.user import User


class Referral(Base):
    """
    Referral entity.

    A referred user has at most one row, ever (unique referred_id).
    Rows move pending -> active exactly once and are never deleted.

    Attributes:
        id: Primary key
        referrer_id: User who owns the code
        referred_id: User who signed up with the code
        referral_code_id: Code used at signup
        referral_code: Code text at signup time
        status: pending or active
        activated_at: When the activation gate fired
        signup_metadata: Signup source, user agent, etc.
        total_commission_paid: Paid usd commissions from this referral
        total_gems_earned: Paid gems commissions from this referral
        total_points_earned: Paid points commissions from this referral
    """

    __tablename__ = "referrals"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    referrer_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    referred_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    referral_code_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("referral_codes.id", ondelete="SET NULL"),
        nullable=True,
    )
    referral_code: Mapped[str | None] = mapped_column(
        String(32), nullable=True
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default=ReferralStatus.PENDING.value,
        nullable=False,
        index=True,
    )
    activated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    signup_metadata: Mapped[dict[str, Any]] = mapped_column(
        JSON, default=dict, nullable=False
    )

    # Aggregates
    total_commission_paid: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    total_gems_earned: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    total_points_earned: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    # Relationships
    referred_user: Mapped["User"] = relationship(
        "User",
        foreign_keys=[referred_id],
        lazy="raise",
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Referral(id={self.id}, referrer_id={self.referrer_id}, "
            f"referred_id={self.referred_id}, status={self.status})>"
        )

    @property
    def is_active(self) -> bool:
        """Check if referral has been activated."""
        return self.status == ReferralStatus.ACTIVE

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API responses (without the referred user)."""
        return {
            "id": self.id,
            "referrer_id": self.referrer_id,
            "referred_id": self.referred_id,
            "referral_code": self.referral_code,
            "status": self.status,
            "activated_at": self.activated_at,
            "signup_metadata": self.signup_metadata,
            "created_at": self.created_at,
        }
