"""
ReferralCommission model.

Ledger of commissions owed to referrers for earnings of referred users.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.enums import CommissionStatus
from app.models.types import MoneyType, RateType


class ReferralCommission(Base):
    """
    ReferralCommission entity.

    Lifecycle: pending -> paid | failed, failed -> pending on retry.
    A paid commission is immutable: the referrer balance has been
    credited in the same transaction that set status=paid. A failed
    commission has never credited any balance.

    Attributes:
        id: Primary key
        referral_id: Attribution edge the commission belongs to
        referrer_id: User receiving the commission
        referred_user_id: User whose earning generated it
        earning_type: drop_completion, product_sale, ...
        earning_amount: Source earning amount
        earning_currency: Source earning currency
        commission_rate: Applied rate (fraction)
        commission_amount: earning_amount * rate, rounded to 2 places
        commission_currency: usd, gems or points
        status: pending, paid or failed
        attempts: Failed processing attempts
        last_error: Error message of the last failed attempt
        source_transaction_id: Id of the originating record
        source_table: Table of the originating record
    """

    __tablename__ = "referral_commissions"
    __table_args__ = (
        Index("idx_referral_commissions_referrer_status", "referrer_id", "status"),
        Index("idx_referral_commissions_status_created", "status", "created_at"),
        UniqueConstraint(
            "source_table",
            "source_transaction_id",
            name="uq_referral_commissions_source",
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    referral_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("referrals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    referrer_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    referred_user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Source earning
    earning_type: Mapped[str] = mapped_column(String(50), nullable=False)
    earning_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    earning_currency: Mapped[str] = mapped_column(String(20), nullable=False)

    # Commission
    commission_rate: Mapped[Decimal] = mapped_column(RateType, nullable=False)
    commission_amount: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False
    )
    commission_currency: Mapped[str] = mapped_column(
        String(20), nullable=False
    )

    # Processing
    status: Mapped[str] = mapped_column(
        String(20),
        default=CommissionStatus.PENDING.value,
        nullable=False,
    )
    attempts: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Source reference
    source_transaction_id: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    source_table: Mapped[str | None] = mapped_column(
        String(100), nullable=True
    )
    metadata_: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSON, default=dict, nullable=False
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    processed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    paid_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<ReferralCommission(id={self.id}, referrer_id={self.referrer_id}, "
            f"amount={self.commission_amount} {self.commission_currency}, "
            f"status={self.status})>"
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API responses."""
        return {
            "id": self.id,
            "referral_id": self.referral_id,
            "referrer_id": self.referrer_id,
            "referred_user_id": self.referred_user_id,
            "earning_type": self.earning_type,
            "earning_amount": self.earning_amount,
            "earning_currency": self.earning_currency,
            "commission_rate": self.commission_rate,
            "commission_amount": self.commission_amount,
            "commission_currency": self.commission_currency,
            "status": self.status,
            "source_transaction_id": self.source_transaction_id,
            "source_table": self.source_table,
            "metadata": self.metadata_,
            "created_at": self.created_at,
            "paid_at": self.paid_at,
        }
