"""
ReferralCode model.

Shareable codes bound to an owner. Codes are stored upper-cased so
lookups are case-insensitive.
"""

from datetime import UTC, datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class ReferralCode(Base):
    """
    ReferralCode entity.

    Attributes:
        id: Primary key
        user_id: Code owner
        code: Unique upper-cased code (e.g. PROMO-AB12CD34)
        display_name: Optional label shown to referred users
        is_active: Deactivated codes reject new attributions
        max_uses: Optional cap on attributions
        uses_count: Attributions made with this code
        expires_at: Optional expiry
    """

    __tablename__ = "referral_codes"
    __table_args__ = (
        Index("idx_referral_codes_user_active", "user_id", "is_active"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    code: Mapped[str] = mapped_column(
        String(32), nullable=False, unique=True, index=True
    )
    display_name: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )
    max_uses: Mapped[int | None] = mapped_column(Integer, nullable=True)
    uses_count: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<ReferralCode(id={self.id}, code={self.code!r}, "
            f"user_id={self.user_id}, active={self.is_active})>"
        )
