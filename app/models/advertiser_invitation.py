"""
AdvertiserInvitation model.

Single-use, expiring invitation tokens for advertiser teams.
"""

from datetime import UTC, datetime

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.utils.datetime_utils import ensure_utc


class AdvertiserInvitation(Base):
    """
    AdvertiserInvitation entity.

    Once accepted_at or revoked_at is set the token is dead.
    """

    __tablename__ = "advertiser_invitations"
    __table_args__ = (
        Index("idx_invitations_account_email", "advertiser_account_id", "email"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    advertiser_account_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("advertiser_accounts.id", ondelete="CASCADE"),
        nullable=False,
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    token: Mapped[str] = mapped_column(
        String(128), nullable=False, unique=True, index=True
    )
    invited_by: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    accepted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    accepted_by: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    revoked_at: Mapped[datetime | None] = mapped_column(
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
            f"<AdvertiserInvitation(id={self.id}, "
            f"account={self.advertiser_account_id}, email={self.email!r})>"
        )

    @property
    def is_consumed(self) -> bool:
        """Check if invitation was accepted or revoked."""
        return self.accepted_at is not None or self.revoked_at is not None

    def is_expired(self, now: datetime) -> bool:
        """Check if validity window has passed."""
        return ensure_utc(self.expires_at) < now
