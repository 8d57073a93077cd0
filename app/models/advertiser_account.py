"""
Advertiser account models.

AdvertiserAccount is a brand workspace; TeamMember links users to it
with a role from the team hierarchy.
"""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base
from app.models.enums import MembershipStatus, TeamRole


class AdvertiserAccount(Base):
    """AdvertiserAccount entity."""

    __tablename__ = "advertiser_accounts"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(
        String(255), nullable=False, unique=True, index=True
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    website_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    industry: Mapped[str | None] = mapped_column(String(100), nullable=True)
    logo_url: Mapped[str | None] = mapped_column(String(512), nullable=True)
    created_by: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<AdvertiserAccount(id={self.id}, slug={self.slug!r})>"

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API responses."""
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "website_url": self.website_url,
            "industry": self.industry,
            "logo_url": self.logo_url,
        }


class TeamMember(Base):
    """
    TeamMember entity.

    State machine: pending -> active -> revoked (revoked rows are
    reset to pending when re-invited). Every account has exactly one
    active owner.

    Attributes:
        id: Primary key
        advertiser_account_id: Account
        user_id: Member
        role: owner, admin, manager or viewer
        status: pending, active or revoked
        invited_by: User who sent the invitation
    """

    __tablename__ = "advertiser_team_members"
    __table_args__ = (
        UniqueConstraint(
            "advertiser_account_id",
            "user_id",
            name="uq_team_members_account_user",
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    advertiser_account_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("advertiser_accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role: Mapped[str] = mapped_column(
        String(20), default=TeamRole.VIEWER.value, nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), default=MembershipStatus.PENDING.value, nullable=False
    )
    invited_by: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    invited_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    accepted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_active_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<TeamMember(account={self.advertiser_account_id}, "
            f"user={self.user_id}, role={self.role}, status={self.status})>"
        )

    @property
    def team_role(self) -> TeamRole:
        """Role as a ranked enum."""
        return TeamRole(self.role)
