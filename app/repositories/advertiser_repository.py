"""
Advertiser repositories.

Data access layer for AdvertiserAccount, TeamMember and
AdvertiserInvitation models.
"""

from datetime import datetime

from sqlalchemy import case, delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.advertiser_account import AdvertiserAccount, TeamMember
from app.models.advertiser_invitation import AdvertiserInvitation
from app.models.enums import MembershipStatus, TeamRole
from app.repositories.base import BaseRepository


class AdvertiserAccountRepository(BaseRepository[AdvertiserAccount]):
    """AdvertiserAccount repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize advertiser account repository."""
        super().__init__(AdvertiserAccount, session)

    async def get_by_slug(self, slug: str) -> AdvertiserAccount | None:
        """Get account by slug."""
        return await self.get_by(slug=slug)

    async def get_for_user(
        self, user_id: int
    ) -> list[tuple[AdvertiserAccount, TeamMember]]:
        """
        Get accounts where user has an active membership.

        Args:
            user_id: User ID

        Returns:
            List of (account, membership) pairs
        """
        stmt = (
            select(AdvertiserAccount, TeamMember)
            .join(
                TeamMember,
                TeamMember.advertiser_account_id == AdvertiserAccount.id,
            )
            .where(
                TeamMember.user_id == user_id,
                TeamMember.status == MembershipStatus.ACTIVE.value,
            )
            .order_by(AdvertiserAccount.id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return [(row[0], row[1]) for row in result.all()]


class TeamMemberRepository(BaseRepository[TeamMember]):
    """TeamMember repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize team member repository."""
        super().__init__(TeamMember, session)

    async def get_membership(
        self, account_id: int, user_id: int
    ) -> TeamMember | None:
        """Get membership of user in account regardless of status."""
        return await self.get_by(
            advertiser_account_id=account_id, user_id=user_id
        )

    async def get_active_membership(
        self, account_id: int, user_id: int
    ) -> TeamMember | None:
        """Get active membership of user in account."""
        return await self.get_by(
            advertiser_account_id=account_id,
            user_id=user_id,
            status=MembershipStatus.ACTIVE.value,
        )

    async def get_team(self, account_id: int) -> list[TeamMember]:
        """
        Get non-revoked members of an account.

        Returns:
            Members ordered owner first, then by role rank and join order
        """
        role_order = case(
            {
                TeamRole.OWNER.value: 0,
                TeamRole.ADMIN.value: 1,
                TeamRole.MANAGER.value: 2,
                TeamRole.VIEWER.value: 3,
            },
            value=TeamMember.role,
            else_=4,
        )
        stmt = (
            select(TeamMember)
            .where(
                TeamMember.advertiser_account_id == account_id,
                TeamMember.status != MembershipStatus.REVOKED.value,
            )
            .order_by(role_order, TeamMember.id)
        )
        return await self._fetch_all(stmt)

    async def count_owners(self, account_id: int) -> int:
        """Count active owners of an account."""
        return await self.count(
            advertiser_account_id=account_id,
            role=TeamRole.OWNER.value,
            status=MembershipStatus.ACTIVE.value,
        )

    async def swap_owner(
        self, account_id: int, current_owner_id: int, new_owner_id: int
    ) -> int:
        """
        Demote current owner to admin and promote new owner in one statement.

        Args:
            account_id: Account ID
            current_owner_id: User currently holding owner
            new_owner_id: Active member receiving owner

        Returns:
            Number of memberships changed (2 on success)
        """
        return await self.update_where(
            [
                TeamMember.advertiser_account_id == account_id,
                TeamMember.status == MembershipStatus.ACTIVE.value,
                (
                    (TeamMember.user_id == current_owner_id)
                    & (TeamMember.role == TeamRole.OWNER.value)
                )
                | (
                    (TeamMember.user_id == new_owner_id)
                    & (TeamMember.role != TeamRole.OWNER.value)
                ),
            ],
            role=case(
                (
                    TeamMember.user_id == current_owner_id,
                    TeamRole.ADMIN.value,
                ),
                else_=TeamRole.OWNER.value,
            ),
        )


class InvitationRepository(BaseRepository[AdvertiserInvitation]):
    """AdvertiserInvitation repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize invitation repository."""
        super().__init__(AdvertiserInvitation, session)

    async def get_by_token(
        self, token: str
    ) -> AdvertiserInvitation | None:
        """Get invitation by token regardless of state."""
        return await self.get_by(token=token)

    async def get_open_for_email(
        self, account_id: int, email: str
    ) -> list[AdvertiserInvitation]:
        """Get unconsumed invitations (expired or not) for an email."""
        stmt = select(AdvertiserInvitation).where(
            AdvertiserInvitation.advertiser_account_id == account_id,
            AdvertiserInvitation.email == email,
            AdvertiserInvitation.accepted_at.is_(None),
            AdvertiserInvitation.revoked_at.is_(None),
        )
        return await self._fetch_all(stmt)

    async def get_pending(
        self, account_id: int, now: datetime
    ) -> list[AdvertiserInvitation]:
        """Get live invitations of an account, newest first."""
        stmt = (
            select(AdvertiserInvitation)
            .where(
                AdvertiserInvitation.advertiser_account_id == account_id,
                AdvertiserInvitation.accepted_at.is_(None),
                AdvertiserInvitation.revoked_at.is_(None),
                AdvertiserInvitation.expires_at > now,
            )
            .order_by(
                AdvertiserInvitation.created_at.desc(),
                AdvertiserInvitation.id.desc(),
            )
        )
        return await self._fetch_all(stmt)

    async def delete_ids(self, ids: list[int]) -> None:
        """Delete invitations by id."""
        if not ids:
            return
        await self.session.execute(
            delete(AdvertiserInvitation).where(AdvertiserInvitation.id.in_(ids))
        )

    async def consume(
        self, invitation_id: int, user_id: int, now: datetime
    ) -> bool:
        """
        Mark invitation accepted if it is still live.

        Returns:
            True only for the call that consumed the token
        """
        updated = await self.update_where(
            [
                AdvertiserInvitation.id == invitation_id,
                AdvertiserInvitation.accepted_at.is_(None),
                AdvertiserInvitation.revoked_at.is_(None),
                AdvertiserInvitation.expires_at > now,
            ],
            accepted_at=now,
            accepted_by=user_id,
        )
        return updated == 1

    async def revoke(
        self, invitation_id: int, account_id: int, now: datetime
    ) -> bool:
        """
        Revoke an unconsumed invitation of an account.

        Returns:
            True if the invitation was revoked
        """
        updated = await self.update_where(
            [
                AdvertiserInvitation.id == invitation_id,
                AdvertiserInvitation.advertiser_account_id == account_id,
                AdvertiserInvitation.accepted_at.is_(None),
                AdvertiserInvitation.revoked_at.is_(None),
            ],
            revoked_at=now,
        )
        return updated == 1
