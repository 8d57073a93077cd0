"""
Team membership functionality.

Member removal, role changes and ownership transfer. Every account
keeps exactly one active owner.
"""

from typing import Any

from app.models.advertiser_account import TeamMember
from app.models.enums import MembershipStatus, TeamRole
from app.services.base_service import transaction
from app.services.team.core import parse_assignable_role
from app.utils.exceptions import (
    AuthorizationError,
    CannotChangeOwnerRole,
    CannotRemoveOwner,
    NotFoundError,
    OwnershipTransferFailed,
    ValidationError,
)


class TeamMembershipMixin:
    """
    Mixin for team membership functionality.

    Relies on the repositories set up by TeamServiceCore.
    """

    async def _get_member(self, member_id: int, account_id: int) -> TeamMember:
        member = await self.member_repo.get_by(
            id=member_id, advertiser_account_id=account_id
        )
        if not member or member.status == MembershipStatus.REVOKED.value:
            raise NotFoundError("Team member not found", "MEMBER_NOT_FOUND")
        return member

    @transaction
    async def remove_team_member(
        self, member_id: int, removed_by: int, account_id: int
    ) -> bool:
        """
        Revoke a team membership.

        Args:
            member_id: Membership to revoke
            removed_by: Acting user
            account_id: Advertiser account

        Returns:
            True on success

        Raises:
            NotFoundError: If membership is missing or already revoked
            CannotRemoveOwner: If target is the owner
            AuthorizationError: If actor is below admin, or an admin
                targets another admin
        """
        member = await self._get_member(member_id, account_id)
        if member.role == TeamRole.OWNER.value:
            raise CannotRemoveOwner()

        remover_role = await self.get_user_role_for_account(
            removed_by, account_id
        )
        if remover_role is None or not TeamRole(remover_role).at_least(
            TeamRole.ADMIN
        ):
            raise AuthorizationError("Requires admin role or higher")
        if (
            remover_role == TeamRole.ADMIN.value
            and member.role == TeamRole.ADMIN.value
        ):
            raise AuthorizationError("Admins cannot remove other admins")

        revoked = await self.member_repo.update_where(
            [
                TeamMember.id == member_id,
                TeamMember.role != TeamRole.OWNER.value,
                TeamMember.status != MembershipStatus.REVOKED.value,
            ],
            status=MembershipStatus.REVOKED.value,
        )
        if revoked != 1:
            raise NotFoundError("Team member not found", "MEMBER_NOT_FOUND")

        self.logger.info(
            "Team member removed",
            extra={
                "account_id": account_id,
                "member_id": member_id,
                "removed_by": removed_by,
            },
        )
        return True

    @transaction
    async def update_member_role(
        self,
        member_id: int,
        new_role: str,
        updated_by: int,
        account_id: int,
    ) -> dict[str, Any]:
        """
        Change a member's role (owner only).

        Returns:
            Dict {"member_id", "new_role"}

        Raises:
            InvalidRole: If new role is owner or unknown
            NotFoundError: If membership is missing
            CannotChangeOwnerRole: If target is the owner
            AuthorizationError: If actor is not the owner (NOT_OWNER)
        """
        role = parse_assignable_role(new_role)
        member = await self._get_member(member_id, account_id)
        if member.role == TeamRole.OWNER.value:
            raise CannotChangeOwnerRole()

        updater_role = await self.get_user_role_for_account(
            updated_by, account_id
        )
        if updater_role != TeamRole.OWNER.value:
            raise AuthorizationError(
                "Only the owner can change member roles", "NOT_OWNER"
            )

        previous_role = member.role
        updated = await self.member_repo.update_where(
            [
                TeamMember.id == member_id,
                TeamMember.role != TeamRole.OWNER.value,
            ],
            role=role.value,
        )
        if updated != 1:
            raise NotFoundError("Team member not found", "MEMBER_NOT_FOUND")

        self.logger.info(
            "Team member role changed",
            extra={
                "account_id": account_id,
                "member_id": member_id,
                "old_role": previous_role,
                "new_role": role.value,
            },
        )
        return {"member_id": member_id, "new_role": role.value}

    @transaction
    async def transfer_ownership(
        self, new_owner_id: int, current_owner_id: int, account_id: int
    ) -> dict[str, Any]:
        """
        Transfer account ownership to another active member.

        Both role changes are one UPDATE in one transaction: the current
        owner becomes admin and the new owner becomes owner, or nothing
        changes.

        Args:
            new_owner_id: User receiving ownership
            current_owner_id: User currently holding ownership
            account_id: Advertiser account

        Returns:
            Dict {"new_owner_id", "previous_owner_id"}

        Raises:
            AuthorizationError: If current_owner_id is not the owner
            NotFoundError: If new owner is not an active member
            OwnershipTransferFailed: If the swap did not apply to both rows
        """
        current_role = await self.get_user_role_for_account(
            current_owner_id, account_id
        )
        if current_role != TeamRole.OWNER.value:
            raise AuthorizationError(
                "Only the current owner can transfer ownership", "NOT_OWNER"
            )
        if new_owner_id == current_owner_id:
            raise ValidationError("New owner must be a different member")

        new_membership = await self.member_repo.get_active_membership(
            account_id, new_owner_id
        )
        if not new_membership:
            raise NotFoundError(
                "New owner must be an existing active team member",
                "MEMBER_NOT_FOUND",
            )

        changed = await self.member_repo.swap_owner(
            account_id, current_owner_id, new_owner_id
        )
        owners = await self.member_repo.count_owners(account_id)
        if changed != 2 or owners != 1:
            self.logger.error(
                "Ownership transfer did not apply, rolling back",
                extra={
                    "account_id": account_id,
                    "rows_changed": changed,
                    "owners": owners,
                },
            )
            raise OwnershipTransferFailed()

        self.logger.info(
            "Ownership transferred",
            extra={
                "account_id": account_id,
                "previous_owner_id": current_owner_id,
                "new_owner_id": new_owner_id,
            },
        )
        return {
            "new_owner_id": new_owner_id,
            "previous_owner_id": current_owner_id,
        }
