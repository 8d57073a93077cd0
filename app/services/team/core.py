"""
Core advertiser team functionality.

Repositories shared by the team mixins and the role-hierarchy
permission gate.
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.advertiser_account import AdvertiserAccount, TeamMember
from app.models.enums import ASSIGNABLE_ROLES, TeamRole
from app.repositories.advertiser_repository import (
    AdvertiserAccountRepository,
    InvitationRepository,
    TeamMemberRepository,
)
from app.repositories.user_repository import UserRepository
from app.services.base_service import BaseService
from app.utils.exceptions import InvalidRole, NotFoundError


def parse_role(role: str | TeamRole) -> TeamRole:
    """
    Parse role name.

    Raises:
        InvalidRole: If role is unknown
    """
    try:
        return TeamRole(str(role).lower())
    except ValueError:
        raise InvalidRole(f"Invalid role: {role}") from None


def parse_assignable_role(role: str | TeamRole) -> TeamRole:
    """
    Parse role that can be granted by invitation or role change.

    Raises:
        InvalidRole: If role is unknown or owner
    """
    team_role = parse_role(role)
    if team_role not in ASSIGNABLE_ROLES:
        raise InvalidRole("Invalid role. Cannot assign owner role.")
    return team_role


def evaluate_permission(
    membership: TeamMember | None, required: TeamRole
) -> dict[str, Any]:
    """
    Compare an active membership against a required role.

    Fails closed: no membership or an unrecognized stored role is denied.

    Returns:
        Dict {"allowed": bool, "role"?: str, "reason"?: str}
    """
    if membership is None:
        return {
            "allowed": False,
            "reason": "User is not a member of this account",
        }

    try:
        role = TeamRole(membership.role)
    except ValueError:
        return {"allowed": False, "reason": "Unknown team role"}

    if not role.at_least(required):
        return {
            "allowed": False,
            "role": role.value,
            "reason": f"Requires {required.value} role or higher",
        }

    return {"allowed": True, "role": role.value}


class TeamServiceCore(BaseService):
    """
    Core team service.

    Provides repositories, account lookup and permission checks.
    """

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize team service core.

        Args:
            session: Database session
        """
        super().__init__(session)
        self.user_repo = UserRepository(session)
        self.account_repo = AdvertiserAccountRepository(session)
        self.member_repo = TeamMemberRepository(session)
        self.invitation_repo = InvitationRepository(session)

    async def _get_account(self, account_id: int) -> AdvertiserAccount:
        account = await self.account_repo.get_by_id(account_id)
        if not account:
            raise NotFoundError(
                "Advertiser account not found", "ACCOUNT_NOT_FOUND"
            )
        return account

    async def get_user_role_for_account(
        self, user_id: int, account_id: int
    ) -> str | None:
        """
        Get user's role in an account.

        Returns:
            Role of the active membership, or None
        """
        membership = await self.member_repo.get_active_membership(
            account_id, user_id
        )
        return membership.role if membership else None

    async def check_permission(
        self,
        user_id: int,
        account_id: int,
        required_role: str | TeamRole,
    ) -> dict[str, Any]:
        """
        Check if user may perform an action requiring a role.

        Args:
            user_id: Acting user
            account_id: Advertiser account
            required_role: Minimum role

        Returns:
            Dict {"allowed": bool, "role"?: str, "reason"?: str}
        """
        try:
            required = parse_role(required_role)
        except InvalidRole:
            return {"allowed": False, "reason": "Unknown required role"}

        membership = await self.member_repo.get_active_membership(
            account_id, user_id
        )
        return evaluate_permission(membership, required)
