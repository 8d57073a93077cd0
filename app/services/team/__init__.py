"""
Advertiser team service module.

Provides advertiser account, invitation and membership management
gated by the team role hierarchy (viewer < manager < admin < owner).

Structure:
- core.py: Repositories, role parsing and permission checks
- accounts.py: Account creation and team roster
- invitations.py: Invitation lifecycle
- membership.py: Member removal, role changes, ownership transfer

Usage:
    from app.services.team import AdvertiserTeamService

    team_service = AdvertiserTeamService(session)
    account = await team_service.create_advertiser_account(user_id, "Acme")
    check = await team_service.check_permission(user_id, account.id, "admin")
"""

from sqlalchemy.ext.asyncio import AsyncSession

from app.services.team.accounts import TeamAccountsMixin
from app.services.team.core import (
    TeamServiceCore,
    evaluate_permission,
    parse_assignable_role,
    parse_role,
)
from app.services.team.invitations import TeamInvitationsMixin
from app.services.team.membership import TeamMembershipMixin


class AdvertiserTeamService(
    TeamAccountsMixin,
    TeamInvitationsMixin,
    TeamMembershipMixin,
    TeamServiceCore,
):
    """
    Combined advertiser team service.

    Inherits from all team mixins to provide complete functionality.
    """

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize team service.

        Args:
            session: Database session
        """
        TeamServiceCore.__init__(self, session)


__all__ = [
    "AdvertiserTeamService",
    "evaluate_permission",
    "parse_assignable_role",
    "parse_role",
]
