"""
Team invitation functionality.

Single-use expiring invitation tokens: creation, acceptance,
revocation and lookup.
"""

from datetime import timedelta
from typing import Any

from sqlalchemy.exc import IntegrityError

from app.config.settings import settings
from app.models.enums import MembershipStatus
from app.services.base_service import transaction
from app.services.team.core import parse_assignable_role
from app.utils.datetime_utils import utc_now
from app.utils.exceptions import (
    AlreadyMember,
    DuplicateInvite,
    InvalidOrExpiredInvitation,
    NotFoundError,
)
from app.utils.security import generate_invitation_token, mask_token
from app.utils.validation import normalize_email


class TeamInvitationsMixin:
    """
    Mixin for team invitation functionality.

    Relies on the repositories set up by TeamServiceCore.
    """

    @transaction
    async def create_invitation(
        self,
        account_id: int,
        email: str,
        role: str,
        invited_by: int,
        message: str | None = None,
    ) -> dict[str, Any]:
        """
        Invite an email address to an advertiser team.

        A revoked membership of an existing user is reset to pending
        instead of creating a second membership row. Expired open
        invitations for the same email are deleted and superseded.

        Args:
            account_id: Advertiser account
            email: Invitee email
            role: admin, manager or viewer
            invited_by: Inviting user
            message: Optional personal message

        Returns:
            Dict {"type": "created"|"reactivated", "invitation", "member_id"?}

        Raises:
            InvalidRole: If role is owner or unknown
            AlreadyMember: If invitee already has an active membership
            DuplicateInvite: If a live invitation already exists
        """
        team_role = parse_assignable_role(role)
        email = normalize_email(email)
        await self._get_account(account_id)
        now = utc_now()

        existing_member = None
        invitee = await self.user_repo.get_by_email(email)
        if invitee:
            existing_member = await self.member_repo.get_membership(
                account_id, invitee.id
            )
            if (
                existing_member
                and existing_member.status == MembershipStatus.ACTIVE.value
            ):
                raise AlreadyMember("User is already a team member")

        open_invites = await self.invitation_repo.get_open_for_email(
            account_id, email
        )
        if any(not inv.is_expired(now) for inv in open_invites):
            raise DuplicateInvite()
        await self.invitation_repo.delete_ids([inv.id for inv in open_invites])

        result_type = "created"
        if (
            existing_member
            and existing_member.status == MembershipStatus.REVOKED.value
        ):
            await self.member_repo.update(
                existing_member.id,
                status=MembershipStatus.PENDING.value,
                role=team_role.value,
                invited_by=invited_by,
                invited_at=now,
            )
            result_type = "reactivated"

        invitation = await self.invitation_repo.create(
            advertiser_account_id=account_id,
            email=email,
            role=team_role.value,
            message=message,
            token=generate_invitation_token(),
            invited_by=invited_by,
            expires_at=now + timedelta(days=settings.invitation_ttl_days),
        )

        self.logger.info(
            "Team invitation created",
            extra={
                "account_id": account_id,
                "invitation_id": invitation.id,
                "role": team_role.value,
                "type": result_type,
                "token": mask_token(invitation.token),
            },
        )

        result: dict[str, Any] = {"type": result_type, "invitation": invitation}
        if result_type == "reactivated":
            result["member_id"] = existing_member.id
        return result

    @transaction
    async def accept_invitation(self, token: str, user_id: int) -> dict[str, Any]:
        """
        Accept an invitation and join the team.

        Token consumption and the membership write commit together; the
        token is consumed by a conditional update so it works once.

        Args:
            token: Invitation token
            user_id: Accepting user (email need not match)

        Returns:
            Dict with account {id, name}, role and member_id

        Raises:
            InvalidOrExpiredInvitation: If token is unknown, consumed or expired
            AlreadyMember: If user already has an active membership
        """
        now = utc_now()
        invitation = await self.invitation_repo.get_by_token(token)
        if not invitation or invitation.is_consumed:
            raise InvalidOrExpiredInvitation()
        if invitation.is_expired(now):
            raise InvalidOrExpiredInvitation("Invitation has expired")

        if not await self.user_repo.exists(id=user_id):
            raise NotFoundError("User not found", "USER_NOT_FOUND")

        account_id = invitation.advertiser_account_id
        role = invitation.role
        membership = await self.member_repo.get_membership(account_id, user_id)
        if membership and membership.status == MembershipStatus.ACTIVE.value:
            raise AlreadyMember("You are already a member of this account")

        if not await self.invitation_repo.consume(invitation.id, user_id, now):
            raise InvalidOrExpiredInvitation()

        member_values = {
            "role": role,
            "status": MembershipStatus.ACTIVE.value,
            "invited_by": invitation.invited_by,
            "invited_at": invitation.created_at,
            "accepted_at": now,
        }
        if membership:
            member = await self.member_repo.update(membership.id, **member_values)
        else:
            try:
                member = await self.member_repo.create(
                    advertiser_account_id=account_id,
                    user_id=user_id,
                    **member_values,
                )
            except IntegrityError:
                raise AlreadyMember(
                    "You are already a member of this account"
                ) from None

        account = await self._get_account(account_id)

        self.logger.info(
            "Team invitation accepted",
            extra={
                "account_id": account_id,
                "invitation_id": invitation.id,
                "user_id": user_id,
                "role": role,
            },
        )
        return {
            "account": {"id": account.id, "name": account.name},
            "role": role,
            "member_id": member.id,
        }

    async def get_pending_invitations(
        self, account_id: int
    ) -> list[dict[str, Any]]:
        """
        Get live invitations of an account (tokens are not exposed).

        Returns:
            Invitations newest first
        """
        invitations = await self.invitation_repo.get_pending(
            account_id, utc_now()
        )
        inviters = await self.user_repo.get_by_ids(
            [inv.invited_by for inv in invitations if inv.invited_by]
        )

        result = []
        for inv in invitations:
            inviter = inviters.get(inv.invited_by) if inv.invited_by else None
            result.append(
                {
                    "id": inv.id,
                    "email": inv.email,
                    "role": inv.role,
                    "message": inv.message,
                    "expires_at": inv.expires_at,
                    "created_at": inv.created_at,
                    "invited_by": {
                        "id": inviter.id,
                        "username": inviter.username,
                        "display_name": inviter.display_name,
                    }
                    if inviter
                    else None,
                }
            )
        return result

    @transaction
    async def revoke_invitation(
        self, invitation_id: int, account_id: int
    ) -> bool:
        """
        Revoke an unconsumed invitation.

        Raises:
            NotFoundError: If no open invitation with this id belongs to
                the account
        """
        revoked = await self.invitation_repo.revoke(
            invitation_id, account_id, utc_now()
        )
        if not revoked:
            raise NotFoundError("Invitation not found", "INVITATION_NOT_FOUND")

        self.logger.info(
            "Team invitation revoked",
            extra={"account_id": account_id, "invitation_id": invitation_id},
        )
        return True

    async def get_invitation_by_token(
        self, token: str
    ) -> dict[str, Any] | None:
        """
        Get invitation details for the accept page.

        Returns:
            None if unknown or consumed, {"expired": True} if expired,
            details otherwise
        """
        invitation = await self.invitation_repo.get_by_token(token)
        if not invitation or invitation.is_consumed:
            return None
        if invitation.is_expired(utc_now()):
            return {"expired": True}

        account = await self.account_repo.get_by_id(
            invitation.advertiser_account_id
        )
        inviter = None
        if invitation.invited_by:
            inviter = await self.user_repo.get_by_id(invitation.invited_by)

        return {
            "id": invitation.id,
            "email": invitation.email,
            "role": invitation.role,
            "message": invitation.message,
            "expires_at": invitation.expires_at,
            "account": {
                "id": account.id,
                "name": account.name,
                "logo_url": account.logo_url,
            }
            if account
            else None,
            "invited_by": inviter.display_name if inviter else None,
        }
