"""
Advertiser account functionality.

Account creation with its owner membership, account listing and team
roster.
"""

from typing import Any

from sqlalchemy.exc import IntegrityError

from app.models.advertiser_account import AdvertiserAccount, TeamMember
from app.models.enums import MembershipStatus, TeamRole
from app.models.user import User
from app.services.base_service import transaction
from app.utils.datetime_utils import utc_now
from app.utils.exceptions import NotFoundError, StateConflictError, ValidationError
from app.utils.validation import slugify


def serialize_member(
    member: TeamMember,
    user: User | None,
    inviter: User | None = None,
) -> dict[str, Any]:
    """Team roster entry."""
    return {
        "id": member.id,
        "role": member.role,
        "status": member.status,
        "invited_at": member.invited_at,
        "accepted_at": member.accepted_at,
        "last_active_at": member.last_active_at,
        "user": {
            "id": user.id,
            "email": user.email,
            "username": user.username,
            "display_name": user.display_name,
            "profile_image": user.profile_image,
        }
        if user
        else None,
        "invited_by": {
            "id": inviter.id,
            "username": inviter.username,
            "display_name": inviter.display_name,
        }
        if inviter
        else None,
    }


class TeamAccountsMixin:
    """
    Mixin for advertiser account functionality.

    Relies on the repositories set up by TeamServiceCore.
    """

    @transaction
    async def create_advertiser_account(
        self,
        user_id: int,
        name: str,
        slug: str | None = None,
        description: str | None = None,
        website_url: str | None = None,
        industry: str | None = None,
        logo_url: str | None = None,
    ) -> AdvertiserAccount:
        """
        Create an advertiser account owned by the user.

        The account and the owner membership are written together.

        Args:
            user_id: Creating user (becomes owner)
            name: Account name
            slug: URL slug (derived from name when absent)
            description: Optional description
            website_url: Optional website
            industry: Optional industry
            logo_url: Optional logo

        Returns:
            Created account

        Raises:
            ValidationError: If name or slug is empty
            NotFoundError: If user does not exist
            StateConflictError: If slug is taken (ACCOUNT_EXISTS)
        """
        if not name or not name.strip():
            raise ValidationError("Account name is required")

        final_slug = slugify(slug or name)
        if not final_slug:
            raise ValidationError("Account slug must contain letters or digits")

        if not await self.user_repo.exists(id=user_id):
            raise NotFoundError("User not found", "USER_NOT_FOUND")

        if await self.account_repo.get_by_slug(final_slug):
            raise StateConflictError(
                "An account with this name already exists", "ACCOUNT_EXISTS"
            )

        try:
            account = await self.account_repo.create(
                name=name.strip(),
                slug=final_slug,
                description=description,
                website_url=website_url,
                industry=industry,
                logo_url=logo_url,
                created_by=user_id,
            )
            await self.member_repo.create(
                advertiser_account_id=account.id,
                user_id=user_id,
                role=TeamRole.OWNER.value,
                status=MembershipStatus.ACTIVE.value,
                accepted_at=utc_now(),
            )
        except IntegrityError:
            raise StateConflictError(
                "An account with this name already exists", "ACCOUNT_EXISTS"
            ) from None

        self.logger.info(
            "Advertiser account created",
            extra={"account_id": account.id, "slug": final_slug, "owner_id": user_id},
        )
        return account

    async def get_user_advertiser_accounts(
        self, user_id: int
    ) -> list[dict[str, Any]]:
        """
        Get accounts the user actively belongs to.

        Returns:
            Account dicts with the user's role
        """
        rows = await self.account_repo.get_for_user(user_id)
        return [
            {**account.to_dict(), "role": membership.role}
            for account, membership in rows
        ]

    async def get_team_members(self, account_id: int) -> list[dict[str, Any]]:
        """
        Get the team roster of an account.

        Returns:
            Non-revoked members, owner first
        """
        members = await self.member_repo.get_team(account_id)

        user_ids = [m.user_id for m in members]
        user_ids += [m.invited_by for m in members if m.invited_by]
        users = await self.user_repo.get_by_ids(user_ids)

        return [
            serialize_member(
                member,
                users.get(member.user_id),
                users.get(member.invited_by) if member.invited_by else None,
            )
            for member in members
        ]
