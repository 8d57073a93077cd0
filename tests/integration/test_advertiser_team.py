"""
Integration tests for advertiser accounts, invitations and membership.

Run against an in-memory SQLite database.
"""

from datetime import timedelta

import pytest

from app.models.enums import MembershipStatus, TeamRole
from app.repositories.advertiser_repository import (
    InvitationRepository,
    TeamMemberRepository,
)
from app.utils.datetime_utils import utc_now
from app.utils.exceptions import (
    AlreadyMember,
    AuthorizationError,
    CannotChangeOwnerRole,
    CannotRemoveOwner,
    DuplicateInvite,
    InvalidOrExpiredInvitation,
    InvalidRole,
    NotFoundError,
    OwnershipTransferFailed,
    StateConflictError,
)

pytestmark = pytest.mark.integration


@pytest.fixture
async def team(make_user, make_account, team_service):
    """
    Account with an owner, an admin and a viewer.

    Returns:
        Dict of ids: account, owner, admin, viewer, admin_member, viewer_member
    """
    owner = await make_user(username="owner", email="owner@acme.test")
    admin = await make_user(username="admin", email="admin@acme.test")
    viewer = await make_user(username="viewer", email="viewer@acme.test")
    account = await make_account(owner.id)

    ids = {"account": account.id, "owner": owner.id}
    for user, role in ((admin, "admin"), (viewer, "viewer")):
        invite = await team_service.create_invitation(
            account.id, user.email, role, invited_by=owner.id
        )
        joined = await team_service.accept_invitation(
            invite["invitation"].token, user.id
        )
        ids[role] = user.id
        ids[f"{role}_member"] = joined["member_id"]
    return ids


class TestAdvertiserAccounts:
    """Tests for account creation and listing."""

    @pytest.mark.asyncio
    async def test_creator_becomes_owner(self, session, make_user, make_account, team_service):
        """The creating user gets an active owner membership."""
        user = await make_user()

        account = await make_account(user.id, "Acme Coffee Co.")

        assert account.slug == "acme-coffee-co"
        assert await team_service.get_user_role_for_account(user.id, account.id) == "owner"
        assert await TeamMemberRepository(session).count_owners(account.id) == 1

        accounts = await team_service.get_user_advertiser_accounts(user.id)
        assert [(a["name"], a["role"]) for a in accounts] == [
            ("Acme Coffee Co.", "owner")
        ]

    @pytest.mark.asyncio
    async def test_duplicate_slug_rejected(self, make_user, make_account):
        """Account slugs are unique."""
        user = await make_user()
        await make_account(user.id, "Acme")

        with pytest.raises(StateConflictError) as exc_info:
            await make_account(user.id, "ACME")
        assert exc_info.value.code == "ACCOUNT_EXISTS"

    @pytest.mark.asyncio
    async def test_roster_owner_first(self, team, team_service):
        """Roster lists owner, then admin, then viewer."""
        members = await team_service.get_team_members(team["account"])

        assert [m["role"] for m in members] == ["owner", "admin", "viewer"]
        assert members[1]["invited_by"]["id"] == team["owner"]


class TestPermissions:
    """Tests for permission checks against stored memberships."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "member,required,allowed",
        [
            ("owner", "admin", True),
            ("admin", "admin", True),
            ("viewer", "admin", False),
            ("viewer", "viewer", True),
        ],
    )
    async def test_check_permission(self, team, team_service, member, required, allowed):
        """Role hierarchy is applied to active memberships."""
        result = await team_service.check_permission(
            team[member], team["account"], required
        )

        assert result["allowed"] is allowed

    @pytest.mark.asyncio
    async def test_outsider_denied(self, team, make_user, team_service):
        """Users without a membership are denied."""
        outsider = await make_user()

        result = await team_service.check_permission(
            outsider.id, team["account"], "viewer"
        )

        assert result == {
            "allowed": False,
            "reason": "User is not a member of this account",
        }


class TestInvitations:
    """Tests for the invitation lifecycle."""

    @pytest.mark.asyncio
    async def test_invitation_token_single_use(self, make_user, make_account, team_service):
        """A token can be accepted once."""
        owner = await make_user()
        invitee = await make_user(email="carol@example.com")
        other = await make_user()
        account = await make_account(owner.id)

        created = await team_service.create_invitation(
            account.id, "Carol@Example.com", "manager", invited_by=owner.id
        )
        token = created["invitation"].token
        assert created["type"] == "created"
        assert len(token) == 64

        joined = await team_service.accept_invitation(token, invitee.id)
        assert joined["role"] == "manager"
        assert joined["account"]["id"] == account.id

        with pytest.raises(InvalidOrExpiredInvitation):
            await team_service.accept_invitation(token, other.id)

    @pytest.mark.asyncio
    async def test_owner_role_cannot_be_invited(self, team, team_service):
        """Invitations cannot grant owner."""
        with pytest.raises(InvalidRole):
            await team_service.create_invitation(
                team["account"], "new@acme.test", "owner", invited_by=team["owner"]
            )

    @pytest.mark.asyncio
    async def test_duplicate_live_invitation(self, team, team_service):
        """A second live invitation to the same email is rejected."""
        await team_service.create_invitation(
            team["account"], "new@acme.test", "viewer", invited_by=team["owner"]
        )

        with pytest.raises(DuplicateInvite):
            await team_service.create_invitation(
                team["account"], "NEW@acme.test", "manager", invited_by=team["owner"]
            )

    @pytest.mark.asyncio
    async def test_expired_invitation_superseded(self, session, team, team_service):
        """An expired invitation is replaced by a new one."""
        account_id = team["account"]
        first = await team_service.create_invitation(
            account_id, "new@acme.test", "viewer", invited_by=team["owner"]
        )
        first_id = first["invitation"].id
        first_token = first["invitation"].token
        invitations = InvitationRepository(session)
        await invitations.update(first_id, expires_at=utc_now() - timedelta(seconds=1))
        await session.commit()

        assert await team_service.get_invitation_by_token(first_token) == {
            "expired": True
        }
        second = await team_service.create_invitation(
            account_id, "new@acme.test", "manager", invited_by=team["owner"]
        )

        assert second["type"] == "created"
        assert await invitations.get_by_token(first_token) is None
        assert (
            await invitations.count(
                advertiser_account_id=account_id, email="new@acme.test"
            )
            == 1
        )
        pending = await team_service.get_pending_invitations(account_id)
        assert [(p["email"], p["role"]) for p in pending] == [
            ("new@acme.test", "manager")
        ]
        assert "token" not in pending[0]

    @pytest.mark.asyncio
    async def test_expired_token_rejected(self, session, team, make_user, team_service):
        """Accepting past expires_at fails."""
        newcomer = await make_user()
        created = await team_service.create_invitation(
            team["account"], "late@acme.test", "viewer", invited_by=team["owner"]
        )
        token = created["invitation"].token
        await InvitationRepository(session).update(
            created["invitation"].id, expires_at=utc_now() - timedelta(seconds=1)
        )
        await session.commit()

        with pytest.raises(InvalidOrExpiredInvitation, match="expired"):
            await team_service.accept_invitation(token, newcomer.id)

    @pytest.mark.asyncio
    async def test_active_member_cannot_be_invited(self, team, team_service):
        """Inviting an active member fails."""
        with pytest.raises(AlreadyMember):
            await team_service.create_invitation(
                team["account"], "viewer@acme.test", "admin", invited_by=team["owner"]
            )

    @pytest.mark.asyncio
    async def test_revoked_member_reactivated(self, session, team, team_service):
        """Re-inviting a removed member reuses their membership row."""
        account_id, viewer_member = team["account"], team["viewer_member"]
        await team_service.remove_team_member(viewer_member, team["owner"], account_id)

        created = await team_service.create_invitation(
            account_id, "viewer@acme.test", "manager", invited_by=team["owner"]
        )

        assert created["type"] == "reactivated"
        assert created["member_id"] == viewer_member
        member = await TeamMemberRepository(session).get_by_id(viewer_member)
        assert member.status == MembershipStatus.PENDING.value

        joined = await team_service.accept_invitation(
            created["invitation"].token, team["viewer"]
        )
        assert joined["member_id"] == viewer_member
        assert await team_service.get_user_role_for_account(
            team["viewer"], account_id
        ) == "manager"

    @pytest.mark.asyncio
    async def test_revoke_invitation(self, team, team_service):
        """Revoked invitations can no longer be accepted or revoked."""
        created = await team_service.create_invitation(
            team["account"], "new@acme.test", "viewer", invited_by=team["owner"]
        )
        invitation_id = created["invitation"].id
        token = created["invitation"].token

        assert await team_service.revoke_invitation(invitation_id, team["account"])
        assert await team_service.get_invitation_by_token(token) is None

        with pytest.raises(NotFoundError):
            await team_service.revoke_invitation(invitation_id, team["account"])

    @pytest.mark.asyncio
    async def test_invitation_details(self, team, team_service):
        """Accept page details include account and inviter."""
        created = await team_service.create_invitation(
            team["account"], "new@acme.test", "viewer",
            invited_by=team["owner"], message="Welcome aboard",
        )

        details = await team_service.get_invitation_by_token(
            created["invitation"].token
        )

        assert details["account"]["name"] == "Acme Coffee"
        assert details["message"] == "Welcome aboard"
        assert details["invited_by"] == "User 1"


class TestMembership:
    """Tests for member removal, role changes and ownership transfer."""

    @pytest.mark.asyncio
    async def test_owner_cannot_be_removed(self, session, team, team_service):
        """Removing the owner fails."""
        owner_member = await TeamMemberRepository(session).get_membership(
            team["account"], team["owner"]
        )

        with pytest.raises(CannotRemoveOwner):
            await team_service.remove_team_member(
                owner_member.id, team["admin"], team["account"]
            )

    @pytest.mark.asyncio
    async def test_viewer_cannot_remove(self, team, team_service):
        """Removal requires admin."""
        with pytest.raises(AuthorizationError):
            await team_service.remove_team_member(
                team["admin_member"], team["viewer"], team["account"]
            )

    @pytest.mark.asyncio
    async def test_admin_cannot_remove_admin(self, team, make_user, team_service):
        """Admins cannot remove each other."""
        second = await make_user(email="second@acme.test")
        invite = await team_service.create_invitation(
            team["account"], "second@acme.test", "admin", invited_by=team["owner"]
        )
        joined = await team_service.accept_invitation(
            invite["invitation"].token, second.id
        )

        with pytest.raises(AuthorizationError, match="Admins cannot remove"):
            await team_service.remove_team_member(
                joined["member_id"], team["admin"], team["account"]
            )

    @pytest.mark.asyncio
    async def test_admin_removes_viewer(self, team, team_service):
        """Removed members disappear from the roster."""
        await team_service.remove_team_member(
            team["viewer_member"], team["admin"], team["account"]
        )

        members = await team_service.get_team_members(team["account"])
        assert [m["role"] for m in members] == ["owner", "admin"]
        with pytest.raises(NotFoundError):
            await team_service.remove_team_member(
                team["viewer_member"], team["admin"], team["account"]
            )

    @pytest.mark.asyncio
    async def test_only_owner_changes_roles(self, team, team_service):
        """Admins cannot change roles."""
        with pytest.raises(AuthorizationError) as exc_info:
            await team_service.update_member_role(
                team["viewer_member"], "manager", team["admin"], team["account"]
            )
        assert exc_info.value.code == "NOT_OWNER"

    @pytest.mark.asyncio
    async def test_owner_changes_role(self, team, team_service):
        """Owner can promote a viewer."""
        result = await team_service.update_member_role(
            team["viewer_member"], "Admin", team["owner"], team["account"]
        )

        assert result == {"member_id": team["viewer_member"], "new_role": "admin"}
        assert await team_service.get_user_role_for_account(
            team["viewer"], team["account"]
        ) == "admin"

    @pytest.mark.asyncio
    async def test_owner_role_immutable(self, session, team, team_service):
        """Owner role changes only through transfer."""
        owner_member = await TeamMemberRepository(session).get_membership(
            team["account"], team["owner"]
        )

        with pytest.raises(CannotChangeOwnerRole):
            await team_service.update_member_role(
                owner_member.id, "admin", team["owner"], team["account"]
            )

    @pytest.mark.asyncio
    async def test_transfer_ownership(self, session, team, team_service):
        """Ownership moves and the previous owner becomes admin."""
        account_id = team["account"]

        result = await team_service.transfer_ownership(
            team["viewer"], team["owner"], account_id
        )

        assert result == {
            "new_owner_id": team["viewer"],
            "previous_owner_id": team["owner"],
        }
        assert await team_service.get_user_role_for_account(
            team["viewer"], account_id
        ) == TeamRole.OWNER.value
        assert await team_service.get_user_role_for_account(
            team["owner"], account_id
        ) == TeamRole.ADMIN.value
        assert await TeamMemberRepository(session).count_owners(account_id) == 1

    @pytest.mark.asyncio
    async def test_transfer_requires_owner(self, team, team_service):
        """Admins cannot transfer ownership."""
        with pytest.raises(AuthorizationError):
            await team_service.transfer_ownership(
                team["viewer"], team["admin"], team["account"]
            )

    @pytest.mark.asyncio
    async def test_transfer_to_outsider(self, team, make_user, team_service):
        """New owner must be an active member."""
        outsider = await make_user()

        with pytest.raises(NotFoundError):
            await team_service.transfer_ownership(
                outsider.id, team["owner"], team["account"]
            )

    @pytest.mark.asyncio
    async def test_partial_swap_rolls_back(self, session, monkeypatch, team, team_service):
        """If only one row changes, nothing changes."""
        account_id, owner_id, admin_id = team["account"], team["owner"], team["admin"]

        async def demote_only(self, account_id, current_owner_id, new_owner_id):
            return await self.update_where(
                [
                    self.model.advertiser_account_id == account_id,
                    self.model.user_id == current_owner_id,
                ],
                role=TeamRole.ADMIN.value,
            )

        monkeypatch.setattr(TeamMemberRepository, "swap_owner", demote_only)

        with pytest.raises(OwnershipTransferFailed):
            await team_service.transfer_ownership(admin_id, owner_id, account_id)

        assert await team_service.get_user_role_for_account(
            owner_id, account_id
        ) == TeamRole.OWNER.value
        assert await TeamMemberRepository(session).count_owners(account_id) == 1
