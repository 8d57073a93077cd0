"""
Advertiser team routes (/api/advertisers).
"""

from aiohttp import web

from api.auth import (
    ACCOUNT_ID,
    get_user_id,
    login_required,
    require_team_permission,
)
from api.middlewares import get_session
from api.responses import success
from api.schemas import (
    CreateAccountRequest,
    InviteRequest,
    TransferOwnershipRequest,
    UpdateRoleRequest,
    parse_body,
)
from app.services.team import AdvertiserTeamService
from app.utils.exceptions import NotFoundError, ValidationError

routes = web.RouteTableDef()


def _service(request: web.Request) -> AdvertiserTeamService:
    return AdvertiserTeamService(get_session(request))


def _path_int(request: web.Request, name: str) -> int:
    try:
        return int(request.match_info[name])
    except (KeyError, ValueError):
        raise ValidationError(f"Invalid {name}") from None


@routes.get("/api/advertisers/accounts")
@login_required
async def list_accounts(request: web.Request) -> web.Response:
    accounts = await _service(request).get_user_advertiser_accounts(
        get_user_id(request)
    )
    return success({"accounts": accounts})


@routes.post("/api/advertisers/accounts")
@login_required
async def create_account(request: web.Request) -> web.Response:
    body = await parse_body(request, CreateAccountRequest)
    account = await _service(request).create_advertiser_account(
        get_user_id(request), **body.model_dump()
    )
    return success(
        {"account": account.to_dict()},
        message="Advertiser account created",
        status=201,
    )


@routes.get("/api/advertisers/{account_id:\\d+}/team")
@require_team_permission("viewer")
async def list_team(request: web.Request) -> web.Response:
    members = await _service(request).get_team_members(request[ACCOUNT_ID])
    return success({"members": members})


@routes.post("/api/advertisers/{account_id:\\d+}/team/invite")
@require_team_permission("admin")
async def invite_member(request: web.Request) -> web.Response:
    body = await parse_body(request, InviteRequest)
    result = await _service(request).create_invitation(
        request[ACCOUNT_ID],
        body.email,
        body.role,
        get_user_id(request),
        message=body.message,
    )
    invitation = result["invitation"]
    data = {
        "type": result["type"],
        "invitation": {
            "id": invitation.id,
            "email": invitation.email,
            "role": invitation.role,
            "token": invitation.token,
            "expires_at": invitation.expires_at,
        },
    }
    if "member_id" in result:
        data["member_id"] = result["member_id"]
    return success(data, message="Invitation sent", status=201)


@routes.get("/api/advertisers/{account_id:\\d+}/invitations")
@require_team_permission("admin")
async def list_invitations(request: web.Request) -> web.Response:
    invitations = await _service(request).get_pending_invitations(
        request[ACCOUNT_ID]
    )
    return success({"invitations": invitations})


@routes.delete("/api/advertisers/{account_id:\\d+}/invitations/{invitation_id:\\d+}")
@require_team_permission("admin")
async def revoke_invitation(request: web.Request) -> web.Response:
    await _service(request).revoke_invitation(
        _path_int(request, "invitation_id"), request[ACCOUNT_ID]
    )
    return success(None, message="Invitation revoked")


@routes.delete("/api/advertisers/{account_id:\\d+}/team/{member_id:\\d+}")
@require_team_permission("admin")
async def remove_member(request: web.Request) -> web.Response:
    await _service(request).remove_team_member(
        _path_int(request, "member_id"),
        get_user_id(request),
        request[ACCOUNT_ID],
    )
    return success(None, message="Team member removed")


@routes.patch("/api/advertisers/{account_id:\\d+}/team/{member_id:\\d+}/role")
@require_team_permission("owner")
async def update_member_role(request: web.Request) -> web.Response:
    body = await parse_body(request, UpdateRoleRequest)
    result = await _service(request).update_member_role(
        _path_int(request, "member_id"),
        body.role,
        get_user_id(request),
        request[ACCOUNT_ID],
    )
    return success(result, message="Role updated")


@routes.post("/api/advertisers/{account_id:\\d+}/team/transfer-ownership")
@require_team_permission("owner")
async def transfer_ownership(request: web.Request) -> web.Response:
    body = await parse_body(request, TransferOwnershipRequest)
    result = await _service(request).transfer_ownership(
        body.new_owner_id, get_user_id(request), request[ACCOUNT_ID]
    )
    return success(result, message="Ownership transferred")


@routes.get("/api/advertisers/invitations/{token}")
async def get_invitation(request: web.Request) -> web.Response:
    details = await _service(request).get_invitation_by_token(
        request.match_info["token"]
    )
    if details is None:
        raise NotFoundError("Invitation not found", "INVITATION_NOT_FOUND")
    return success(details)


@routes.post("/api/advertisers/invitations/{token}/accept")
@login_required
async def accept_invitation(request: web.Request) -> web.Response:
    result = await _service(request).accept_invitation(
        request.match_info["token"], get_user_id(request)
    )
    return success(result, message="Invitation accepted")
