"""
Request identity and permission decorators.

An upstream gateway authenticates users and forwards X-User-Id.
System-only endpoints also require X-Internal-Token.
"""

import functools
import hmac
import json

from aiohttp import web

from api.middlewares import Handler, get_session
from app.config.settings import settings
from app.services.team import AdvertiserTeamService
from app.utils.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ValidationError,
)

USER_ID_HEADER = "X-User-Id"
INTERNAL_TOKEN_HEADER = "X-Internal-Token"

# Request keys set by the decorators
USER_ID = "user_id"
ACCOUNT_ID = "advertiser_account_id"
TEAM_ROLE = "team_role"


def get_user_id(request: web.Request) -> int:
    """
    Get authenticated user id.

    Raises:
        AuthenticationError: If header is missing or not an integer
    """
    if USER_ID in request:
        return request[USER_ID]

    raw = request.headers.get(USER_ID_HEADER)
    if not raw:
        raise AuthenticationError("Authentication required")
    try:
        user_id = int(raw)
    except ValueError:
        raise AuthenticationError("Invalid user identity") from None

    request[USER_ID] = user_id
    return user_id


def login_required(handler: Handler) -> Handler:
    """Require X-User-Id."""

    @functools.wraps(handler)
    async def wrapper(request: web.Request) -> web.StreamResponse:
        get_user_id(request)
        return await handler(request)

    return wrapper


def internal_only(handler: Handler) -> Handler:
    """Require X-User-Id and a matching X-Internal-Token."""

    @functools.wraps(handler)
    async def wrapper(request: web.Request) -> web.StreamResponse:
        get_user_id(request)
        expected = settings.internal_api_token
        provided = request.headers.get(INTERNAL_TOKEN_HEADER, "")
        if not expected or not hmac.compare_digest(provided, expected):
            raise AuthorizationError("Internal endpoint")
        return await handler(request)

    return wrapper


async def _resolve_account_id(request: web.Request) -> int:
    raw = request.match_info.get("account_id")
    if raw is None and request.body_exists:
        try:
            body = json.loads(await request.text() or "{}")
        except ValueError:
            body = {}
        if isinstance(body, dict):
            raw = body.get("advertiser_account_id")
    if raw is None:
        raise ValidationError("Advertiser account ID required")
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError("Invalid advertiser account ID") from None


def require_team_permission(required_role: str):
    """
    Require an active team membership with at least the given role.

    The account id comes from the path ({account_id}) or the JSON body
    (advertiser_account_id). Denials are 403 with the reason.

    Args:
        required_role: viewer, manager, admin or owner
    """

    def decorator(handler: Handler) -> Handler:
        @functools.wraps(handler)
        async def wrapper(request: web.Request) -> web.StreamResponse:
            user_id = get_user_id(request)
            account_id = await _resolve_account_id(request)

            service = AdvertiserTeamService(get_session(request))
            result = await service.check_permission(
                user_id, account_id, required_role
            )
            if not result["allowed"]:
                raise AuthorizationError(result["reason"])

            request[ACCOUNT_ID] = account_id
            request[TEAM_ROLE] = result["role"]
            return await handler(request)

        return wrapper

    return decorator
