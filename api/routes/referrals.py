"""
Referral routes (/api/referrals).
"""

from aiohttp import web

from api.auth import get_user_id, internal_only, login_required
from api.middlewares import get_session
from api.responses import success
from api.schemas import (
    AffiliateLinkQuery,
    EarningsQuery,
    GenerateCodeRequest,
    LeaderboardQuery,
    ReferralListQuery,
    TrackClickRequest,
    TrackEarningRequest,
    TrackOAuthSignupRequest,
    TrackReferralRequest,
    ValidateCodeRequest,
    parse_body,
    parse_query,
)
from app.services.referral_service import ReferralService

routes = web.RouteTableDef()


def _service(request: web.Request) -> ReferralService:
    return ReferralService(get_session(request))


@routes.get("/api/referrals/my-code")
@login_required
async def get_my_code(request: web.Request) -> web.Response:
    links = await _service(request).get_my_code(get_user_id(request))
    return success(links)


@routes.post("/api/referrals/generate-code")
@login_required
async def generate_code(request: web.Request) -> web.Response:
    body = await parse_body(request, GenerateCodeRequest)
    code = await _service(request).generate_code(
        get_user_id(request),
        prefix=body.prefix,
        display_name=body.display_name,
    )
    return success({"code": code}, message="Referral code generated")


@routes.get("/api/referrals/stats")
@login_required
async def get_stats(request: web.Request) -> web.Response:
    stats = await _service(request).get_referral_stats(get_user_id(request))
    return success(stats)


@routes.get("/api/referrals/my-referrals")
@login_required
async def get_my_referrals(request: web.Request) -> web.Response:
    query = parse_query(request, ReferralListQuery)
    page = await _service(request).get_my_referrals(
        get_user_id(request),
        status=query.status.value if query.status else None,
        limit=query.limit,
        offset=query.offset,
    )
    return success(page)


@routes.get("/api/referrals/earnings")
@login_required
async def get_earnings(request: web.Request) -> web.Response:
    query = parse_query(request, EarningsQuery)
    earnings = await _service(request).get_earnings(
        get_user_id(request),
        start_date=query.start_date,
        end_date=query.end_date,
        earning_type=query.earning_type.value if query.earning_type else None,
        limit=query.limit,
    )
    return success(earnings)


@routes.get("/api/referrals/tiers")
async def get_tiers(request: web.Request) -> web.Response:
    return success({"tiers": await _service(request).get_tiers()})


@routes.post("/api/referrals/validate-code")
async def validate_code(request: web.Request) -> web.Response:
    body = await parse_body(request, ValidateCodeRequest)
    return success(await _service(request).validate_code(body.code))


@routes.get("/api/referrals/leaderboard")
async def get_leaderboard(request: web.Request) -> web.Response:
    query = parse_query(request, LeaderboardQuery)
    leaderboard = await _service(request).get_leaderboard(query.limit)
    return success({"leaderboard": leaderboard})


@routes.post("/api/referrals/track-referral")
@internal_only
async def track_referral(request: web.Request) -> web.Response:
    body = await parse_body(request, TrackReferralRequest)
    metadata = {"signup_source": "web", "user_agent": request.headers.get("User-Agent")}
    metadata.update(body.metadata or {})
    referral = await _service(request).attribute(
        body.referred_user_id, body.referral_code, metadata
    )
    return success(
        {"referral": referral.to_dict()},
        message="Referral tracked successfully",
        status=201,
    )


@routes.post("/api/referrals/track-earning")
@internal_only
async def track_earning(request: web.Request) -> web.Response:
    body = await parse_body(request, TrackEarningRequest)
    result = await _service(request).track_earning(
        body.user_id,
        earning_type=body.earning_type.value,
        earning_amount=body.earning_amount,
        earning_currency=body.earning_currency,
        source_transaction_id=body.source_transaction_id,
        source_table=body.source_table,
        metadata=body.metadata,
    )
    commission = result["commission"]
    return success(
        {
            "commission_calculated": result["commission_calculated"],
            "commission": commission.to_dict() if commission else None,
        }
    )


@routes.post("/api/referrals/track-oauth-signup")
@login_required
async def track_oauth_signup(request: web.Request) -> web.Response:
    body = await parse_body(request, TrackOAuthSignupRequest)
    result = await _service(request).track_oauth_signup(
        get_user_id(request),
        body.referral_code,
        user_agent=request.headers.get("User-Agent"),
    )
    if result.get("referral") is not None:
        result["referral"] = result["referral"].to_dict()
    return success(result)


@routes.get("/api/referrals/affiliate-link")
@login_required
async def get_affiliate_link(request: web.Request) -> web.Response:
    query = parse_query(request, AffiliateLinkQuery)
    link = await _service(request).get_affiliate_link(
        get_user_id(request),
        product_id=query.product_id,
        store_id=query.store_id,
        url=query.url,
    )
    link["type"] = (
        "product" if query.product_id else "store" if query.store_id else "general"
    )
    return success(link)


@routes.post("/api/referrals/track-click")
async def track_click(request: web.Request) -> web.Response:
    body = await parse_body(request, TrackClickRequest)
    result = await _service(request).track_click(
        body.referral_code,
        product_id=body.product_id,
        store_id=body.store_id,
        target_url=body.target_url,
        ip=request.remote,
        user_agent=request.headers.get("User-Agent"),
    )
    return success(result)
