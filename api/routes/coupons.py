"""
Coupon routes (/api/coupons).
"""

from aiohttp import web

from api.auth import get_user_id, login_required
from api.middlewares import get_session
from api.responses import success
from api.schemas import (
    ApplyCouponRequest,
    CouponCartRequest,
    CreateCouponRequest,
    parse_body,
)
from app.services.coupon_service import CouponService, build_cart_total
from app.utils.exceptions import ValidationError

routes = web.RouteTableDef()


def _service(request: web.Request) -> CouponService:
    return CouponService(get_session(request))


def _coupon_id(request: web.Request) -> int:
    try:
        return int(request.match_info["coupon_id"])
    except ValueError:
        raise ValidationError("Invalid coupon_id") from None


@routes.post("/api/coupons/validate")
@login_required
async def validate_coupon(request: web.Request) -> web.Response:
    body = await parse_body(request, CouponCartRequest)
    coupon = await _service(request).validate_coupon(
        body.code,
        get_user_id(request),
        build_cart_total(body.subtotal_usd, body.subtotal_gems, body.subtotal_gold),
        campaign_id=body.campaign_id,
        drop_id=body.drop_id,
    )
    return success({"valid": True, "coupon": coupon.to_dict()})


@routes.post("/api/coupons/apply")
@login_required
async def apply_coupon(request: web.Request) -> web.Response:
    body = await parse_body(request, ApplyCouponRequest)
    service = _service(request)
    order = body.model_dump(exclude={"code", "order_id"})
    user_id = get_user_id(request)

    if body.order_id:
        result = await service.redeem_coupon(body.code, user_id, order, body.order_id)
    else:
        result = await service.apply_coupon(body.code, user_id, order)

    result["coupon"] = result["coupon"].to_dict()
    return success(result)


@routes.post("/api/coupons")
@login_required
async def create_coupon(request: web.Request) -> web.Response:
    body = await parse_body(request, CreateCouponRequest)
    data = body.model_dump()
    data["discount_type"] = body.discount_type.value
    coupon = await _service(request).create_coupon(get_user_id(request), **data)
    return success(
        {"coupon": coupon.to_dict()}, message="Coupon created", status=201
    )


@routes.delete("/api/coupons/{coupon_id}")
@login_required
async def deactivate_coupon(request: web.Request) -> web.Response:
    await _service(request).deactivate_coupon(
        _coupon_id(request), get_user_id(request)
    )
    return success(None, message="Coupon deactivated")


@routes.get("/api/coupons/{coupon_id}/analytics")
@login_required
async def get_analytics(request: web.Request) -> web.Response:
    analytics = await _service(request).get_coupon_analytics(
        _coupon_id(request), get_user_id(request)
    )
    return success(analytics)
