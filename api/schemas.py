"""
Request schemas.

Pydantic models for request bodies and query strings, plus parsing
helpers used by the route handlers.
"""

import json
from datetime import datetime
from decimal import Decimal
from typing import Any, TypeVar

from aiohttp import web
from pydantic import BaseModel, Field

from app.config.business_constants import (
    DEFAULT_LEADERBOARD_LIMIT,
    MAX_PAGE_SIZE,
)
from app.models.enums import DiscountKind, EarningType, ReferralStatus
from app.utils.exceptions import ValidationError

SchemaT = TypeVar("SchemaT", bound=BaseModel)


async def parse_body(request: web.Request, schema: type[SchemaT]) -> SchemaT:
    """
    Validate JSON body against a schema.

    Raises:
        ValidationError: If body is not a JSON object
        pydantic.ValidationError: If fields are invalid
    """
    data: Any = {}
    if request.body_exists:
        raw = await request.text()
        if raw.strip():
            try:
                data = json.loads(raw)
            except ValueError:
                raise ValidationError("Invalid JSON body") from None
    if not isinstance(data, dict):
        raise ValidationError("JSON body must be an object")
    return schema.model_validate(data)


def parse_query(request: web.Request, schema: type[SchemaT]) -> SchemaT:
    """Validate query string against a schema."""
    return schema.model_validate(dict(request.query))


# Referrals


class GenerateCodeRequest(BaseModel):
    prefix: str | None = Field(default=None, max_length=10)
    display_name: str | None = Field(default=None, max_length=100)


class ValidateCodeRequest(BaseModel):
    code: str = Field(min_length=1, max_length=32)


class TrackReferralRequest(BaseModel):
    referred_user_id: int
    referral_code: str = Field(min_length=1, max_length=32)
    metadata: dict[str, Any] | None = None


class TrackEarningRequest(BaseModel):
    user_id: int
    earning_type: EarningType
    earning_amount: Decimal = Field(gt=0)
    earning_currency: str = Field(default="usd", min_length=1, max_length=10)
    source_transaction_id: str | None = Field(default=None, max_length=255)
    source_table: str | None = Field(default=None, max_length=100)
    metadata: dict[str, Any] | None = None


class TrackOAuthSignupRequest(BaseModel):
    referral_code: str | None = Field(default=None, max_length=32)


class TrackClickRequest(BaseModel):
    referral_code: str = Field(min_length=1, max_length=32)
    product_id: str | None = None
    store_id: str | None = None
    target_url: str | None = Field(default=None, max_length=2048)


class ReferralListQuery(BaseModel):
    status: ReferralStatus | None = None
    limit: int = Field(default=50, ge=1, le=MAX_PAGE_SIZE)
    offset: int = Field(default=0, ge=0)


class EarningsQuery(BaseModel):
    start_date: datetime | None = None
    end_date: datetime | None = None
    earning_type: EarningType | None = None
    limit: int = Field(default=100, ge=1, le=MAX_PAGE_SIZE)


class LeaderboardQuery(BaseModel):
    limit: int = Field(default=DEFAULT_LEADERBOARD_LIMIT, ge=1, le=MAX_PAGE_SIZE)


class AffiliateLinkQuery(BaseModel):
    product_id: str | None = None
    store_id: str | None = None
    url: str | None = Field(default=None, max_length=2048)


# Advertiser teams


class CreateAccountRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    slug: str | None = Field(default=None, max_length=255)
    description: str | None = None
    website_url: str | None = Field(default=None, max_length=512)
    industry: str | None = Field(default=None, max_length=100)
    logo_url: str | None = Field(default=None, max_length=512)


class InviteRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    role: str
    message: str | None = Field(default=None, max_length=2000)


class UpdateRoleRequest(BaseModel):
    role: str


class TransferOwnershipRequest(BaseModel):
    new_owner_id: int


# Coupons


class CouponCartRequest(BaseModel):
    code: str = Field(min_length=1, max_length=64)
    subtotal_usd: Decimal = Field(default=Decimal("0"), ge=0)
    subtotal_gems: Decimal = Field(default=Decimal("0"), ge=0)
    subtotal_gold: Decimal = Field(default=Decimal("0"), ge=0)
    campaign_id: int | None = None
    drop_id: int | None = None


class ApplyCouponRequest(CouponCartRequest):
    order_id: str | None = Field(default=None, max_length=255)


class CreateCouponRequest(BaseModel):
    code: str = Field(min_length=1, max_length=64)
    discount_type: DiscountKind
    discount_value: Decimal = Field(default=Decimal("0"), ge=0)
    name: str | None = Field(default=None, max_length=255)
    description: str | None = None
    store_id: int | None = None
    campaign_id: int | None = None
    drop_id: int | None = None
    max_discount_usd: Decimal | None = Field(default=None, ge=0)
    min_purchase_usd: Decimal | None = Field(default=None, ge=0)
    min_purchase_gems: Decimal | None = Field(default=None, ge=0)
    max_uses: int | None = Field(default=None, ge=1)
    max_uses_per_user: int | None = Field(default=1, ge=1)
    starts_at: datetime | None = None
    expires_at: datetime | None = None
