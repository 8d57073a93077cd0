"""
Services.

Business logic layer.
"""

# Base Service Infrastructure
from app.services.base_service import (
    BaseService,
    log_operation,
    transaction,
)

# Coupon Services
from app.services.coupon_service import CouponService

# Referral Services
from app.services.referral_service import ReferralService

# Advertiser Team Services
from app.services.team import AdvertiserTeamService


__all__ = [
    # Base Infrastructure
    "BaseService",
    "transaction",
    "log_operation",
    # Core
    "AdvertiserTeamService",
    "CouponService",
    "ReferralService",
]
