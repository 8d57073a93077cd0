"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

# Advertiser Team Models
from app.models.advertiser_account import AdvertiserAccount, TeamMember
from app.models.advertiser_invitation import AdvertiserInvitation

# Affiliate Analytics
from app.models.affiliate_click import AffiliateClick
from app.models.base import Base

# Coupon Models
from app.models.coupon import Coupon, CouponUsage
from app.models.enums import (
    CommissionStatus,
    Currency,
    DiscountKind,
    EarningType,
    MembershipStatus,
    ReferralStatus,
    TeamRole,
)

# Referral Models
from app.models.referral import Referral
from app.models.referral_code import ReferralCode
from app.models.referral_commission import ReferralCommission
from app.models.referral_tier import ReferralTier

# Core Models
from app.models.user import User

__all__ = [
    # Base
    "Base",
    # Enums
    "CommissionStatus",
    "Currency",
    "DiscountKind",
    "EarningType",
    "MembershipStatus",
    "ReferralStatus",
    "TeamRole",
    # Core Models
    "User",
    # Referral Models
    "Referral",
    "ReferralCode",
    "ReferralCommission",
    "ReferralTier",
    "AffiliateClick",
    # Advertiser Team Models
    "AdvertiserAccount",
    "AdvertiserInvitation",
    "TeamMember",
    # Coupon Models
    "Coupon",
    "CouponUsage",
]
