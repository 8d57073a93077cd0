"""
Business logic constants for the Promorang referral program.

Central location for business rules and constants used across the application.
This module has no app imports so settings, services and the API can all
import it without circular dependencies.
"""

from decimal import Decimal

# ========================================================================
# COMMISSIONS
# ========================================================================

# Default commission rate by earning type (used when referrer has no tier)
COMMISSION_RATES: dict[str, Decimal] = {
    "drop_completion": Decimal("0.05"),  # 5% of drop reward
    "campaign_spend": Decimal("0.05"),  # 5% of campaign spend
    "product_sale": Decimal("0.05"),  # 5% of product sale
    "subscription": Decimal("0.10"),  # 10% of subscription fee
    "content_monetization": Decimal("0.05"),  # 5% of content earnings
}
DEFAULT_COMMISSION_RATE = Decimal("0.05")

# Commissions are paid in the earning currency when it is one of these,
# otherwise in gems (no exchange rate is applied)
SUPPORTED_COMMISSION_CURRENCIES = frozenset({"usd", "gems", "points"})
FALLBACK_COMMISSION_CURRENCY = "gems"

# ========================================================================
# ACTIVATION
# ========================================================================

# Thresholds a referred user must cross before the referral turns active
ACTIVATION_REQUIREMENTS = {
    "min_points_earned": Decimal("100"),
    "min_days_active": 0,
    "min_drops_completed": 1,
}

# One-time bonus credited to the referrer on activation
ACTIVATION_BONUS = {
    "gems": Decimal("100"),
    "points": Decimal("500"),
}

# ========================================================================
# TIERS
# ========================================================================

# Seed data for referral_tiers (tier_level, name, min_referrals, rate, icon, color)
DEFAULT_REFERRAL_TIERS = [
    {
        "tier_level": 1,
        "tier_name": "Bronze",
        "min_referrals": 0,
        "commission_rate": Decimal("0.05"),
        "badge_icon": "🥉",
        "badge_color": "#CD7F32",
    },
    {
        "tier_level": 2,
        "tier_name": "Silver",
        "min_referrals": 10,
        "commission_rate": Decimal("0.06"),
        "badge_icon": "🥈",
        "badge_color": "#C0C0C0",
    },
    {
        "tier_level": 3,
        "tier_name": "Gold",
        "min_referrals": 50,
        "commission_rate": Decimal("0.075"),
        "badge_icon": "🥇",
        "badge_color": "#FFD700",
    },
    {
        "tier_level": 4,
        "tier_name": "Platinum",
        "min_referrals": 100,
        "commission_rate": Decimal("0.10"),
        "badge_icon": "💎",
        "badge_color": "#E5E4E2",
    },
]

# ========================================================================
# REFERRAL CODES
# ========================================================================

DEFAULT_REFERRAL_CODE_PREFIX = "PROMO"
REFERRAL_CODE_SUFFIX_LENGTH = 8
REFERRAL_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"  # no 0/O/1/I
REFERRAL_CODE_MAX_ATTEMPTS = 10

# ========================================================================
# ADVERTISER TEAMS
# ========================================================================

DEFAULT_INVITATION_TTL_DAYS = 7

# ========================================================================
# STATISTICS
# ========================================================================

RECENT_COMMISSIONS_LIMIT = 10
DEFAULT_LEADERBOARD_LIMIT = 50
MAX_PAGE_SIZE = 100
