"""
Model enumerations.

String enums stored as plain VARCHAR columns.
"""

from enum import StrEnum


class ReferralStatus(StrEnum):
    """Referral attribution status."""

    PENDING = "pending"  # Signed up, activation thresholds not met yet
    ACTIVE = "active"  # Activated, earns commissions for the referrer


class CommissionStatus(StrEnum):
    """Commission payout status."""

    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class EarningType(StrEnum):
    """Earning events that generate referral commissions."""

    DROP_COMPLETION = "drop_completion"
    CAMPAIGN_SPEND = "campaign_spend"
    PRODUCT_SALE = "product_sale"
    SUBSCRIPTION = "subscription"
    CONTENT_MONETIZATION = "content_monetization"


class Currency(StrEnum):
    """Balance currencies held on the user record."""

    USD = "usd"
    GEMS = "gems"
    POINTS = "points"
    GOLD = "gold"


class TeamRole(StrEnum):
    """
    Advertiser team role.

    Roles are totally ordered: viewer < manager < admin < owner.
    """

    VIEWER = "viewer"
    MANAGER = "manager"
    ADMIN = "admin"
    OWNER = "owner"

    @property
    def rank(self) -> int:
        """Position in the role hierarchy (higher means more permissions)."""
        return _ROLE_RANKS[self]

    def at_least(self, required: "TeamRole") -> bool:
        """Check if this role meets or exceeds the required role."""
        return self.rank >= required.rank


_ROLE_RANKS = {
    TeamRole.VIEWER: 0,
    TeamRole.MANAGER: 1,
    TeamRole.ADMIN: 2,
    TeamRole.OWNER: 3,
}

# Roles that can be granted through invitations or role changes
ASSIGNABLE_ROLES = frozenset({TeamRole.ADMIN, TeamRole.MANAGER, TeamRole.VIEWER})


class MembershipStatus(StrEnum):
    """Team membership status."""

    PENDING = "pending"
    ACTIVE = "active"
    REVOKED = "revoked"


class DiscountKind(StrEnum):
    """Coupon discount type."""

    PERCENTAGE = "percentage"
    FIXED_USD = "fixed_usd"
    FIXED_GEMS = "fixed_gems"
    FIXED_GOLD = "fixed_gold"
    FREE_SHIPPING = "free_shipping"
