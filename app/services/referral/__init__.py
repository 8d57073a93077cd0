"""
Referral services package.

Contains modular services for the referral program:
- code_registry: Referral code generation and validation
- attribution: Referrer -> referred edge at signup
- activation_gate: Pending -> active promotion and activation bonus
- commission_calculator: Rate resolution and commission recording
- commission_ledger: Payout, failure bookkeeping and retry
- tier_evaluator: Tier recomputation from active referrals
- statistics: Dashboard statistics and leaderboard
- tracker: Earning tracking entry point for collaborators
- affiliate: Share/affiliate links and click tracking
"""

from app.services.referral.activation_gate import (
    ActivationGate,
    meets_activation_requirements,
)
from app.services.referral.affiliate import (
    AffiliateManager,
    build_affiliate_link,
    build_share_links,
)
from app.services.referral.attribution import ReferralAttributionLedger
from app.services.referral.code_registry import ReferralCodeRegistry
from app.services.referral.commission_calculator import (
    CommissionCalculator,
    compute_commission_amount,
    normalize_commission_currency,
    resolve_commission_rate,
)
from app.services.referral.commission_ledger import CommissionLedger
from app.services.referral.statistics import ReferralStatisticsManager
from app.services.referral.tier_evaluator import TierEvaluator
from app.services.referral.tracker import ReferralTracker


__all__ = [
    # Managers
    "ActivationGate",
    "AffiliateManager",
    "CommissionCalculator",
    "CommissionLedger",
    "ReferralAttributionLedger",
    "ReferralCodeRegistry",
    "ReferralStatisticsManager",
    "ReferralTracker",
    "TierEvaluator",
    # Pure helpers
    "build_affiliate_link",
    "build_share_links",
    "compute_commission_amount",
    "meets_activation_requirements",
    "normalize_commission_currency",
    "resolve_commission_rate",
]
