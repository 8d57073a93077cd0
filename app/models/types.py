"""
Standard type definitions for database models.

Provides consistent types for monetary and rate fields across all models.
"""

from sqlalchemy import DECIMAL

# Standard money type for balances, earnings and commissions
# Precision: 18 digits total, 2 after decimal point
# Suitable for: usd, gems, points, gold balances
# Range: up to 9,999,999,999,999,999.99
MoneyType = DECIMAL(18, 2)

# Commission rate type (fraction, not percent)
# Precision: 6 digits total, 4 after decimal point
# Suitable for: 0.0500, 0.0750, 0.1000
RateType = DECIMAL(6, 4)

# Discount value type for coupons
# Holds either a percentage (e.g. 15.00) or a fixed amount
DiscountType = DECIMAL(12, 2)
