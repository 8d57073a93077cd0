"""
API route tables.
"""

from api.routes.coupons import routes as coupon_routes
from api.routes.health import routes as health_routes
from api.routes.referrals import routes as referral_routes
from api.routes.team import routes as team_routes

ROUTE_TABLES = (health_routes, referral_routes, team_routes, coupon_routes)

__all__ = ["ROUTE_TABLES"]
