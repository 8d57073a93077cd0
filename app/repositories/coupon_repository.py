"""
Coupon repositories.

Data access layer for Coupon and CouponUsage models.
"""

from decimal import Decimal

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.coupon import Coupon, CouponUsage
from app.repositories.base import BaseRepository


class CouponRepository(BaseRepository[Coupon]):
    """Coupon repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize coupon repository."""
        super().__init__(Coupon, session)

    async def get_by_code(self, code: str) -> Coupon | None:
        """Get coupon by normalized (upper-cased) code."""
        return await self.get_by(code=code)

    async def increment_uses(self, coupon_id: int) -> bool:
        """
        Atomically count one redemption.

        The global cap is re-checked in the UPDATE.

        Returns:
            True if the redemption was counted
        """
        updated = await self.update_where(
            [
                Coupon.id == coupon_id,
                or_(
                    Coupon.max_uses.is_(None),
                    Coupon.current_uses < Coupon.max_uses,
                ),
            ],
            current_uses=Coupon.current_uses + 1,
        )
        return updated == 1


class CouponUsageRepository(BaseRepository[CouponUsage]):
    """CouponUsage repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize coupon usage repository."""
        super().__init__(CouponUsage, session)

    async def count_for_user(self, coupon_id: int, user_id: int) -> int:
        """Count redemptions of a coupon by a user."""
        return await self.count(coupon_id=coupon_id, user_id=user_id)

    async def get_totals(self, coupon_id: int) -> dict:
        """
        Aggregate redemptions of a coupon in a single query.

        Returns:
            Dict with uses and discount totals per currency
        """
        stmt = select(
            func.count(CouponUsage.id).label("uses"),
            func.coalesce(func.sum(CouponUsage.discount_amount_usd), 0).label(
                "usd"
            ),
            func.coalesce(func.sum(CouponUsage.discount_amount_gems), 0).label(
                "gems"
            ),
            func.coalesce(func.sum(CouponUsage.discount_amount_gold), 0).label(
                "gold"
            ),
        ).where(CouponUsage.coupon_id == coupon_id)
        row = (await self.session.execute(stmt)).one()
        return {
            "uses": row.uses or 0,
            "usd": Decimal(str(row.usd)),
            "gems": Decimal(str(row.gems)),
            "gold": Decimal(str(row.gold)),
        }

    async def get_usage_by_day(self, coupon_id: int) -> dict[str, int]:
        """
        Count redemptions per calendar day (UTC).

        Returns:
            Dict {"YYYY-MM-DD": count}
        """
        stmt = (
            select(CouponUsage.used_at)
            .where(CouponUsage.coupon_id == coupon_id)
            .order_by(CouponUsage.used_at)
        )
        result = await self.session.execute(stmt)

        by_day: dict[str, int] = {}
        for used_at in result.scalars().all():
            day = used_at.date().isoformat()
            by_day[day] = by_day.get(day, 0) + 1
        return by_day
