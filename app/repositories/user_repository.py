"""
User repository.

Data access layer for User model.
"""

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User
from app.repositories.base import BaseRepository

# Currencies that have a balance column on the user record
BALANCE_CURRENCIES = ("usd", "gems", "points", "gold")

# Currencies that have a referral_earnings_<currency> counter
EARNINGS_CURRENCIES = ("usd", "gems", "points")


class UserRepository(BaseRepository[User]):
    """User repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize user repository."""
        super().__init__(User, session)

    async def get_by_email(self, email: str) -> User | None:
        """
        Get user by email.

        Args:
            email: Normalized (lower-cased) email

        Returns:
            User or None
        """
        return await self.get_by(email=email)

    async def get_by_username(self, username: str) -> User | None:
        """Get user by username."""
        return await self.get_by(username=username)

    async def get_by_ids(self, user_ids: list[int]) -> dict[int, User]:
        """
        Get users by id in one query.

        Returns:
            Dict user_id -> User (missing ids are absent)
        """
        if not user_ids:
            return {}
        stmt = select(User).where(User.id.in_(set(user_ids)))
        users = await self._fetch_all(stmt)
        return {user.id: user for user in users}

    async def credit_balance(
        self,
        user_id: int,
        currency: str,
        amount: Decimal,
        track_referral_earnings: bool = False,
    ) -> bool:
        """
        Atomically credit a balance column.

        Args:
            user_id: User ID
            currency: usd, gems, points or gold
            amount: Amount to add
            track_referral_earnings: Also add to referral_earnings_<currency>

        Returns:
            True if user row was updated

        Raises:
            ValueError: If currency has no balance column
        """
        if currency not in BALANCE_CURRENCIES:
            raise ValueError(f"Unsupported balance currency: {currency}")

        deltas = {f"{currency}_balance": amount}
        if track_referral_earnings and currency in EARNINGS_CURRENCIES:
            deltas[f"referral_earnings_{currency}"] = amount

        return await self.increment(user_id, **deltas) == 1

    async def set_primary_referral_code(
        self, user_id: int, code: str
    ) -> None:
        """Cache primary referral code on the user record."""
        await self.update_where(
            [User.id == user_id], primary_referral_code=code
        )

    async def set_referred_by(
        self, user_id: int, referrer_id: int
    ) -> int:
        """
        Denormalize referrer onto the referred user.

        Only fills an empty referred_by_id.

        Returns:
            Number of rows updated
        """
        return await self.update_where(
            [User.id == user_id, User.referred_by_id.is_(None)],
            referred_by_id=referrer_id,
        )

    async def set_tier(self, user_id: int, tier_id: int | None) -> None:
        """Write computed tier pointer."""
        await self.update_where(
            [User.id == user_id], referral_tier_id=tier_id
        )

    async def get_leaderboard(self, limit: int = 50) -> list[User]:
        """
        Get top referrers.

        Args:
            limit: Max number of users

        Returns:
            Users with at least one referral, most referrals first
        """
        stmt = (
            select(User)
            .where(User.total_referrals > 0)
            .order_by(User.total_referrals.desc(), User.id)
            .limit(limit)
        )
        return await self._fetch_all(stmt)
