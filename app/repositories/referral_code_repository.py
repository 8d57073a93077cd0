"""
ReferralCode repository.

Data access layer for ReferralCode model.
"""

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.referral_code import ReferralCode
from app.repositories.base import BaseRepository


class ReferralCodeRepository(BaseRepository[ReferralCode]):
    """ReferralCode repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize referral code repository."""
        super().__init__(ReferralCode, session)

    async def get_by_code(self, code: str) -> ReferralCode | None:
        """
        Get code by its normalized (upper-cased) text.

        Args:
            code: Normalized code

        Returns:
            ReferralCode or None
        """
        return await self.get_by(code=code)

    async def get_active_for_user(
        self, user_id: int
    ) -> ReferralCode | None:
        """
        Get the oldest active code of a user.

        Args:
            user_id: Code owner

        Returns:
            ReferralCode or None
        """
        stmt = (
            select(ReferralCode)
            .where(
                ReferralCode.user_id == user_id,
                ReferralCode.is_active == True,  # noqa: E712
            )
            .order_by(ReferralCode.id)
            .limit(1)
        )
        return await self._fetch_one(stmt)

    async def code_exists(self, code: str) -> bool:
        """Check if code text is taken."""
        return await self.exists(code=code)

    async def increment_uses(self, code_id: int) -> bool:
        """
        Atomically count one attribution against the code.

        The cap is re-checked in the UPDATE so concurrent signups cannot
        push uses_count past max_uses.

        Returns:
            True if the use was counted
        """
        updated = await self.update_where(
            [
                ReferralCode.id == code_id,
                or_(
                    ReferralCode.max_uses.is_(None),
                    ReferralCode.uses_count < ReferralCode.max_uses,
                ),
            ],
            uses_count=ReferralCode.uses_count + 1,
        )
        return updated == 1
