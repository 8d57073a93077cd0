"""
AffiliateClick repository.

Data access layer for AffiliateClick model.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.affiliate_click import AffiliateClick
from app.repositories.base import BaseRepository


class AffiliateClickRepository(BaseRepository[AffiliateClick]):
    """AffiliateClick repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize affiliate click repository."""
        super().__init__(AffiliateClick, session)

    async def count_for_affiliate(self, affiliate_user_id: int) -> int:
        """Count tracked clicks of an affiliate."""
        return await self.count(affiliate_user_id=affiliate_user_id)
