"""
Referral attribution ledger.

Records the referrer -> referred edge at signup. A referred user gets
at most one Referral row, ever.
"""

from typing import Any

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import ReferralStatus
from app.models.referral import Referral
from app.repositories.referral_code_repository import ReferralCodeRepository
from app.repositories.referral_repository import ReferralRepository
from app.repositories.user_repository import UserRepository
from app.services.referral.code_registry import ReferralCodeRegistry
from app.utils.exceptions import (
    AlreadyReferred,
    MaxUsesReached,
    NotFoundError,
    SelfReferral,
)


class ReferralAttributionLedger:
    """Manages referral attribution at signup."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize attribution ledger."""
        self.session = session
        self.registry = ReferralCodeRegistry(session)
        self.code_repo = ReferralCodeRepository(session)
        self.referral_repo = ReferralRepository(session)
        self.user_repo = UserRepository(session)

    async def attribute(
        self,
        referred_id: int,
        code: str,
        metadata: dict[str, Any] | None = None,
    ) -> Referral:
        """
        Attribute a referred user to the owner of a referral code.

        Must run inside a transaction; on failure the caller rolls back
        so no partial attribution survives.

        Args:
            referred_id: User who signed up
            code: Referral code presented at signup
            metadata: Signup metadata (source, user agent, ...)

        Returns:
            Created pending Referral

        Raises:
            InvalidCode, InactiveCode, MaxUsesReached, ExpiredCode:
                Code cannot be used
            SelfReferral: Code belongs to referred user
            AlreadyReferred: Referred user already has a referrer
            NotFoundError: Referred user does not exist
        """
        referral_code = await self.registry.validate_code(code)

        if referral_code.user_id == referred_id:
            raise SelfReferral()

        if not await self.user_repo.exists(id=referred_id):
            raise NotFoundError("User not found", "USER_NOT_FOUND")

        if await self.referral_repo.get_by_referred(referred_id):
            raise AlreadyReferred()

        # Cap is re-checked in SQL; a concurrent signup may have taken
        # the last use since validation
        if not await self.code_repo.increment_uses(referral_code.id):
            raise MaxUsesReached()

        try:
            referral = await self.referral_repo.create(
                referrer_id=referral_code.user_id,
                referred_id=referred_id,
                referral_code_id=referral_code.id,
                referral_code=referral_code.code,
                status=ReferralStatus.PENDING.value,
                signup_metadata=metadata or {},
            )
        except IntegrityError as e:
            # Unique referred_id: a concurrent attribution won
            raise AlreadyReferred() from e

        await self.user_repo.set_referred_by(
            referred_id, referral_code.user_id
        )
        await self.user_repo.increment(
            referral_code.user_id, total_referrals=1
        )

        logger.info(
            "Referral attributed",
            extra={
                "referral_id": referral.id,
                "referrer_id": referral.referrer_id,
                "referred_id": referred_id,
                "code": referral_code.code,
            },
        )
        return referral
