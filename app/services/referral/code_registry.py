"""
Referral code registry.

Generates unique referral codes bound to a user and validates codes
presented at signup.
"""

import secrets

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.business_constants import (
    REFERRAL_CODE_ALPHABET,
    REFERRAL_CODE_MAX_ATTEMPTS,
    REFERRAL_CODE_SUFFIX_LENGTH,
)
from app.config.settings import settings
from app.models.referral_code import ReferralCode
from app.repositories.referral_code_repository import ReferralCodeRepository
from app.repositories.user_repository import UserRepository
from app.utils.datetime_utils import ensure_utc, utc_now
from app.utils.exceptions import (
    ExpiredCode,
    InactiveCode,
    InvalidCode,
    MaxUsesReached,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from app.utils.validation import PREFIX_PATTERN, normalize_code


def make_code(prefix: str) -> str:
    """
    Build a random code: PREFIX-XXXXXXXX.

    Args:
        prefix: Upper-cased alphanumeric prefix

    Returns:
        Candidate code (uniqueness not checked)
    """
    suffix = "".join(
        secrets.choice(REFERRAL_CODE_ALPHABET)
        for _ in range(REFERRAL_CODE_SUFFIX_LENGTH)
    )
    return f"{prefix}-{suffix}"


class ReferralCodeRegistry:
    """Manages referral code generation and validation."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize code registry."""
        self.session = session
        self.code_repo = ReferralCodeRepository(session)
        self.user_repo = UserRepository(session)

    async def generate_code(
        self,
        owner_id: int,
        prefix: str | None = None,
        display_name: str | None = None,
    ) -> ReferralCode:
        """
        Get or create the owner's active referral code.

        Idempotent: an existing active code is returned unchanged.

        Args:
            owner_id: Code owner user ID
            prefix: Code prefix (defaults to settings.referral_code_prefix)
            display_name: Optional label

        Returns:
            Active ReferralCode

        Raises:
            NotFoundError: If owner does not exist
            ValidationError: If prefix is malformed
            PersistenceError: If no free code was found
        """
        existing = await self.code_repo.get_active_for_user(owner_id)
        if existing:
            return existing

        owner = await self.user_repo.get_by_id(owner_id)
        if not owner:
            raise NotFoundError("User not found", "USER_NOT_FOUND")

        prefix = (prefix or settings.referral_code_prefix).strip().upper()
        if not PREFIX_PATTERN.match(prefix):
            raise ValidationError(
                "Prefix must be 1-10 letters or digits", "INVALID_PREFIX"
            )

        for attempt in range(1, REFERRAL_CODE_MAX_ATTEMPTS + 1):
            code = make_code(prefix)
            if await self.code_repo.code_exists(code):
                logger.debug(
                    "Referral code collision, retrying",
                    extra={"owner_id": owner_id, "attempt": attempt},
                )
                continue

            referral_code = await self.code_repo.create(
                user_id=owner_id,
                code=code,
                display_name=display_name,
                is_active=True,
            )
            await self.user_repo.set_primary_referral_code(owner_id, code)

            logger.info(
                "Referral code generated",
                extra={"owner_id": owner_id, "code": code},
            )
            return referral_code

        raise PersistenceError(
            "Could not generate a unique referral code", "CODE_GENERATION_FAILED"
        )

    async def validate_code(self, code: str) -> ReferralCode:
        """
        Resolve a code and check it can accept a new attribution.

        Checks run in order so the most specific error surfaces first:
        not found, inactive, max uses reached, expired.

        Args:
            code: Code as entered (case-insensitive)

        Returns:
            ReferralCode

        Raises:
            InvalidCode, InactiveCode, MaxUsesReached, ExpiredCode
        """
        referral_code = await self.code_repo.get_by_code(normalize_code(code))
        if not referral_code:
            raise InvalidCode()

        check_code_usable(referral_code)
        return referral_code


def check_code_usable(referral_code: ReferralCode) -> None:
    """
    Raise if a resolved code cannot accept a new attribution.

    Raises:
        InactiveCode, MaxUsesReached, ExpiredCode
    """
    if not referral_code.is_active:
        raise InactiveCode()

    if (
        referral_code.max_uses is not None
        and referral_code.uses_count >= referral_code.max_uses
    ):
        raise MaxUsesReached()

    if (
        referral_code.expires_at is not None
        and ensure_utc(referral_code.expires_at) < utc_now()
    ):
        raise ExpiredCode()
