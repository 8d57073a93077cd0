"""
Commission ledger and payout.

Pays pending commissions into referrer balances. Each payout runs in
its own transaction: the status claim (pending -> paid) and the
balance credit commit together or not at all. A failed payout is
recorded as status=failed in a separate transaction, so a failed
commission never has a credited balance behind it.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from app.config.settings import settings
from app.models.enums import CommissionStatus
from app.models.referral_commission import ReferralCommission
from app.repositories.referral_commission_repository import (
    ReferralCommissionRepository,
)
from app.repositories.referral_repository import ReferralRepository
from app.repositories.user_repository import UserRepository
from app.services.base_service import BaseService
from app.utils.datetime_utils import utc_now
from app.utils.exceptions import (
    NotFoundError,
    PersistenceError,
    StateConflictError,
)


class CommissionLedger(BaseService):
    """Processes and retries commission payouts."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize commission ledger."""
        super().__init__(session)
        self.commission_repo = ReferralCommissionRepository(session)
        self.referral_repo = ReferralRepository(session)
        self.user_repo = UserRepository(session)

    async def process_commission(
        self, commission_id: int
    ) -> ReferralCommission:
        """
        Pay a pending commission.

        No-op for commissions already paid or failed. The caller must
        not hold uncommitted work on the session: this method commits.

        Args:
            commission_id: Commission ID

        Returns:
            Commission in its resulting state (paid, failed, or unchanged)

        Raises:
            NotFoundError: If commission does not exist
        """
        commission = await self.commission_repo.get_by_id(commission_id)
        if not commission:
            raise NotFoundError("Commission not found", "COMMISSION_NOT_FOUND")

        if commission.status != CommissionStatus.PENDING:
            self.logger.debug(
                "Commission not pending, skipping payout",
                extra={"commission_id": commission_id, "status": commission.status},
            )
            return commission

        referrer_id = commission.referrer_id
        amount = commission.commission_amount
        currency = commission.commission_currency

        try:
            paid = await self._pay(commission)
            await self.commit()
        except Exception as e:
            await self.rollback()
            self.logger.error(
                "Commission payout failed",
                extra={
                    "commission_id": commission_id,
                    "referrer_id": referrer_id,
                    "error": str(e),
                },
                exc_info=True,
            )
            await self._record_failure(commission_id, e)
        else:
            if paid:
                self.logger.info(
                    "Commission paid",
                    extra={
                        "commission_id": commission_id,
                        "referrer_id": referrer_id,
                        "amount": str(amount),
                        "currency": currency,
                    },
                )

        return await self.commission_repo.get_by_id(commission_id)

    async def _pay(self, commission: ReferralCommission) -> bool:
        """
        Claim commission and credit the referrer in the current transaction.

        Returns:
            True if this call paid the commission, False if another
            worker claimed it first
        """
        if not await self.commission_repo.claim_for_payout(
            commission.id, utc_now()
        ):
            return False

        credited = await self.user_repo.credit_balance(
            commission.referrer_id,
            commission.commission_currency,
            commission.commission_amount,
            track_referral_earnings=True,
        )
        if not credited:
            raise PersistenceError(
                f"Referrer {commission.referrer_id} not found for payout"
            )

        await self.referral_repo.add_earnings(
            commission.referral_id,
            commission.commission_currency,
            commission.commission_amount,
        )
        return True

    async def _record_failure(
        self, commission_id: int, error: Exception
    ) -> None:
        """Mark commission failed in a fresh transaction."""
        try:
            await self.commission_repo.mark_failed(
                commission_id, str(error) or error.__class__.__name__, utc_now()
            )
            await self.commit()
        except Exception:
            await self.rollback()
            # Still pending: the retry sweep picks it up as stale
            self.logger.exception(
                "Could not mark commission failed",
                extra={"commission_id": commission_id},
            )

    async def retry_commission(
        self, commission_id: int, max_attempts: int | None = None
    ) -> ReferralCommission:
        """
        Move a failed commission back to pending and process it again.

        Args:
            commission_id: Commission ID
            max_attempts: Attempt limit (defaults to settings)

        Returns:
            Commission in its resulting state

        Raises:
            NotFoundError: If commission does not exist
            StateConflictError: If commission is not failed or out of attempts
        """
        if max_attempts is None:
            max_attempts = settings.commission_retry_max_attempts

        requeued = await self.commission_repo.requeue_failed(
            commission_id, max_attempts
        )
        await self.commit()

        if not requeued:
            commission = await self.commission_repo.get_by_id(commission_id)
            if not commission:
                raise NotFoundError(
                    "Commission not found", "COMMISSION_NOT_FOUND"
                )
            raise StateConflictError(
                "Commission is not retryable", "COMMISSION_NOT_RETRYABLE"
            )

        self.logger.info(
            "Commission requeued for payout",
            extra={"commission_id": commission_id},
        )
        return await self.process_commission(commission_id)
