"""
Integration tests for commission calculation, payout and retry.

Run against an in-memory SQLite database.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from app.models.enums import CommissionStatus
from app.models.referral_commission import ReferralCommission
from app.repositories.referral_commission_repository import (
    ReferralCommissionRepository,
)
from app.repositories.referral_repository import ReferralRepository
from app.repositories.user_repository import UserRepository
from app.services.referral.commission_ledger import CommissionLedger
from app.utils.datetime_utils import utc_now
from app.utils.exceptions import NotFoundError, StateConflictError, ValidationError
from jobs.tasks.commission_retry import retry_commissions

pytestmark = pytest.mark.integration


@pytest.fixture
def broken_payout(monkeypatch):
    """Make every balance credit fail."""

    async def fail_credit(self, *args, **kwargs):
        raise RuntimeError("balance store unavailable")

    monkeypatch.setattr(UserRepository, "credit_balance", fail_credit)
    return monkeypatch


class TestEndToEnd:
    """Signup, activation, earning and payout in one flow."""

    @pytest.mark.asyncio
    async def test_product_sale_pays_referrer(self, session, qualify, referred_pair, referral_service):
        """A $200 sale by an activated referral pays $10.00 once."""
        referrer_id, referred_id, referral_id = referred_pair
        await qualify(referred_id)

        result = await referral_service.track_earning(
            referred_id,
            earning_type="product_sale",
            earning_amount=Decimal("200"),
            earning_currency="usd",
            source_transaction_id="order-1",
            source_table="orders",
        )

        assert result["commission_calculated"] is True
        commission = result["commission"]
        assert commission.status == CommissionStatus.PAID.value
        assert commission.commission_amount == Decimal("10.00")
        assert commission.commission_rate == Decimal("0.05")
        assert commission.commission_currency == "usd"
        assert commission.paid_at is not None

        referrer = await UserRepository(session).get_by_id(referrer_id)
        assert referrer.usd_balance == Decimal("10.00")
        assert referrer.referral_earnings_usd == Decimal("10.00")
        # Activation bonus is paid exactly once
        assert referrer.gems_balance == Decimal("100")
        assert referrer.points_balance == Decimal("500")
        assert referrer.active_referrals == 1

        referral = await ReferralRepository(session).get_by_id(referral_id)
        assert referral.total_commission_paid == Decimal("10.00")

    @pytest.mark.asyncio
    async def test_same_source_is_paid_once(self, session, active_pair, referral_service):
        """Reporting the same order twice yields one commission."""
        referrer_id, referred_id, _ = active_pair

        for _ in range(2):
            await referral_service.track_earning(
                referred_id,
                earning_type="product_sale",
                earning_amount="200",
                source_transaction_id="order-7",
                source_table="orders",
            )

        assert await ReferralCommissionRepository(session).count() == 1
        referrer = await UserRepository(session).get_by_id(referrer_id)
        assert referrer.usd_balance == Decimal("10.00")

    @pytest.mark.asyncio
    async def test_unreferred_user_earns_nothing_for_anyone(self, session, make_user, referral_service):
        """No referral means no commission and no writes."""
        user = await make_user()

        result = await referral_service.track_earning(
            user.id, earning_type="product_sale", earning_amount=50
        )

        assert result == {"commission_calculated": False, "commission": None}
        assert await ReferralCommissionRepository(session).count() == 0

    @pytest.mark.asyncio
    async def test_pending_referral_earns_nothing(self, session, referred_pair, referral_service):
        """Earnings before activation pay no commission."""
        _, referred_id, _ = referred_pair

        result = await referral_service.track_earning(
            referred_id, earning_type="product_sale", earning_amount=50
        )

        assert result["commission_calculated"] is False
        assert await ReferralCommissionRepository(session).count() == 0


class TestCommissionRates:
    """Tests for rate and currency resolution against stored tiers."""

    @pytest.mark.asyncio
    async def test_silver_tier_rate(self, session, tiers, active_pair, referral_service):
        """A Silver referrer earns 6% regardless of earning type."""
        referrer_id, referred_id, _ = active_pair
        await UserRepository(session).update(referrer_id, active_referrals=10)
        await session.commit()

        tier = await referral_service.update_referral_tier(referrer_id)
        assert tier.tier_name == "Silver"

        commission = await referral_service.calculate_commission(
            referred_id, "subscription", Decimal("100")
        )

        assert commission.commission_rate == Decimal("0.06")
        assert commission.commission_amount == Decimal("6.00")

    @pytest.mark.asyncio
    async def test_subscription_default_rate(self, active_pair, referral_service):
        """Without a tier subscriptions pay 10%."""
        _, referred_id, _ = active_pair

        commission = await referral_service.calculate_commission(
            referred_id, "subscription", Decimal("50")
        )

        assert commission.commission_amount == Decimal("5.00")

    @pytest.mark.asyncio
    async def test_unsupported_currency_paid_in_gems(self, session, active_pair, referral_service):
        """Gold earnings are paid in gems without conversion."""
        referrer_id, referred_id, _ = active_pair

        commission = await referral_service.calculate_commission(
            referred_id, "content_monetization", Decimal("100"), earning_currency="gold"
        )

        assert commission.commission_currency == "gems"
        assert commission.earning_currency == "gold"
        referrer = await UserRepository(session).get_by_id(referrer_id)
        # 100 activation bonus + 5 commission
        assert referrer.gems_balance == Decimal("105")
        assert referrer.referral_earnings_gems == Decimal("5")

    @pytest.mark.asyncio
    async def test_non_positive_amount_rejected(self, session, active_pair, referral_service):
        """Zero earnings are invalid input."""
        _, referred_id, _ = active_pair

        with pytest.raises(ValidationError):
            await referral_service.calculate_commission(
                referred_id, "product_sale", 0
            )
        assert await ReferralCommissionRepository(session).count() == 0

    @pytest.mark.asyncio
    async def test_drop_completion_wrapper(self, session, active_pair, referral_service):
        """Drop rewards are tracked in gems with a per-user source id."""
        referrer_id, referred_id, _ = active_pair

        result = await referral_service.tracker.track_drop_completion(
            referred_id, Decimal("40"), drop_id=3
        )

        commission = result["commission"]
        assert commission.commission_currency == "gems"
        assert commission.commission_amount == Decimal("2.00")
        assert commission.source_table == "drop_completions"
        assert commission.source_transaction_id == f"3:{referred_id}"


class TestPayoutFailure:
    """Tests for failed payouts and retries."""

    @pytest.mark.asyncio
    async def test_failed_payout_credits_nothing(self, session, broken_payout, active_pair, referral_service):
        """A failed credit leaves status failed and balances untouched."""
        referrer_id, referred_id, referral_id = active_pair

        commission = await referral_service.calculate_commission(
            referred_id, "product_sale", Decimal("200")
        )

        assert commission.status == CommissionStatus.FAILED.value
        assert commission.attempts == 1
        assert "balance store unavailable" in commission.last_error
        assert commission.paid_at is None

        referrer = await UserRepository(session).get_by_id(referrer_id)
        assert referrer.usd_balance == Decimal("0")
        assert referrer.referral_earnings_usd == Decimal("0")
        referral = await ReferralRepository(session).get_by_id(referral_id)
        assert referral.total_commission_paid == Decimal("0")

    @pytest.mark.asyncio
    async def test_retry_after_recovery_pays(self, session, broken_payout, active_pair, referral_service):
        """Retrying a failed commission pays it once the store is back."""
        referrer_id, referred_id, _ = active_pair
        commission = await referral_service.calculate_commission(
            referred_id, "product_sale", Decimal("200")
        )
        commission_id = commission.id
        broken_payout.undo()

        retried = await referral_service.retry_commission(commission_id)

        assert retried.status == CommissionStatus.PAID.value
        referrer = await UserRepository(session).get_by_id(referrer_id)
        assert referrer.usd_balance == Decimal("10.00")

    @pytest.mark.asyncio
    async def test_paid_commission_not_retryable(self, active_pair, referral_service):
        """Only failed commissions can be retried."""
        _, referred_id, _ = active_pair
        commission = await referral_service.calculate_commission(
            referred_id, "product_sale", Decimal("200")
        )
        commission_id = commission.id

        with pytest.raises(StateConflictError) as exc_info:
            await referral_service.retry_commission(commission_id)
        assert exc_info.value.code == "COMMISSION_NOT_RETRYABLE"

    @pytest.mark.asyncio
    async def test_retry_unknown_commission(self, referral_service):
        """Unknown ids raise NotFoundError."""
        with pytest.raises(NotFoundError):
            await referral_service.retry_commission(9999)

    @pytest.mark.asyncio
    async def test_process_paid_commission_is_noop(self, session, active_pair, referral_service):
        """Processing twice never double-credits."""
        referrer_id, referred_id, _ = active_pair
        commission = await referral_service.calculate_commission(
            referred_id, "product_sale", Decimal("200")
        )

        again = await referral_service.process_commission(commission.id)

        assert again.status == CommissionStatus.PAID.value
        referrer = await UserRepository(session).get_by_id(referrer_id)
        assert referrer.usd_balance == Decimal("10.00")

    @pytest.mark.asyncio
    async def test_attempt_limit_exhausted(self, session, broken_payout, active_pair, referral_service):
        """Commissions out of attempts are left for manual review."""
        _, referred_id, _ = active_pair
        commission = await referral_service.calculate_commission(
            referred_id, "product_sale", Decimal("200")
        )
        commission_id = commission.id
        await ReferralCommissionRepository(session).update(commission_id, attempts=5)
        await session.commit()

        with pytest.raises(StateConflictError):
            await referral_service.ledger.retry_commission(commission_id, max_attempts=5)

    @pytest.mark.asyncio
    async def test_zero_attempt_limit_is_respected(self, broken_payout, active_pair, referral_service):
        """An explicit limit of 0 allows no retries."""
        _, referred_id, _ = active_pair
        commission = await referral_service.calculate_commission(
            referred_id, "product_sale", Decimal("200")
        )
        commission_id = commission.id
        broken_payout.undo()

        with pytest.raises(StateConflictError) as exc_info:
            await referral_service.ledger.retry_commission(commission_id, max_attempts=0)
        assert exc_info.value.code == "COMMISSION_NOT_RETRYABLE"


class TestRetrySweep:
    """Tests for the scheduled commission retry sweep."""

    @pytest.mark.asyncio
    async def test_sweep_pays_failed_commission(self, session, session_maker, broken_payout, active_pair, referral_service):
        """Failed commissions are paid by the next sweep."""
        referrer_id, referred_id, _ = active_pair
        commission = await referral_service.calculate_commission(
            referred_id, "product_sale", Decimal("200")
        )
        commission_id = commission.id
        broken_payout.undo()
        await session.commit()

        stats = await retry_commissions(session_maker)

        assert stats == {"retried": 1, "paid": 1, "failed": 0}
        stored = await ReferralCommissionRepository(session).get_by_id(commission_id)
        assert stored.status == CommissionStatus.PAID.value
        referrer = await UserRepository(session).get_by_id(referrer_id)
        assert referrer.usd_balance == Decimal("10.00")

    @pytest.mark.asyncio
    async def test_sweep_pays_stale_pending_commission(self, session, session_maker, active_pair):
        """Pending commissions abandoned by a crash are paid."""
        referrer_id, referred_id, referral_id = active_pair
        repo = ReferralCommissionRepository(session)
        commission = await repo.create(
            referral_id=referral_id,
            referrer_id=referrer_id,
            referred_user_id=referred_id,
            earning_type="product_sale",
            earning_amount=Decimal("100"),
            earning_currency="usd",
            commission_rate=Decimal("0.05"),
            commission_amount=Decimal("5.00"),
            commission_currency="usd",
            status=CommissionStatus.PENDING.value,
            created_at=utc_now() - timedelta(hours=1),
        )
        commission_id = commission.id
        await session.commit()

        stats = await retry_commissions(session_maker)

        assert stats["paid"] == 1
        stored = await repo.get_by_id(commission_id)
        assert stored.status == CommissionStatus.PAID.value

    @pytest.mark.asyncio
    async def test_sweep_with_nothing_to_do(self, session_maker, active_pair):
        """An empty sweep reports zeros."""
        stats = await retry_commissions(session_maker)

        assert stats == {"retried": 0, "paid": 0, "failed": 0}

    @pytest.mark.asyncio
    async def test_sweep_continues_after_broken_session(self, session, session_maker, monkeypatch, broken_payout, active_pair, referral_service):
        """A database error on one commission does not block the rest of the batch."""
        referrer_id, referred_id, _ = active_pair
        ids = []
        for amount in ("200", "100"):
            commission = await referral_service.calculate_commission(
                referred_id, "product_sale", Decimal(amount)
            )
            ids.append(commission.id)
        broken_payout.undo()
        await session.commit()

        original_retry = CommissionLedger.retry_commission
        calls = []

        async def retry_with_failed_flush(self, commission_id, max_attempts=None):
            calls.append(commission_id)
            if len(calls) == 1:
                # Incomplete row fails the flush and leaves the session needing rollback
                self.session.add(ReferralCommission())
                await self.session.flush()
            return await original_retry(self, commission_id, max_attempts)

        monkeypatch.setattr(CommissionLedger, "retry_commission", retry_with_failed_flush)

        stats = await retry_commissions(session_maker)

        assert stats == {"retried": 2, "paid": 1, "failed": 1}
        repo = ReferralCommissionRepository(session)
        assert (await repo.get_by_id(ids[0])).status == CommissionStatus.FAILED.value
        assert (await repo.get_by_id(ids[1])).status == CommissionStatus.PAID.value
        referrer = await UserRepository(session).get_by_id(referrer_id)
        assert referrer.usd_balance == Decimal("5.00")
