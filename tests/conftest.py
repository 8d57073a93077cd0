"""Pytest configuration and shared fixtures for all tests."""

import itertools
import os
import sys
from datetime import timedelta
from decimal import Decimal
from pathlib import Path

# Minimal environment for settings, set before any app import
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("INTERNAL_API_TOKEN", "test-internal-token")
os.environ.setdefault("LOG_FILE", "")
os.environ.setdefault("COMMISSION_RETRY_ENABLED", "false")

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.config.database import create_session_maker  # noqa: E402
from app.models import Base, User  # noqa: E402
from app.models.advertiser_account import AdvertiserAccount  # noqa: E402
from app.models.coupon import Coupon  # noqa: E402
from app.models.referral_code import ReferralCode  # noqa: E402
from app.models.referral_tier import ReferralTier  # noqa: E402
from app.repositories.coupon_repository import CouponRepository  # noqa: E402
from app.repositories.referral_code_repository import (  # noqa: E402
    ReferralCodeRepository,
)
from app.repositories.referral_tier_repository import (  # noqa: E402
    ReferralTierRepository,
)
from app.repositories.user_repository import UserRepository  # noqa: E402
from app.services.referral_service import ReferralService  # noqa: E402
from app.services.team import AdvertiserTeamService  # noqa: E402
from app.utils.datetime_utils import utc_now  # noqa: E402


@pytest.fixture
async def engine():
    """In-memory SQLite engine shared by every session of a test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    """Session factory bound to the test engine."""
    return create_session_maker(engine)


@pytest.fixture
async def session(session_maker):
    """Database session for a test."""
    async with session_maker() as session:
        yield session


@pytest.fixture
def referral_service(session):
    """ReferralService on the test session."""
    return ReferralService(session)


@pytest.fixture
def team_service(session):
    """AdvertiserTeamService on the test session."""
    return AdvertiserTeamService(session)


@pytest.fixture
async def tiers(session) -> list[ReferralTier]:
    """Default Bronze..Platinum tiers."""
    repo = ReferralTierRepository(session)
    await repo.seed_defaults()
    await session.commit()
    return await repo.get_active_tiers()


@pytest.fixture
def make_user(session):
    """
    User factory.

    Usage:
        user = await make_user(points_balance=Decimal("150"))
    """
    counter = itertools.count(1)

    async def _make(**overrides) -> User:
        n = next(counter)
        data = {
            "username": f"user{n}",
            "display_name": f"User {n}",
            "email": f"user{n}@example.com",
        }
        data.update(overrides)
        user = await UserRepository(session).create(**data)
        await session.commit()
        return user

    return _make


@pytest.fixture
def make_code(session):
    """Referral code factory with explicit code text."""

    async def _make(user_id: int, code: str, **overrides) -> ReferralCode:
        referral_code = await ReferralCodeRepository(session).create(
            user_id=user_id, code=code, **overrides
        )
        await UserRepository(session).set_primary_referral_code(user_id, code)
        await session.commit()
        return referral_code

    return _make


@pytest.fixture
def make_account(team_service):
    """Advertiser account factory (creator becomes owner)."""

    async def _make(owner_id: int, name: str = "Acme Coffee") -> AdvertiserAccount:
        return await team_service.create_advertiser_account(owner_id, name)

    return _make


@pytest.fixture
def make_coupon(session):
    """Coupon factory; defaults to an active 10% coupon valid for a day."""

    async def _make(code: str = "SAVE10", **overrides) -> Coupon:
        now = utc_now()
        data = {
            "code": code,
            "discount_type": "percentage",
            "discount_value": Decimal("10"),
            "max_uses_per_user": 1,
            "starts_at": now - timedelta(days=1),
            "expires_at": now + timedelta(days=1),
            "is_active": True,
        }
        data.update(overrides)
        coupon = await CouponRepository(session).create(**data)
        await session.commit()
        return coupon

    return _make


@pytest.fixture
def qualify(session):
    """Give a referred user enough points and drops to activate."""

    async def _qualify(user_id: int) -> None:
        await UserRepository(session).update(
            user_id, points_balance=Decimal("150"), drops_completed=1
        )
        await session.commit()

    return _qualify


@pytest.fixture
async def referred_pair(make_user, make_code, referral_service):
    """
    Referrer with code PROMO-AB12 and a referred user attributed to it.

    Returns:
        Tuple (referrer_id, referred_id, referral_id)
    """
    referrer = await make_user(username="alice")
    referred = await make_user(username="bob")
    await make_code(referrer.id, "PROMO-AB12")
    referral = await referral_service.attribute(referred.id, "PROMO-AB12")
    return referrer.id, referred.id, referral.id


@pytest.fixture
async def active_pair(qualify, referred_pair, referral_service):
    """referred_pair with the referral already activated."""
    referrer_id, referred_id, referral_id = referred_pair
    await qualify(referred_id)
    await referral_service.evaluate_activation(referred_id)
    return referred_pair
