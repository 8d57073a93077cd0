"""
Tests for the service unit-of-work decorators.
"""

from unittest.mock import AsyncMock

import pytest

from app.services.base_service import BaseService, log_operation, transaction
from app.utils.exceptions import SelfReferral


class DummyService(BaseService):
    """Service exercising the decorators."""

    @transaction
    async def succeed(self, value):
        return value * 2

    @transaction
    async def reject(self):
        raise SelfReferral()

    @transaction
    async def crash(self):
        raise RuntimeError("disk full")

    @log_operation
    async def report(self):
        return {"ok": True}


@pytest.fixture
def session():
    """Session double recording commits and rollbacks."""
    session = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    return session


class TestTransaction:
    """Tests for @transaction."""

    @pytest.mark.asyncio
    async def test_commits_on_success(self, session):
        """Return value passes through and the session commits."""
        assert await DummyService(session).succeed(21) == 42

        session.commit.assert_awaited_once()
        session.rollback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rolls_back_domain_error(self, session):
        """Business rejections roll back and propagate unchanged."""
        with pytest.raises(SelfReferral):
            await DummyService(session).reject()

        session.rollback.assert_awaited_once()
        session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rolls_back_unexpected_error(self, session):
        """Unexpected errors roll back and propagate."""
        with pytest.raises(RuntimeError, match="disk full"):
            await DummyService(session).crash()

        session.rollback.assert_awaited_once()
        session.commit.assert_not_awaited()


class TestLogOperation:
    """Tests for @log_operation."""

    @pytest.mark.asyncio
    async def test_returns_result_without_touching_session(self, session):
        """Timing wrapper neither commits nor rolls back."""
        assert await DummyService(session).report() == {"ok": True}

        session.commit.assert_not_awaited()
        session.rollback.assert_not_awaited()

    def test_preserves_method_name(self):
        """functools.wraps keeps the wrapped name for log messages."""
        assert DummyService.report.__name__ == "report"
        assert DummyService.succeed.__name__ == "succeed"
