"""
Service base.

Every referral, team and coupon service wraps one AsyncSession handed in
by the caller (request middleware, job or script). Repositories only
flush; services decide where a unit of work commits.
"""

import functools
import time
from collections.abc import Callable
from typing import Any, TypeVar

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.utils.exceptions import PromorangError

T = TypeVar("T")


class BaseService:
    """Session holder with a logger bound to the concrete service name."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize service.

        Args:
            session: Request- or job-scoped session
        """
        self.session = session
        self.logger = logger.bind(service=self.__class__.__name__)

    async def commit(self) -> None:
        """Commit the session's transaction."""
        await self.session.commit()

    async def rollback(self) -> None:
        """Roll back the session's transaction."""
        await self.session.rollback()


def transaction(func: Callable[..., T]) -> Callable[..., T]:
    """
    Run a service method as one unit of work.

    Commits when the method returns. On any exception everything the
    method flushed is rolled back and the exception propagates.
    PromorangError subclasses (SelfReferral, CouponExpired, ...) are
    business outcomes and logged at INFO; anything else is logged at
    ERROR with traceback.

    Example:
        class ReferralAttributionLedger(BaseService):
            @transaction
            async def attribute(self, referred_id, code, metadata=None):
                ...
    """

    @functools.wraps(func)
    async def wrapper(self: BaseService, *args: Any, **kwargs: Any) -> Any:
        try:
            result = await func(self, *args, **kwargs)
            await self.commit()
            return result
        except PromorangError as e:
            await self.rollback()
            self.logger.info(
                f"{func.__name__} rejected: {e.code}",
                extra={"code": e.code, "error": e.message},
            )
            raise
        except Exception as e:
            await self.rollback()
            self.logger.error(
                f"{func.__name__} rolled back",
                extra={"error": str(e), "error_type": type(e).__name__},
                exc_info=True,
            )
            raise

    return wrapper


def log_operation(func: Callable[..., T]) -> Callable[..., T]:
    """
    Log how long a service call took.

    Used on the heavier read paths (referral dashboard, coupon
    analytics). Failures are logged at WARNING and re-raised.
    """

    @functools.wraps(func)
    async def wrapper(self: BaseService, *args: Any, **kwargs: Any) -> Any:
        started = time.monotonic()
        try:
            result = await func(self, *args, **kwargs)
        except Exception as e:
            self.logger.warning(
                f"{func.__name__} failed after "
                f"{time.monotonic() - started:.3f}s",
                extra={"error": str(e)},
            )
            raise

        self.logger.debug(
            f"{func.__name__} took {time.monotonic() - started:.3f}s"
        )
        return result

    return wrapper
