"""
API middlewares.

- error_middleware: maps exceptions to the error envelope
- session_middleware: one AsyncSession per request
"""

from collections.abc import Awaitable, Callable

from aiohttp import web
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from api.responses import error
from app.utils.exceptions import PromorangError, must_log

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]

SESSION_MAKER_KEY = web.AppKey("session_maker", async_sessionmaker)
SCHEDULER_KEY = web.AppKey("scheduler", AsyncIOScheduler)

# Request-scoped session
SESSION = "session"


def get_session(request: web.Request) -> AsyncSession:
    """Get the request's database session."""
    return request[SESSION]


def _format_validation_error(exc: PydanticValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "Invalid value")
    return f"{location}: {message}" if location else message


@web.middleware
async def error_middleware(
    request: web.Request, handler: Handler
) -> web.StreamResponse:
    """
    Translate exceptions into {status: "error", message, code}.

    Domain errors keep their status; pydantic errors are 422; database
    and unexpected errors are 500 and logged with traceback.
    """
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except PromorangError as e:
        if must_log(e):
            logger.error(
                f"Request failed: {e.code}",
                extra={"path": request.path, "error": e.message},
                exc_info=True,
            )
        return error(e.message, e.code, e.status)
    except PydanticValidationError as e:
        return error(_format_validation_error(e), "VALIDATION_ERROR", 422)
    except SQLAlchemyError as e:
        logger.error(
            f"Database error: {e}",
            extra={"path": request.path, "error_type": type(e).__name__},
            exc_info=True,
        )
        return error("Internal server error", "SERVER_ERROR", 500)
    except Exception as e:
        logger.exception(f"Unhandled exception: {e}")
        return error("Internal server error", "SERVER_ERROR", 500)


@web.middleware
async def session_middleware(
    request: web.Request, handler: Handler
) -> web.StreamResponse:
    """
    Open a database session for the request.

    Services own their commits; uncommitted work is rolled back when
    the session closes.
    """
    session_maker = request.app[SESSION_MAKER_KEY]
    async with session_maker() as session:
        request[SESSION] = session
        return await handler(request)
