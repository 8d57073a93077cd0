"""
Application factory.
"""

from aiohttp import web
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy.ext.asyncio import async_sessionmaker

from api.middlewares import (
    SCHEDULER_KEY,
    SESSION_MAKER_KEY,
    error_middleware,
    session_middleware,
)
from api.routes import ROUTE_TABLES


def create_app(
    session_maker: async_sessionmaker,
    scheduler: AsyncIOScheduler | None = None,
) -> web.Application:
    """
    Create the aiohttp application.

    Args:
        session_maker: Session factory used for every request
        scheduler: Background scheduler reported by /readiness

    Returns:
        Configured application
    """
    app = web.Application(middlewares=[error_middleware, session_middleware])
    app[SESSION_MAKER_KEY] = session_maker
    if scheduler is not None:
        app[SCHEDULER_KEY] = scheduler

    for table in ROUTE_TABLES:
        app.router.add_routes(table)

    return app
