"""
API main entry point.

Runs the aiohttp application with the commission retry scheduler in
the same event loop.
"""

import asyncio
import sys
from pathlib import Path

from aiohttp import web
from loguru import logger


# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from api.app import create_app  # noqa: E402
from api.initialization.logging import setup_logging  # noqa: E402
from app.config.database import async_session_maker, engine  # noqa: E402
from app.config.settings import settings  # noqa: E402
from jobs.scheduler import create_scheduler  # noqa: E402


async def main() -> None:
    """Initialize and run the API."""
    setup_logging()

    scheduler = create_scheduler(async_session_maker)
    scheduler.start()

    app = create_app(async_session_maker, scheduler=scheduler)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, settings.api_host, settings.api_port)
    await site.start()

    logger.info(f"API listening on {settings.api_host}:{settings.api_port}")
    logger.info(f"  - Health: http://{settings.api_host}:{settings.api_port}/health")

    try:
        await asyncio.Event().wait()
    finally:
        logger.info("Shutting down API...")
        scheduler.shutdown(wait=False)
        await runner.cleanup()
        await engine.dispose()
        logger.info("API stopped")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        logger.info("API stopped by user")
