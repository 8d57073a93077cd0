"""
Health check routes.

/health is liveness; /readiness pings the database and reports the
commission retry scheduler.
"""

from aiohttp import web
from loguru import logger
from sqlalchemy import text

from api.middlewares import SCHEDULER_KEY, get_session

routes = web.RouteTableDef()


def _scheduler_info(request: web.Request) -> dict:
    scheduler = request.app.get(SCHEDULER_KEY)
    if scheduler is None:
        return {"enabled": False}

    jobs = scheduler.get_jobs()
    return {
        "enabled": True,
        "running": scheduler.running,
        "jobs": [
            {
                "id": job.id,
                "name": job.name,
                "next_run_time": (
                    job.next_run_time.isoformat() if job.next_run_time else None
                ),
            }
            for job in jobs
        ],
    }


@routes.get("/health")
async def health_handler(request: web.Request) -> web.Response:
    """Liveness check."""
    return web.json_response({"status": "alive", "alive": True})


@routes.get("/readiness")
async def readiness_handler(request: web.Request) -> web.Response:
    """Readiness check: database reachable and scheduler running if enabled."""
    try:
        await get_session(request).execute(text("SELECT 1"))
        database_ok = True
    except Exception as e:
        logger.error(f"Readiness database check failed: {e}")
        database_ok = False

    scheduler = _scheduler_info(request)
    ready = database_ok and (not scheduler["enabled"] or scheduler["running"])

    return web.json_response(
        {
            "status": "ready" if ready else "not_ready",
            "ready": ready,
            "database": database_ok,
            "scheduler": scheduler,
        },
        status=200 if ready else 503,
    )
