"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, Response, status
from sqlalchemy import text

from app.core.config import get_settings
from app.core.database import SessionLocal, close_engine
from app.core.metrics import build_metrics_response, instrument_http_request
from app.modules.availability.router import router as availability_router
from app.modules.identity.router import router as identity_router
from app.modules.sessions.reminders import ReminderScheduler
from app.modules.sessions.router import router as sessions_router
from app.shared.exceptions import register_exception_handlers
from app.shared.time_utils import utc_now
from app.workers.session_reminders_worker import run_cycle as run_reminder_cycle

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown hooks."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    logger.info("Starting %s", settings.app_name)

    scheduler: ReminderScheduler | None = None
    if settings.reminder_scheduler_enabled:
        scheduler = ReminderScheduler(
            run_cycle=run_reminder_cycle,
            interval_seconds=settings.reminder_interval_hours * 3600,
        )
        scheduler.start()
    app.state.reminder_scheduler = scheduler

    try:
        yield
    finally:
        logger.info("Shutting down %s", settings.app_name)
        if scheduler is not None:
            await scheduler.stop()
        await close_engine()


app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    lifespan=lifespan,
)
app.middleware("http")(instrument_http_request)

register_exception_handlers(app)

app.include_router(identity_router, prefix=settings.api_prefix)
app.include_router(availability_router, prefix=settings.api_prefix)
app.include_router(sessions_router, prefix=settings.api_prefix)


@app.get("/health")
async def healthcheck() -> dict[str, str]:
    """Liveness probe endpoint."""
    return {"status": "ok", "service": settings.app_name}


async def _is_database_ready() -> bool:
    try:
        async with SessionLocal() as session:
            await session.execute(text("SELECT 1"))
        return True
    except Exception:
        logger.exception("Database readiness check failed")
        return False


def _reminder_scheduler_state(request: Request) -> str:
    scheduler: ReminderScheduler | None = getattr(request.app.state, "reminder_scheduler", None)
    if scheduler is None:
        return "disabled"
    return "running" if scheduler.running else "stopped"


@app.get("/ready")
async def readiness_check(request: Request) -> dict[str, str]:
    """Readiness probe: database reachable; reports reminder scheduler state."""
    if not await _is_database_ready():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database is not ready",
        )
    return {
        "status": "ready",
        "database": "ok",
        "reminder_scheduler": _reminder_scheduler_state(request),
        "timestamp": utc_now().isoformat(),
    }


@app.get("/metrics", include_in_schema=False)
async def metrics_endpoint(_: Request) -> Response:
    """Prometheus metrics endpoint."""
    return build_metrics_response()
