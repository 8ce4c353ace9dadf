"""
FastAPI app entrypoint.

Payday reminders and the notification pipeline: the service container is built in the
lifespan, persisted reminders are re-armed, and the backstop sweep runs on the scheduler.
"""
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load .env from the repo root before any app code
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from payday_notify.api.routes import events, notifications, preferences, push, reminders
from payday_notify.config import settings
from payday_notify.core.constants import REMINDER_SWEEP_JOB_ID
from payday_notify.scheduler.reminder_sweep_job import run_reminder_sweep_job
from payday_notify.services.container import build_services

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    services = build_services(settings)
    app.state.services = services
    if settings.enable_scheduler:
        services.scheduler.add_job(
            run_reminder_sweep_job,
            "interval",
            seconds=settings.reminder_sweep_seconds,
            args=[services.reminders],
            id=REMINDER_SWEEP_JOB_ID,
            max_instances=1,
            coalesce=True,
        )
        services.scheduler.start()
        try:
            services.reminders.restore()
        except Exception as e:
            logger.warning("Restoring payday reminders on startup failed: %s", e, exc_info=True)
    else:
        logger.info("Scheduler disabled (ENABLE_SCHEDULER=false); payday reminders will not fire")
    logger.info("Backend ready (storage=%s)", settings.storage_backend)
    yield
    services.shutdown()


app = FastAPI(title="Payday Notify", version="0.1.0", lifespan=lifespan)

# CORS: dev origins + optional CORS_ORIGINS env (comma-separated) for the production frontend
_cors_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
_cors_extra = os.getenv("CORS_ORIGINS", "")
if _cors_extra:
    _cors_origins.extend(o.strip() for o in _cors_extra.split(",") if o.strip())
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(notifications.router, tags=["notifications"])
app.include_router(preferences.router, tags=["preferences"])
app.include_router(push.router, tags=["push"])
app.include_router(reminders.router, tags=["reminders"])
app.include_router(events.router, tags=["events"])


@app.get("/", include_in_schema=False)
def root():
    """Root: point to API docs and health."""
    return {"message": "Payday Notify API", "docs": "/docs", "health": "/health"}


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
