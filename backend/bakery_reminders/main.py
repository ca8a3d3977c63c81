"""
FastAPI app entrypoint.

Inbox API, order reminder hooks, and the reminder dispatch worker (started in lifespan when WORKER_ENABLED).
Run the worker alone with scripts/run_worker.py and set WORKER_ENABLED=false on API-only replicas.
"""
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load .env from backend/ before any app code
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from bakery_reminders.api.routes import notifications, reminders
from bakery_reminders.config import settings
from bakery_reminders.core.logging import configure_logging
from bakery_reminders.scheduler.reminder_dispatch_job import is_worker_running, start_worker, stop_worker

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level, json_logs=settings.log_json)
    if settings.worker_enabled:
        app.state.scheduler = start_worker()
    else:
        logger.info("Reminder worker disabled (WORKER_ENABLED=false); API only")
    yield
    stop_worker(wait=True)


app = FastAPI(title="Bakery Reminders", version="0.1.0", lifespan=lifespan)

# CORS: dev origins + optional CORS_ORIGINS env (comma-separated) for the mobile web build
_cors_origins = [
    "http://localhost:8081",
    "http://127.0.0.1:8081",
    "http://localhost:19006",
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
app.include_router(reminders.router, tags=["reminders"])


@app.get("/health")
def health() -> dict[str, object]:
    return {"status": "ok", "worker_running": is_worker_running()}
