"""
Runs every DISPATCH_INTERVAL_SECONDS: claim due reminders and dispatch them.

One batch in flight per process: a tick that finds the previous one still running is skipped, not queued.
Across processes, safety comes from the claim transaction, so several workers can run side by side.
A tick-level failure (e.g. database unreachable) is logged and the next tick tries again.
"""
import logging
import threading

from apscheduler.schedulers.background import BackgroundScheduler

from bakery_reminders.config import settings
from bakery_reminders.core.constants import REMINDER_DISPATCH_JOB_ID
from bakery_reminders.db.session import SessionLocal
from bakery_reminders.services.push import PushGatewayClient
from bakery_reminders.services.reminder_dispatcher import DispatchSummary, default_worker_id, dispatch_due_reminders

logger = logging.getLogger(__name__)

# Single slot: at most one batch in flight per process, whichever thread runs the tick
_tick_slot = threading.Semaphore(1)
_lifecycle_lock = threading.Lock()
_scheduler: BackgroundScheduler | None = None
_worker_id = default_worker_id()


def run_reminder_dispatch_job(
    session_factory=None,
    push_client: PushGatewayClient | None = None,
) -> DispatchSummary | None:
    """One tick. Returns None when skipped (previous tick still running) or when the tick failed."""
    if not _tick_slot.acquire(blocking=False):
        logger.debug("Reminder dispatch tick skipped: previous tick still in flight")
        return None
    try:
        db = (session_factory or SessionLocal)()
        try:
            return dispatch_due_reminders(db, push_client or PushGatewayClient(), worker_id=_worker_id)
        finally:
            db.close()
    except Exception as e:
        logger.exception("Reminder dispatch tick failed: %s", e)
        return None
    finally:
        _tick_slot.release()


def start_worker(scheduler: BackgroundScheduler | None = None) -> BackgroundScheduler:
    """Start the interval job. Idempotent; called once at process startup."""
    global _scheduler
    with _lifecycle_lock:
        if _scheduler is not None and _scheduler.running:
            return _scheduler
        _scheduler = scheduler or BackgroundScheduler()
        _scheduler.add_job(
            run_reminder_dispatch_job,
            "interval",
            seconds=settings.dispatch_interval_seconds,
            id=REMINDER_DISPATCH_JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        if not _scheduler.running:
            _scheduler.start()
        logger.info(
            "Reminder worker %s started: every %ss, batch %s, max attempts %s",
            _worker_id,
            settings.dispatch_interval_seconds,
            settings.dispatch_batch_size,
            settings.dispatch_max_attempts,
        )
        return _scheduler


def stop_worker(wait: bool = True) -> None:
    """Stop the interval job on graceful shutdown. With wait=True an in-flight tick finishes first."""
    global _scheduler
    with _lifecycle_lock:
        if _scheduler is None:
            return
        if _scheduler.running:
            _scheduler.shutdown(wait=wait)
        _scheduler = None
        logger.info("Reminder worker %s stopped", _worker_id)


def is_worker_running() -> bool:
    return _scheduler is not None and _scheduler.running
