#!/usr/bin/env python3
"""
Run the reminder dispatcher standalone (no API). Use with WORKER_ENABLED=false on the API replicas.
Run: cd backend && poetry run python scripts/run_worker.py [--once] [--interval 15] [--limit 20]
"""
import argparse
import logging
import sys
import time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from bakery_reminders.config import settings
from bakery_reminders.core.logging import configure_logging
from bakery_reminders.db.session import SessionLocal
from bakery_reminders.services.push import PushGatewayClient
from bakery_reminders.services.reminder_dispatcher import default_worker_id, dispatch_due_reminders

logger = logging.getLogger("reminder_worker")


def main() -> None:
    parser = argparse.ArgumentParser(description="Claim and dispatch due pickup reminders.")
    parser.add_argument("--once", action="store_true", help="Run one batch and exit.")
    parser.add_argument("--interval", type=int, default=settings.dispatch_interval_seconds, help="Polling interval in seconds.")
    parser.add_argument("--limit", type=int, default=settings.dispatch_batch_size, help="Max reminders per batch.")
    args = parser.parse_args()

    configure_logging(settings.log_level, json_logs=settings.log_json)
    worker_id = default_worker_id()
    push_client = PushGatewayClient()
    logger.info("Reminder worker %s polling every %ss (batch %s)", worker_id, args.interval, args.limit)

    while True:
        try:
            with SessionLocal() as db:
                summary = dispatch_due_reminders(db, push_client, limit=args.limit, worker_id=worker_id)
        except Exception as e:
            logger.exception("Reminder dispatch batch failed: %s", e)
            summary = None
        if args.once:
            break
        # A full batch means more may be due; go again without sleeping
        if summary is None or summary.claimed < args.limit:
            time.sleep(args.interval)


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        logger.info("Reminder worker stopped")
