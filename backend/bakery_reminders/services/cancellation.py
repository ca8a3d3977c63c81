"""
Cancel outstanding reminders when an order is cancelled, completed or soft-deleted.

The order service calls this right after the lifecycle transition. The dispatcher also re-checks the order
status before sending, so a reminder that slips past a failed cancel still ends up SKIPPED rather than sent.
"""
import logging

from sqlalchemy.orm import Session

from bakery_reminders.services.notification_store import NotificationStore

logger = logging.getLogger(__name__)


def cancel(db: Session, order_id: str, reason: str = "Order no longer awaiting pickup") -> int:
    """SCHEDULED -> SKIPPED for every record of the order. Idempotent; returns the number of records changed."""
    try:
        count = NotificationStore(db).skip_pending_for_order(order_id, reason)
        db.commit()
    except Exception:
        db.rollback()
        raise
    if count:
        logger.info("Cancelled %s pending reminders for order %s", count, order_id)
    return count


def cancel_quietly(db: Session, order_id: str) -> int:
    """For callers whose order transition must succeed regardless: log and return 0 on failure."""
    try:
        return cancel(db, order_id)
    except Exception as e:
        logger.warning("Cancelling reminders for order %s failed (dispatcher will skip them): %s", order_id, e, exc_info=True)
        return 0
