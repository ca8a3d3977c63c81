"""
Order hooks: the order service calls these on order create/update (schedule) and on
cancel/complete/soft-delete (cancel). GET lists an order's reminder records for inspection.
"""
import logging
from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bakery_reminders.core.errors import ReminderError, domain_error_to_http
from bakery_reminders.db.session import get_db
from bakery_reminders.models.notification_record import NotificationRecord
from bakery_reminders.services import cancellation, reminder_scheduler
from bakery_reminders.services.notification_store import NotificationStore

router = APIRouter()
logger = logging.getLogger(__name__)


def _record_dict(r: NotificationRecord) -> dict[str, Any]:
    return {
        "id": r.id,
        "order_id": r.order_id,
        "target_user_id": r.target_user_id,
        "kind": r.kind,
        "status": r.status,
        "scheduled_for": r.scheduled_for.isoformat() if r.scheduled_for else None,
        "attempt_count": r.attempt_count,
        "error": r.error,
        "sent_at": r.sent_at.isoformat() if r.sent_at else None,
    }


@router.post("/orders/{order_id}/reminders")
def schedule_reminders(order_id: str, db: Session = Depends(get_db)) -> dict[str, Any]:
    try:
        records = reminder_scheduler.schedule(db, order_id)
    except ReminderError as e:
        raise domain_error_to_http(e)
    return {"order_id": order_id, "scheduled": [_record_dict(r) for r in records]}


@router.post("/orders/{order_id}/reminders/cancel")
def cancel_reminders(order_id: str, db: Session = Depends(get_db)) -> dict[str, Any]:
    count = cancellation.cancel(db, order_id)
    return {"order_id": order_id, "skipped_count": count}


@router.get("/orders/{order_id}/reminders")
def list_reminders(order_id: str, db: Session = Depends(get_db)) -> dict[str, Any]:
    records = NotificationStore(db).list_for_order(order_id)
    return {"order_id": order_id, "reminders": [_record_dict(r) for r in records]}
