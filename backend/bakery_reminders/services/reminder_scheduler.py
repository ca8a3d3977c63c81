"""
Reminder scheduling: turn an order's pickup time into NotificationRecords. Records intent only; no delivery.

Called inline by the order service on create and on update. Safe to call any number of times: an existing
(order_id, kind) record is never duplicated. When the pickup time moved, a record that is still SCHEDULED
and unclaimed is moved to the new time, and one whose reminder no longer makes sense is skipped.
"""
import logging
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from bakery_reminders.config import settings
from bakery_reminders.core.constants import (
    KIND_DAY_BEFORE,
    KIND_OVERDUE,
    KIND_SAME_DAY,
    REMINDER_KINDS,
    STATUS_SCHEDULED,
)
from bakery_reminders.core.errors import OrderNotFound
from bakery_reminders.db.types import utc_now
from bakery_reminders.models.notification_record import NotificationRecord
from bakery_reminders.services.notification_store import NotificationStore
from bakery_reminders.services.orders import get_order

logger = logging.getLogger(__name__)


def compute_reminder_times(
    pickup_at: datetime,
    now: datetime,
    tz: ZoneInfo | None = None,
    day_before_hours: int | None = None,
    same_day_hour: int | None = None,
    overdue_after_minutes: int | None = None,
) -> dict[str, datetime]:
    """
    Due time (UTC) per reminder kind. Kinds whose time is not strictly after `now` are left out;
    SAME_DAY is also left out when it would fall at or after the pickup itself.
    OVERDUE is only produced when overdue_after_minutes is given.
    """
    tz = tz or settings.tz
    day_before_hours = settings.day_before_hours if day_before_hours is None else day_before_hours
    same_day_hour = settings.same_day_hour if same_day_hour is None else same_day_hour

    out: dict[str, datetime] = {}

    day_before = pickup_at - timedelta(hours=day_before_hours)
    if day_before > now:
        out[KIND_DAY_BEFORE] = day_before.astimezone(timezone.utc)

    local_pickup = pickup_at.astimezone(tz)
    same_day = local_pickup.replace(hour=same_day_hour, minute=0, second=0, microsecond=0).astimezone(timezone.utc)
    if now < same_day < pickup_at:
        out[KIND_SAME_DAY] = same_day

    if overdue_after_minutes is not None:
        overdue = pickup_at + timedelta(minutes=overdue_after_minutes)
        if overdue > now:
            out[KIND_OVERDUE] = overdue.astimezone(timezone.utc)

    return out


def schedule(db: Session, order_id: str, now: datetime | None = None) -> list[NotificationRecord]:
    """
    Record the reminders for one order. Returns the order's SCHEDULED records after the call.
    Raises OrderNotFound for an unknown order. Terminal orders get nothing.
    """
    now = now or utc_now()
    order = get_order(db, order_id)
    if order is None:
        raise OrderNotFound(order_id)
    if order.is_terminal:
        logger.info("Not scheduling reminders for order %s: status %s", order_id, order.status)
        return []

    times = compute_reminder_times(order.pickup_at, now, overdue_after_minutes=settings.overdue_after_minutes)
    store = NotificationStore(db)
    created = moved = dropped = 0
    try:
        for kind in REMINDER_KINDS:
            when = times.get(kind)
            existing = store.get_for_order_kind(order.id, kind)
            if when is None:
                if existing is not None and existing.status == STATUS_SCHEDULED:
                    if store.supersede(existing.id, "Pickup time changed; reminder no longer applies"):
                        dropped += 1
                continue
            if existing is None:
                if store.insert_if_absent(order.id, order.created_by, kind, when):
                    created += 1
            elif existing.status == STATUS_SCHEDULED and existing.scheduled_for != when:
                if store.reschedule(existing.id, when):
                    moved += 1
        db.commit()
    except Exception:
        db.rollback()
        raise

    if created or moved or dropped:
        logger.info(
            "Scheduled reminders for order %s: %s created, %s moved, %s dropped",
            order_id, created, moved, dropped,
        )
    return [r for r in store.list_for_order(order.id) if r.status == STATUS_SCHEDULED]
