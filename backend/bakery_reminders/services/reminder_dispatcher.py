"""
Dispatch due reminders: claim a batch, then for each record resolve order and recipient, render, write the
in-app notification, push, and finalize.

Each record is processed on its own: an exception is caught at the record boundary, the session is rolled
back, and the record goes back to SCHEDULED for a later tick or to FAILED once attempt_count reached the
limit. The in-app row is committed before the push, and a push failure never undoes it or blocks SENT.

Every write after the claim is guarded on the claim still belonging to this worker. The inbox row commits
together with a lease renewal right before the push; if another worker took the record over after an expired
lease, or cancel() skipped it, this worker pushes nothing and leaves the status alone.

The order-status check here overlaps with cancellation: if cancel() failed or raced the claim,
a reminder for a cancelled/completed order still ends up SKIPPED instead of sent.
"""
import logging
import os
import socket
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from bakery_reminders.config import settings
from bakery_reminders.core.constants import STATUS_FAILED, STATUS_SCHEDULED, STATUS_SENT, STATUS_SKIPPED
from bakery_reminders.core.errors import OrderNotFound, RecipientNotFound
from bakery_reminders.models.notification_record import NotificationRecord
from bakery_reminders.services.messages import render
from bakery_reminders.services.notification_store import NotificationStore
from bakery_reminders.services.orders import get_order
from bakery_reminders.services.push import PushGatewayClient, PushMessage
from bakery_reminders.services.recipients import get_recipient
from bakery_reminders.services.user_notifications import create_for_record

logger = logging.getLogger(__name__)


def default_worker_id() -> str:
    return f"{socket.gethostname()}:{os.getpid()}"


@dataclass
class DispatchSummary:
    claimed: int = 0
    sent: int = 0
    skipped: int = 0
    retried: int = 0
    failed: int = 0
    lost: int = 0  # claim taken over or record finished elsewhere (e.g. cancelled) mid-processing

    def as_dict(self) -> dict[str, int]:
        return {
            "claimed": self.claimed,
            "sent": self.sent,
            "skipped": self.skipped,
            "retried": self.retried,
            "failed": self.failed,
            "lost": self.lost,
        }


def _log_extra(record: NotificationRecord, worker_id: str | None) -> dict:
    return {
        "record_id": record.id,
        "order_id": record.order_id,
        "user_id": record.target_user_id,
        "kind": record.kind,
        "worker_id": worker_id,
    }


def process_record(
    db: Session,
    record: NotificationRecord,
    push_client: PushGatewayClient,
    now: datetime | None = None,
    worker_id: str | None = None,
) -> str | None:
    """
    Deliver one claimed record. Returns SENT or SKIPPED, or None when this worker no longer holds the claim
    (nothing is pushed then). Raises on any failure before SENT.
    """
    worker_id = worker_id or record.claimed_by
    extra = _log_extra(record, worker_id)
    store = NotificationStore(db)
    order = get_order(db, record.order_id)
    if order is None:
        raise OrderNotFound(record.order_id)
    recipient = get_recipient(db, record.target_user_id)

    if order.is_terminal:
        reason = f"Order is {'deleted' if order.deleted else order.status}"
        if not store.mark_skipped(record.id, reason, worker_id=worker_id):
            logger.warning("Reminder %s no longer held by %s; not skipping", record.id, worker_id, extra=extra)
            return None
        logger.info("Skipped %s reminder %s: order %s is %s", record.kind, record.id, order.id, order.status, extra=extra)
        return STATUS_SKIPPED

    if recipient is None:
        raise RecipientNotFound(record.target_user_id)

    rendered = render(record.kind, order)
    create_for_record(db, record, rendered)
    # Inbox row and lease renewal commit together; a lost claim drops both and nothing is pushed
    if not store.renew_claim(record.id, worker_id, now):
        db.rollback()
        logger.warning("Reminder %s claim lost before push; leaving it to its current holder", record.id, extra=extra)
        return None
    db.commit()

    if recipient.device_token:
        try:
            push_client.send(
                PushMessage(
                    to=recipient.device_token,
                    title=rendered.title,
                    body=rendered.message,
                    data=rendered.data,
                )
            )
        except Exception as e:
            logger.warning(
                "Push for reminder %s (order %s) failed; in-app notification kept: %s", record.id, order.id, e, extra=extra
            )

    if not store.mark_sent(record.id, now, worker_id=worker_id):
        logger.warning("Reminder %s delivered but no longer held by %s; status left to its holder", record.id, worker_id, extra=extra)
        return None
    logger.info("Sent %s reminder %s for order %s to user %s", record.kind, record.id, order.id, recipient.id, extra=extra)
    return STATUS_SENT


def process_batch(
    db: Session,
    records: list[NotificationRecord],
    push_client: PushGatewayClient,
    now: datetime | None = None,
    max_attempts: int | None = None,
    worker_id: str | None = None,
) -> DispatchSummary:
    """Process already-claimed records independently of one another."""
    max_attempts = max_attempts or settings.dispatch_max_attempts
    store = NotificationStore(db)
    summary = DispatchSummary(claimed=len(records))
    for record in records:
        holder = worker_id or record.claimed_by
        extra = _log_extra(record, holder)
        record_id = record.id
        attempt = record.attempt_count
        try:
            outcome = process_record(db, record, push_client, now, holder)
        except Exception as e:
            db.rollback()
            error = str(e) or type(e).__name__
            try:
                status = store.release_or_fail(record_id, error, max_attempts, worker_id=holder)
            except Exception:
                db.rollback()
                logger.exception("Could not record failure for reminder %s", record_id, extra=extra)
                continue
            if status == STATUS_FAILED:
                summary.failed += 1
                logger.error("Reminder %s failed permanently after %s attempts: %s", record_id, attempt, error, extra=extra)
            elif status == STATUS_SCHEDULED:
                summary.retried += 1
                logger.warning("Reminder %s attempt %s failed, will retry: %s", record_id, attempt, error, extra=extra)
            else:
                summary.lost += 1
                logger.warning("Reminder %s attempt %s failed after its claim was lost: %s", record_id, attempt, error, extra=extra)
            continue
        if outcome == STATUS_SENT:
            summary.sent += 1
        elif outcome == STATUS_SKIPPED:
            summary.skipped += 1
        else:
            summary.lost += 1
    return summary


def dispatch_due_reminders(
    db: Session,
    push_client: PushGatewayClient,
    now: datetime | None = None,
    limit: int | None = None,
    max_attempts: int | None = None,
    worker_id: str | None = None,
) -> DispatchSummary:
    """
    One tick: claim up to `limit` due records and process them.
    `now` pins the clock for the whole tick; left as None, every step (claim, lease renewal, sent_at) reads the
    current time so a slow batch keeps renewing its leases.
    """
    limit = limit or settings.dispatch_batch_size
    worker_id = worker_id or default_worker_id()
    records = NotificationStore(db).claim_due_batch(limit, now, worker_id)
    if not records:
        return DispatchSummary()
    summary = process_batch(db, records, push_client, now, max_attempts, worker_id)
    logger.info(
        "Dispatch tick: %s claimed, %s sent, %s skipped, %s retrying, %s failed, %s lost",
        summary.claimed, summary.sent, summary.skipped, summary.retried, summary.failed, summary.lost,
        extra={"worker_id": worker_id},
    )
    return summary
