"""
In-app inbox: UserNotification rows per user, with read state.

create_for_record is the dispatcher's write; the rest serve the inbox API (list, counts, mark read, delete).
"""
import logging
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.orm import Session

from bakery_reminders.core.constants import NOTIFICATION_TYPE_TEST
from bakery_reminders.core.errors import PushDeliveryError
from bakery_reminders.models.notification_record import NotificationRecord
from bakery_reminders.models.user_notification import UserNotification
from bakery_reminders.services.messages import RenderedMessage
from bakery_reminders.services.push import PushGatewayClient, PushMessage
from bakery_reminders.services.recipients import get_recipient

logger = logging.getLogger(__name__)

TEST_TITLE = "🧁 Test Notification"
TEST_MESSAGE = "This is a test notification from BakeryApp! If you see this, notifications are working correctly."


def create_for_record(db: Session, record: NotificationRecord, rendered: RenderedMessage) -> UserNotification:
    """Inbox row for a dispatched reminder. Returns the existing row if this record already produced one."""
    existing = (
        db.query(UserNotification)
        .filter(UserNotification.notification_record_id == record.id)
        .first()
    )
    if existing is not None:
        return existing
    row = UserNotification(
        user_id=record.target_user_id,
        order_id=record.order_id,
        notification_record_id=record.id,
        type=record.kind,
        title=rendered.title,
        message=rendered.message,
        data=rendered.data,
        is_read=False,
    )
    db.add(row)
    db.flush()
    return row


def serialize(row: UserNotification) -> dict[str, Any]:
    return {
        "id": row.id,
        "user_id": row.user_id,
        "order_id": row.order_id,
        "type": row.type,
        "title": row.title,
        "message": row.message,
        "data": row.data or {},
        "is_read": bool(row.is_read),
        "read_at": row.read_at.isoformat() if row.read_at else None,
        "created_at": row.created_at.isoformat() if row.created_at else None,
    }


def unread_count(db: Session, user_id: str) -> int:
    return (
        db.query(UserNotification)
        .filter(UserNotification.user_id == user_id, UserNotification.is_read.is_(False))
        .count()
    )


def list_for_user(
    db: Session,
    user_id: str,
    unread_only: bool = False,
    limit: int = 50,
    offset: int = 0,
) -> dict[str, Any]:
    """Newest first, paginated. Returns notifications plus total/unread counts for the badge."""
    q = db.query(UserNotification).filter(UserNotification.user_id == user_id)
    if unread_only:
        q = q.filter(UserNotification.is_read.is_(False))
    total = q.count()
    rows = (
        q.order_by(UserNotification.created_at.desc(), UserNotification.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return {
        "notifications": [serialize(r) for r in rows],
        "pagination": {
            "total": total,
            "unread": unread_count(db, user_id),
            "limit": limit,
            "offset": offset,
        },
    }


def _get_owned(db: Session, notification_id: int, user_id: str) -> UserNotification | None:
    return (
        db.query(UserNotification)
        .filter(UserNotification.id == notification_id, UserNotification.user_id == user_id)
        .first()
    )


def mark_read(db: Session, notification_id: int, user_id: str) -> UserNotification | None:
    row = _get_owned(db, notification_id, user_id)
    if row is None:
        return None
    if not row.is_read:
        row.is_read = True
        row.read_at = datetime.now(timezone.utc)
        db.commit()
    return row


def mark_all_read(db: Session, user_id: str) -> int:
    now = datetime.now(timezone.utc)
    updated = (
        db.query(UserNotification)
        .filter(UserNotification.user_id == user_id, UserNotification.is_read.is_(False))
        .update({UserNotification.is_read: True, UserNotification.read_at: now}, synchronize_session=False)
    )
    db.commit()
    return updated


def delete(db: Session, notification_id: int, user_id: str) -> bool:
    row = _get_owned(db, notification_id, user_id)
    if row is None:
        return False
    db.delete(row)
    db.commit()
    return True


def create_test_notification(db: Session, user_id: str, push_client: PushGatewayClient) -> dict[str, Any]:
    """
    Inbox row plus an immediate push (if the user has a device token). Push failure is reported, not raised:
    the inbox row is already committed.
    """
    row = UserNotification(
        user_id=user_id,
        type=NOTIFICATION_TYPE_TEST,
        title=TEST_TITLE,
        message=TEST_MESSAGE,
        data={"type": NOTIFICATION_TYPE_TEST},
        is_read=False,
    )
    db.add(row)
    db.commit()
    db.refresh(row)

    recipient = get_recipient(db, user_id)
    if recipient is None or not recipient.device_token:
        return {"notification": serialize(row), "pushed": False, "reason": "no_device_token"}
    try:
        push_client.send(
            PushMessage(
                to=recipient.device_token,
                title=row.title,
                body=row.message,
                data={"notificationId": row.id, "type": NOTIFICATION_TYPE_TEST},
            )
        )
    except PushDeliveryError as e:
        logger.warning("Test push to user %s failed: %s", user_id, e)
        return {"notification": serialize(row), "pushed": False, "reason": str(e)}
    return {"notification": serialize(row), "pushed": True}
