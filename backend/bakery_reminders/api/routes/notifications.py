"""
User notifications API: the in-app inbox with persisted read state.

User identified by X-User-Id header or ?user_id=.
Supports: list (unread filter, pagination), unread count, mark one read, mark all read, delete, test send.
"""
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from bakery_reminders.api.deps import current_user_id, get_push_client
from bakery_reminders.core.constants import INBOX_DEFAULT_LIMIT, INBOX_MAX_LIMIT
from bakery_reminders.db.session import get_db
from bakery_reminders.services import user_notifications
from bakery_reminders.services.push import PushGatewayClient

router = APIRouter()
logger = logging.getLogger(__name__)


# --- List ---


@router.get("/notifications")
def list_notifications(
    db: Session = Depends(get_db),
    user_id: str = Depends(current_user_id),
    unread_only: bool = Query(False),
    limit: int = Query(INBOX_DEFAULT_LIMIT, ge=1, le=INBOX_MAX_LIMIT),
    offset: int = Query(0, ge=0),
) -> dict[str, Any]:
    """List notifications for the user, newest first. unread_only=true for the unread view."""
    return user_notifications.list_for_user(db, user_id, unread_only=unread_only, limit=limit, offset=offset)


@router.get("/notifications/unread-count")
def get_unread_count(
    db: Session = Depends(get_db),
    user_id: str = Depends(current_user_id),
) -> dict[str, int]:
    return {"count": user_notifications.unread_count(db, user_id)}


# --- Mark read ---


@router.patch("/notifications/{notification_id}/read")
def mark_notification_read(
    notification_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(current_user_id),
) -> dict[str, Any]:
    row = user_notifications.mark_read(db, notification_id, user_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Notification not found")
    return user_notifications.serialize(row)


@router.post("/notifications/mark-all-read")
def mark_all_read(
    db: Session = Depends(get_db),
    user_id: str = Depends(current_user_id),
) -> dict[str, Any]:
    count = user_notifications.mark_all_read(db, user_id)
    return {"ok": True, "user_id": user_id, "marked_count": count}


# --- Delete ---


@router.delete("/notifications/{notification_id}")
def delete_notification(
    notification_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(current_user_id),
) -> dict[str, Any]:
    if not user_notifications.delete(db, notification_id, user_id):
        raise HTTPException(status_code=404, detail="Notification not found")
    return {"ok": True, "id": notification_id}


# --- Test send ---


@router.post("/notifications/test")
def send_test_notification(
    db: Session = Depends(get_db),
    user_id: str = Depends(current_user_id),
    push_client: PushGatewayClient = Depends(get_push_client),
) -> dict[str, Any]:
    """Create a test inbox row and push it right away if the user has a registered device."""
    return user_notifications.create_test_notification(db, user_id, push_client)
