"""User notification: the in-app inbox row, with persisted read state.

Written once a reminder is dispatched (or for test/general messages). Read-state changes never touch the
scheduling record. notification_record_id is unique so a retried dispatch cannot create a second inbox row.
data: JSON payload for deep links (orderId, orderNumber, type).
"""
from sqlalchemy import JSON, Boolean, Column, Index, Integer, String, Text, false

from bakery_reminders.db.base import Base
from bakery_reminders.db.types import UTCDateTime, utc_now


class UserNotification(Base):
    __tablename__ = "user_notifications"
    __table_args__ = (
        Index("ix_user_notifications_user_read_created", "user_id", "is_read", "created_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)
    order_id = Column(String(64), nullable=True, index=True)
    notification_record_id = Column(Integer, nullable=True, unique=True)
    type = Column(String(32), nullable=False, default="GENERAL")
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    data = Column(JSON, nullable=True)
    is_read = Column(Boolean, nullable=False, default=False, server_default=false())
    read_at = Column(UTCDateTime(), nullable=True)
    created_at = Column(UTCDateTime(), default=utc_now, nullable=False)
