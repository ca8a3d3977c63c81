"""Scheduled reminder for one order: when it is due, and what happened when it was dispatched.

One row per (order_id, kind). status moves SCHEDULED -> SENT | FAILED | SKIPPED and never back out of a
terminal state. claimed_by/claimed_at mark a SCHEDULED row a worker is currently processing; a claim older
than the lease is treated as abandoned (worker crashed) and the row becomes claimable again.
Rows are never deleted (audit/history).
"""
from sqlalchemy import Column, Index, Integer, String, Text, UniqueConstraint

from bakery_reminders.core.constants import STATUS_SCHEDULED
from bakery_reminders.db.base import Base
from bakery_reminders.db.types import UTCDateTime, utc_now


class NotificationRecord(Base):
    __tablename__ = "notification_records"
    __table_args__ = (
        UniqueConstraint("order_id", "kind", name="uq_notification_records_order_kind"),
        Index("ix_notification_records_status_scheduled_for", "status", "scheduled_for"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String(64), nullable=False, index=True)
    target_user_id = Column(String(64), nullable=False, index=True)
    kind = Column(String(16), nullable=False)  # DAY_BEFORE | SAME_DAY | OVERDUE
    scheduled_for = Column(UTCDateTime(), nullable=False)
    status = Column(String(16), nullable=False, default=STATUS_SCHEDULED, server_default=STATUS_SCHEDULED)
    attempt_count = Column(Integer, nullable=False, default=0, server_default="0")
    error = Column(Text, nullable=True)
    sent_at = Column(UTCDateTime(), nullable=True)
    claimed_by = Column(String(128), nullable=True)
    claimed_at = Column(UTCDateTime(), nullable=True)
    created_at = Column(UTCDateTime(), default=utc_now, nullable=False)
    updated_at = Column(UTCDateTime(), default=utc_now, onupdate=utc_now, nullable=False)

    def __repr__(self) -> str:
        return f"<NotificationRecord {self.id} order={self.order_id} kind={self.kind} status={self.status}>"
