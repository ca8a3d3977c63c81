"""Order as seen by the reminder subsystem. Owned and migrated by the order service; read-only here."""
from sqlalchemy import Column, String

from bakery_reminders.db.base import Base
from bakery_reminders.db.types import UTCDateTime


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(64), primary_key=True)
    order_no = Column(String(32), nullable=False)
    pickup_at = Column(UTCDateTime(), nullable=False)
    status = Column(String(16), nullable=False)  # PENDING | IN_PROGRESS | READY | COMPLETED | CANCELLED
    created_by = Column(String(64), nullable=False)
    customer_name = Column(String(255), nullable=True)
    deleted_at = Column(UTCDateTime(), nullable=True)  # soft delete
