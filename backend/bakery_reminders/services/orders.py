"""
Order collaborator: the reminder subsystem's read-only view of an order.

The order service owns orders; scheduling and dispatch only need pickup time, lifecycle status and who to
remind. Soft-deleted orders count as terminal so no reminder fires for them.
"""
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from bakery_reminders.core.constants import TERMINAL_ORDER_STATUSES
from bakery_reminders.models.order import Order


@dataclass(frozen=True)
class OrderSnapshot:
    id: str
    order_no: str
    pickup_at: datetime
    status: str
    created_by: str
    customer_name: str | None = None
    deleted: bool = False

    @property
    def is_terminal(self) -> bool:
        return self.deleted or self.status in TERMINAL_ORDER_STATUSES


def get_order(db: Session, order_id: str) -> OrderSnapshot | None:
    row = db.get(Order, order_id)
    if row is None:
        return None
    return OrderSnapshot(
        id=row.id,
        order_no=row.order_no,
        pickup_at=row.pickup_at,
        status=(row.status or "").upper(),
        created_by=row.created_by,
        customer_name=row.customer_name,
        deleted=row.deleted_at is not None,
    )
