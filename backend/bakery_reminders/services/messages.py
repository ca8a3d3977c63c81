"""Per-kind reminder templates: title + message from the order number and pickup time."""
from dataclasses import dataclass
from datetime import datetime
from zoneinfo import ZoneInfo

from bakery_reminders.config import settings
from bakery_reminders.core.constants import KIND_DAY_BEFORE, KIND_OVERDUE, KIND_SAME_DAY
from bakery_reminders.services.orders import OrderSnapshot

TITLES = {
    KIND_DAY_BEFORE: "📅 Order Pickup Reminder",
    KIND_SAME_DAY: "🔔 Pickup Today!",
    KIND_OVERDUE: "⚠️ Overdue Order",
}

BODIES = {
    KIND_DAY_BEFORE: "Your order #{order_no} is ready for pickup tomorrow at {pickup_time}",
    KIND_SAME_DAY: "Today is pickup day! Order #{order_no} is ready at {pickup_time}",
    KIND_OVERDUE: "Order #{order_no} was due for pickup at {pickup_time} and has not been collected yet",
}


@dataclass(frozen=True)
class RenderedMessage:
    title: str
    message: str
    data: dict


def format_pickup_time(pickup_at: datetime, tz: ZoneInfo | None = None) -> str:
    """12-hour clock in the business timezone, e.g. '02:30 PM'."""
    return pickup_at.astimezone(tz or settings.tz).strftime("%I:%M %p")


def render(kind: str, order: OrderSnapshot, tz: ZoneInfo | None = None) -> RenderedMessage:
    """Raises ValueError for an unknown kind; the dispatcher treats that like any processing failure."""
    if kind not in TITLES:
        raise ValueError(f"No template for reminder kind {kind!r}")
    body = BODIES[kind].format(
        order_no=order.order_no,
        pickup_time=format_pickup_time(order.pickup_at, tz),
        customer_name=order.customer_name or "",
    )
    return RenderedMessage(
        title=TITLES[kind],
        message=body,
        data={"orderId": order.id, "orderNumber": order.order_no, "type": kind},
    )
