from zoneinfo import ZoneInfo

import pytest

from bakery_reminders.core.constants import KIND_DAY_BEFORE, KIND_OVERDUE, KIND_SAME_DAY
from bakery_reminders.services.messages import format_pickup_time, render
from bakery_reminders.services.orders import OrderSnapshot

from conftest import utc


ORDER = OrderSnapshot(
    id="order-1",
    order_no="1042",
    pickup_at=utc(2026, 3, 10, 14, 30),
    status="PENDING",
    created_by="user-1",
)


def test_day_before_message():
    rendered = render(KIND_DAY_BEFORE, ORDER)
    assert rendered.title == "📅 Order Pickup Reminder"
    assert rendered.message == "Your order #1042 is ready for pickup tomorrow at 02:30 PM"
    assert rendered.data == {"orderId": "order-1", "orderNumber": "1042", "type": KIND_DAY_BEFORE}


def test_same_day_message():
    rendered = render(KIND_SAME_DAY, ORDER)
    assert rendered.title == "🔔 Pickup Today!"
    assert rendered.message == "Today is pickup day! Order #1042 is ready at 02:30 PM"


def test_overdue_message():
    rendered = render(KIND_OVERDUE, ORDER)
    assert rendered.title == "⚠️ Overdue Order"
    assert "#1042" in rendered.message


def test_pickup_time_in_business_timezone():
    assert format_pickup_time(ORDER.pickup_at, ZoneInfo("America/Los_Angeles")) == "07:30 AM"


def test_unknown_kind_raises():
    with pytest.raises(ValueError):
        render("BOGUS", ORDER)
