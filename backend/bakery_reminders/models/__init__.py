from bakery_reminders.models.device_token import DeviceToken
from bakery_reminders.models.notification_record import NotificationRecord
from bakery_reminders.models.order import Order
from bakery_reminders.models.user import User
from bakery_reminders.models.user_notification import UserNotification

__all__ = [
    "DeviceToken",
    "NotificationRecord",
    "Order",
    "User",
    "UserNotification",
]
