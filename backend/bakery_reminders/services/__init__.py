from bakery_reminders.services.cancellation import cancel, cancel_quietly
from bakery_reminders.services.reminder_dispatcher import dispatch_due_reminders
from bakery_reminders.services.reminder_scheduler import schedule

__all__ = ["schedule", "cancel", "cancel_quietly", "dispatch_due_reminders"]
