"""
Centralized constants for the reminder scheduler and dispatcher.

Change job IDs, kinds or status names here instead of scattering literals across services and routes.
Timing and batch sizes come from settings (env-driven).
"""

# Scheduler job IDs (must match ids used in scheduler/reminder_dispatch_job.py add_job)
REMINDER_DISPATCH_JOB_ID = "reminder_dispatch"

# Reminder kinds; one record per (order_id, kind)
KIND_DAY_BEFORE = "DAY_BEFORE"
KIND_SAME_DAY = "SAME_DAY"
KIND_OVERDUE = "OVERDUE"
REMINDER_KINDS = (KIND_DAY_BEFORE, KIND_SAME_DAY, KIND_OVERDUE)

# NotificationRecord.status. SCHEDULED is the only non-terminal state.
STATUS_SCHEDULED = "SCHEDULED"
STATUS_SENT = "SENT"
STATUS_FAILED = "FAILED"
STATUS_SKIPPED = "SKIPPED"
TERMINAL_RECORD_STATUSES = (STATUS_SENT, STATUS_FAILED, STATUS_SKIPPED)

# Order lifecycle (owned by the order service). Anything not terminal is awaiting pickup.
ORDER_STATUS_PENDING = "PENDING"
ORDER_STATUS_IN_PROGRESS = "IN_PROGRESS"
ORDER_STATUS_READY = "READY"
ORDER_STATUS_COMPLETED = "COMPLETED"
ORDER_STATUS_CANCELLED = "CANCELLED"
TERMINAL_ORDER_STATUSES = frozenset({ORDER_STATUS_COMPLETED, ORDER_STATUS_CANCELLED})

# In-app notification types that are not reminder kinds
NOTIFICATION_TYPE_TEST = "TEST"
NOTIFICATION_TYPE_GENERAL = "GENERAL"

# Expo accepts at most 100 messages per push request
PUSH_BULK_CHUNK_SIZE = 100

# Inbox paging caps
INBOX_DEFAULT_LIMIT = 50
INBOX_MAX_LIMIT = 200

# Error text stored on a record is truncated to this many characters
RECORD_ERROR_MAX_LENGTH = 2000
