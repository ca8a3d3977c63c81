"""
Single source of truth for database tables this service owns and the ones it only reads.

Owned tables are created by this service's migrations. External tables belong to the order service
(orders, users, device tokens); they are mapped as models for lookups but never migrated here.
"""
# Tables created by alembic/versions in this repo. Must match owned models.
ALL_TABLE_NAMES = (
    "notification_records",
    "user_notifications",
)

# Tables owned by the order service; read-only from here.
EXTERNAL_TABLE_NAMES = (
    "orders",
    "users",
    "device_tokens",
)
