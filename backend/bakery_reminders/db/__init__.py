from bakery_reminders.db.base import Base
from bakery_reminders.db.session import get_db, engine, SessionLocal
from bakery_reminders.db.tables import ALL_TABLE_NAMES, EXTERNAL_TABLE_NAMES

__all__ = ["get_db", "engine", "SessionLocal", "Base", "ALL_TABLE_NAMES", "EXTERNAL_TABLE_NAMES"]
