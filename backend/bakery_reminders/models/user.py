"""User as seen by the reminder subsystem (owned by the user service; read-only here)."""
from sqlalchemy import Column, String

from bakery_reminders.db.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
