"""Device push token registered by the mobile app. A user may have several; the most recently seen wins."""
from sqlalchemy import Column, Integer, String

from bakery_reminders.db.base import Base
from bakery_reminders.db.types import UTCDateTime, utc_now


class DeviceToken(Base):
    __tablename__ = "device_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)
    token = Column(String(256), nullable=False, unique=True, index=True)
    platform = Column(String(16), nullable=False, default="ios")
    last_seen_at = Column(UTCDateTime(), default=utc_now, nullable=False)
