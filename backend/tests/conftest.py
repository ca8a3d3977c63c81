import uuid
from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import bakery_reminders.models  # noqa: F401
from bakery_reminders.config import settings
from bakery_reminders.core.constants import ORDER_STATUS_PENDING
from bakery_reminders.core.errors import PushDeliveryError
from bakery_reminders.db.base import Base
from bakery_reminders.models import DeviceToken, Order, User


# Test database setup
TEST_DATABASE_URL = "sqlite:///:memory:"

VALID_TOKEN = "ExponentPushToken[abc123]"


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def test_engine():
    """Fresh in-memory database per test."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture(autouse=True)
def reminder_settings(monkeypatch):
    """Pin timing settings so a local .env cannot change expected reminder times."""
    monkeypatch.setattr(settings, "business_timezone", "UTC")
    monkeypatch.setattr(settings, "day_before_hours", 24)
    monkeypatch.setattr(settings, "same_day_hour", 9)
    monkeypatch.setattr(settings, "overdue_after_minutes", None)
    monkeypatch.setattr(settings, "dispatch_max_attempts", 3)
    monkeypatch.setattr(settings, "dispatch_batch_size", 20)
    monkeypatch.setattr(settings, "claim_lease_seconds", 300)
    monkeypatch.setattr(settings, "worker_enabled", False)
    return settings


class FakePushClient:
    """Records every message; raises `error` on send when set."""

    def __init__(self, error: Exception | None = None):
        self.error = error
        self.sent = []

    def send(self, message):
        self.sent.append(message)
        if self.error is not None:
            raise self.error
        return {"data": {"status": "ok", "id": f"ticket-{len(self.sent)}"}}


@pytest.fixture
def push_client() -> FakePushClient:
    return FakePushClient()


@pytest.fixture
def failing_push_client() -> FakePushClient:
    return FakePushClient(error=PushDeliveryError("gateway unavailable"))


# Test data factories
@pytest.fixture
def make_user(db_session):
    def _make(user_id: str = "user-1", name: str = "Baker Bea", token: str | None = VALID_TOKEN) -> User:
        user = User(id=user_id, name=name)
        db_session.add(user)
        if token:
            db_session.add(DeviceToken(user_id=user_id, token=token, platform="ios", last_seen_at=utc(2026, 1, 1)))
        db_session.commit()
        return user

    return _make


@pytest.fixture
def make_order(db_session):
    def _make(
        pickup_at: datetime,
        created_by: str = "user-1",
        status: str = ORDER_STATUS_PENDING,
        order_no: str = "1042",
        order_id: str | None = None,
    ) -> Order:
        order = Order(
            id=order_id or str(uuid.uuid4()),
            order_no=order_no,
            pickup_at=pickup_at,
            status=status,
            created_by=created_by,
            customer_name="Sam Customer",
        )
        db_session.add(order)
        db_session.commit()
        return order

    return _make
