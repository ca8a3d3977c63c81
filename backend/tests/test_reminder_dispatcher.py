import logging
from datetime import timedelta

from bakery_reminders.core.constants import (
    KIND_DAY_BEFORE,
    KIND_SAME_DAY,
    ORDER_STATUS_CANCELLED,
    STATUS_FAILED,
    STATUS_SCHEDULED,
    STATUS_SENT,
    STATUS_SKIPPED,
)
from bakery_reminders.db.types import utc_now
from bakery_reminders.models import NotificationRecord, UserNotification
from bakery_reminders.services.cancellation import cancel
from bakery_reminders.services.messages import render
from bakery_reminders.services.notification_store import NotificationStore
from bakery_reminders.services.orders import get_order
from bakery_reminders.services.reminder_dispatcher import dispatch_due_reminders, process_batch
from bakery_reminders.services.reminder_scheduler import schedule
from bakery_reminders.services.user_notifications import create_for_record

from conftest import VALID_TOKEN, FakePushClient, utc


PICKUP = utc(2026, 3, 10, 15, 0)
SCHEDULED_AT = PICKUP - timedelta(hours=48)
DAY_BEFORE_DUE = utc(2026, 3, 9, 15, 0)


def _scheduled_order(db_session, make_user, make_order, token=VALID_TOKEN):
    make_user(token=token)
    order = make_order(PICKUP)
    schedule(db_session, order.id, now=SCHEDULED_AT)
    return order


def _add_record(db_session, order_id, kind, scheduled_for, user_id="user-1"):
    now = utc_now()
    record = NotificationRecord(
        order_id=order_id,
        target_user_id=user_id,
        kind=kind,
        scheduled_for=scheduled_for,
        status=STATUS_SCHEDULED,
        attempt_count=0,
        created_at=now,
        updated_at=now,
    )
    db_session.add(record)
    db_session.commit()
    return record


class TestDispatchHappyPath:
    def test_sends_due_reminder_once(self, db_session, make_user, make_order, push_client):
        order = _scheduled_order(db_session, make_user, make_order)

        summary = dispatch_due_reminders(db_session, push_client, now=DAY_BEFORE_DUE)

        assert summary.as_dict() == {"claimed": 1, "sent": 1, "skipped": 0, "retried": 0, "failed": 0, "lost": 0}
        assert len(push_client.sent) == 1
        message = push_client.sent[0]
        assert message.to == VALID_TOKEN
        assert message.title == "📅 Order Pickup Reminder"
        assert "#1042" in message.body
        assert message.data["orderId"] == order.id

        record = NotificationStore(db_session).get_for_order_kind(order.id, KIND_DAY_BEFORE)
        assert record.status == STATUS_SENT
        assert record.sent_at == DAY_BEFORE_DUE
        assert record.attempt_count == 1
        assert record.claimed_by is None

        inbox = db_session.query(UserNotification).filter_by(user_id="user-1").all()
        assert len(inbox) == 1
        assert inbox[0].notification_record_id == record.id
        assert inbox[0].is_read is False

    def test_not_yet_due_is_left_alone(self, db_session, make_user, make_order, push_client):
        _scheduled_order(db_session, make_user, make_order)

        summary = dispatch_due_reminders(db_session, push_client, now=DAY_BEFORE_DUE - timedelta(seconds=1))

        assert summary.claimed == 0
        assert push_client.sent == []

    def test_second_tick_does_not_resend(self, db_session, make_user, make_order, push_client):
        _scheduled_order(db_session, make_user, make_order)

        dispatch_due_reminders(db_session, push_client, now=DAY_BEFORE_DUE)
        summary = dispatch_due_reminders(db_session, push_client, now=DAY_BEFORE_DUE + timedelta(minutes=1))

        assert summary.claimed == 0
        assert len(push_client.sent) == 1

    def test_oldest_due_first_and_batch_limit(self, db_session, make_user, make_order, push_client):
        _scheduled_order(db_session, make_user, make_order)

        summary = dispatch_due_reminders(db_session, push_client, now=PICKUP, limit=1)

        assert summary.sent == 1
        assert push_client.sent[0].data["type"] == KIND_DAY_BEFORE


class TestPushDecoupling:
    def test_push_failure_keeps_inbox_and_marks_sent(self, db_session, make_user, make_order, failing_push_client):
        order = _scheduled_order(db_session, make_user, make_order)

        summary = dispatch_due_reminders(db_session, failing_push_client, now=DAY_BEFORE_DUE)

        assert summary.sent == 1
        assert len(failing_push_client.sent) == 1
        record = NotificationStore(db_session).get_for_order_kind(order.id, KIND_DAY_BEFORE)
        assert record.status == STATUS_SENT
        assert db_session.query(UserNotification).count() == 1

    def test_no_device_token_means_no_push(self, db_session, make_user, make_order, push_client):
        order = _scheduled_order(db_session, make_user, make_order, token=None)

        dispatch_due_reminders(db_session, push_client, now=DAY_BEFORE_DUE)

        assert push_client.sent == []
        record = NotificationStore(db_session).get_for_order_kind(order.id, KIND_DAY_BEFORE)
        assert record.status == STATUS_SENT
        assert db_session.query(UserNotification).count() == 1


class TestTerminalOrders:
    def test_cancelled_after_scheduling_is_skipped(self, db_session, make_user, make_order, push_client):
        order = _scheduled_order(db_session, make_user, make_order)
        order.status = ORDER_STATUS_CANCELLED
        db_session.commit()

        summary = dispatch_due_reminders(db_session, push_client, now=DAY_BEFORE_DUE)

        assert summary.skipped == 1
        assert push_client.sent == []
        assert db_session.query(UserNotification).count() == 0
        record = NotificationStore(db_session).get_for_order_kind(order.id, KIND_DAY_BEFORE)
        assert record.status == STATUS_SKIPPED

    def test_soft_deleted_order_is_skipped(self, db_session, make_user, make_order, push_client):
        order = _scheduled_order(db_session, make_user, make_order)
        order.deleted_at = SCHEDULED_AT
        db_session.commit()

        summary = dispatch_due_reminders(db_session, push_client, now=DAY_BEFORE_DUE)

        assert summary.skipped == 1
        assert push_client.sent == []


class TestClaiming:
    def test_two_workers_never_claim_the_same_record(self, db_session, make_user, make_order, push_client):
        _scheduled_order(db_session, make_user, make_order)
        first, second = NotificationStore(db_session), NotificationStore(db_session)

        ids_a = first.select_due_ids(10, DAY_BEFORE_DUE)
        ids_b = second.select_due_ids(10, DAY_BEFORE_DUE)
        assert ids_a == ids_b and len(ids_a) == 1

        won_a = first.claim_ids(ids_a, DAY_BEFORE_DUE, "worker-a")
        won_b = second.claim_ids(ids_b, DAY_BEFORE_DUE, "worker-b")
        db_session.commit()

        assert won_a == ids_a
        assert won_b == []
        record = first.get(ids_a[0])
        assert record.claimed_by == "worker-a"
        assert record.attempt_count == 1

        process_batch(db_session, [first.get(i) for i in won_a], push_client, now=DAY_BEFORE_DUE)
        process_batch(db_session, [second.get(i) for i in won_b], push_client, now=DAY_BEFORE_DUE)

        assert len(push_client.sent) == 1
        assert first.get(ids_a[0]).status == STATUS_SENT

    def test_claimed_record_not_reclaimed_within_lease(self, db_session, make_user, make_order):
        _scheduled_order(db_session, make_user, make_order)
        store = NotificationStore(db_session, claim_lease_seconds=300)

        assert len(store.claim_due_batch(10, DAY_BEFORE_DUE, "worker-a")) == 1
        assert store.claim_due_batch(10, DAY_BEFORE_DUE + timedelta(seconds=299), "worker-b") == []

    def test_abandoned_claim_is_reclaimed_after_lease(self, db_session, make_user, make_order):
        _scheduled_order(db_session, make_user, make_order)
        store = NotificationStore(db_session, claim_lease_seconds=300)

        store.claim_due_batch(10, DAY_BEFORE_DUE, "crashed-worker")
        reclaimed = store.claim_due_batch(10, DAY_BEFORE_DUE + timedelta(seconds=301), "worker-b")

        assert len(reclaimed) == 1
        assert reclaimed[0].claimed_by == "worker-b"
        assert reclaimed[0].attempt_count == 2


class TestFailures:
    def test_missing_recipient_retries_then_fails(self, db_session, make_order, push_client):
        # No user row: every attempt fails to resolve the recipient
        order = make_order(PICKUP, created_by="ghost")
        schedule(db_session, order.id, now=SCHEDULED_AT)
        store = NotificationStore(db_session)

        s1 = dispatch_due_reminders(db_session, push_client, now=DAY_BEFORE_DUE, max_attempts=3)
        record = store.get_for_order_kind(order.id, KIND_DAY_BEFORE)
        assert s1.retried == 1
        assert (record.status, record.attempt_count) == (STATUS_SCHEDULED, 1)
        assert "ghost" in record.error

        s2 = dispatch_due_reminders(db_session, push_client, now=DAY_BEFORE_DUE + timedelta(minutes=1), max_attempts=3)
        record = store.get_for_order_kind(order.id, KIND_DAY_BEFORE)
        assert s2.retried == 1
        assert (record.status, record.attempt_count) == (STATUS_SCHEDULED, 2)

        s3 = dispatch_due_reminders(db_session, push_client, now=DAY_BEFORE_DUE + timedelta(minutes=2), max_attempts=3)
        record = store.get_for_order_kind(order.id, KIND_DAY_BEFORE)
        assert s3.failed == 1
        assert (record.status, record.attempt_count) == (STATUS_FAILED, 3)

        s4 = dispatch_due_reminders(db_session, push_client, now=DAY_BEFORE_DUE + timedelta(minutes=3), max_attempts=3)
        assert s4.claimed == 0
        assert push_client.sent == []
        assert db_session.query(UserNotification).count() == 0

    def test_one_bad_record_does_not_block_the_batch(self, db_session, make_user, make_order, push_client):
        make_user()
        good = make_order(PICKUP, order_no="1")
        bad = make_order(PICKUP, order_no="2")
        later = make_order(PICKUP, order_no="3")
        _add_record(db_session, good.id, KIND_DAY_BEFORE, DAY_BEFORE_DUE - timedelta(minutes=3))
        broken = _add_record(db_session, bad.id, "BOGUS", DAY_BEFORE_DUE - timedelta(minutes=2))
        _add_record(db_session, later.id, KIND_SAME_DAY, DAY_BEFORE_DUE - timedelta(minutes=1))

        summary = dispatch_due_reminders(db_session, push_client, now=DAY_BEFORE_DUE)

        assert summary.as_dict() == {"claimed": 3, "sent": 2, "skipped": 0, "retried": 1, "failed": 0, "lost": 0}
        assert [m.data["orderNumber"] for m in push_client.sent] == ["1", "3"]
        broken = NotificationStore(db_session).get(broken.id)
        assert broken.status == STATUS_SCHEDULED
        assert "BOGUS" in broken.error

    def test_missing_order_goes_through_retry(self, db_session, make_user, push_client):
        make_user()
        record = _add_record(db_session, "vanished", KIND_DAY_BEFORE, DAY_BEFORE_DUE)

        summary = dispatch_due_reminders(db_session, push_client, now=DAY_BEFORE_DUE, max_attempts=1)

        assert summary.failed == 1
        assert NotificationStore(db_session).get(record.id).status == STATUS_FAILED


class TestInboxIdempotency:
    def test_same_record_yields_one_inbox_row(self, db_session, make_user, make_order):
        make_user()
        order = make_order(PICKUP)
        record = _add_record(db_session, order.id, KIND_DAY_BEFORE, DAY_BEFORE_DUE)
        rendered = render(KIND_DAY_BEFORE, get_order(db_session, order.id))

        first = create_for_record(db_session, record, rendered)
        second = create_for_record(db_session, record, rendered)
        db_session.commit()

        assert first.id == second.id
        assert db_session.query(UserNotification).filter_by(notification_record_id=record.id).count() == 1


class CancellingPushClient(FakePushClient):
    """Cancels the order's reminders from another session while the push is in flight."""

    def __init__(self, session_factory, order_id):
        super().__init__()
        self.session_factory = session_factory
        self.order_id = order_id

    def send(self, message):
        with self.session_factory() as other:
            cancel(other, self.order_id)
        return super().send(message)


class TestConcurrentTransitions:
    def test_cancel_during_push_is_not_counted_as_sent(self, db_session, session_factory, make_user, make_order):
        order = _scheduled_order(db_session, make_user, make_order)
        push_client = CancellingPushClient(session_factory, order.id)

        summary = dispatch_due_reminders(db_session, push_client, now=DAY_BEFORE_DUE)

        assert (summary.sent, summary.lost) == (0, 1)
        assert len(push_client.sent) == 1
        record = NotificationStore(db_session).get_for_order_kind(order.id, KIND_DAY_BEFORE)
        assert record.status == STATUS_SKIPPED
        assert record.sent_at is None

    def test_cancel_before_processing_pushes_nothing(self, db_session, make_user, make_order, push_client):
        order = _scheduled_order(db_session, make_user, make_order)
        records = NotificationStore(db_session).claim_due_batch(10, DAY_BEFORE_DUE, "worker-a")
        cancel(db_session, order.id)

        summary = process_batch(db_session, records, push_client, now=DAY_BEFORE_DUE, worker_id="worker-a")

        assert (summary.sent, summary.lost) == (0, 1)
        assert push_client.sent == []
        assert db_session.query(UserNotification).count() == 0


def test_dispatch_logs_carry_reminder_context(db_session, make_user, make_order, push_client, caplog):
    order = _scheduled_order(db_session, make_user, make_order)
    caplog.set_level(logging.INFO, logger="bakery_reminders.services.reminder_dispatcher")

    dispatch_due_reminders(db_session, push_client, now=DAY_BEFORE_DUE, worker_id="worker-a")

    sent = [r for r in caplog.records if r.getMessage().startswith("Sent ")]
    assert len(sent) == 1
    assert sent[0].order_id == order.id
    assert sent[0].worker_id == "worker-a"
    assert sent[0].kind == KIND_DAY_BEFORE
    assert sent[0].user_id == "user-1"
    assert isinstance(sent[0].record_id, int)
