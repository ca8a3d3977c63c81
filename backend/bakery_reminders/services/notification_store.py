"""
Notification record store: the durable source of truth for scheduled, sent, failed and skipped reminders.

All mutation is either the claim transaction or a single-row status update guarded on status = SCHEDULED,
so a terminal record is never rewritten. Claiming uses SELECT ... FOR UPDATE SKIP LOCKED where the engine
supports it, and a compare-and-swap UPDATE per row on every engine, so two dispatchers never claim the
same record even without native row locking.
"""
import logging
from datetime import datetime, timedelta

from sqlalchemy import and_, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from bakery_reminders.config import settings
from bakery_reminders.core.constants import (
    RECORD_ERROR_MAX_LENGTH,
    STATUS_FAILED,
    STATUS_SCHEDULED,
    STATUS_SENT,
    STATUS_SKIPPED,
)
from bakery_reminders.db.types import utc_now
from bakery_reminders.models.notification_record import NotificationRecord

logger = logging.getLogger(__name__)

_ON_CONFLICT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def _truncate_error(error: str | None) -> str | None:
    if error is None:
        return None
    return error[:RECORD_ERROR_MAX_LENGTH]


class NotificationStore:
    def __init__(self, db: Session, claim_lease_seconds: int | None = None):
        self.db = db
        self.claim_lease_seconds = (
            claim_lease_seconds if claim_lease_seconds is not None else settings.claim_lease_seconds
        )

    # --- Reads ---

    def get(self, record_id: int) -> NotificationRecord | None:
        return self.db.get(NotificationRecord, record_id)

    def list_for_order(self, order_id: str) -> list[NotificationRecord]:
        return (
            self.db.query(NotificationRecord)
            .filter(NotificationRecord.order_id == order_id)
            .order_by(NotificationRecord.scheduled_for.asc(), NotificationRecord.id.asc())
            .all()
        )

    def get_for_order_kind(self, order_id: str, kind: str) -> NotificationRecord | None:
        return (
            self.db.query(NotificationRecord)
            .filter(NotificationRecord.order_id == order_id, NotificationRecord.kind == kind)
            .first()
        )

    # --- Scheduling writes ---

    def insert_if_absent(self, order_id: str, target_user_id: str, kind: str, scheduled_for: datetime) -> bool:
        """Insert one SCHEDULED record; returns False (no error) if (order_id, kind) already exists."""
        now = utc_now()
        values = {
            "order_id": order_id,
            "target_user_id": target_user_id,
            "kind": kind,
            "scheduled_for": scheduled_for,
            "status": STATUS_SCHEDULED,
            "attempt_count": 0,
            "created_at": now,
            "updated_at": now,
        }
        insert_fn = _ON_CONFLICT_INSERTS.get(self.db.get_bind().dialect.name)
        if insert_fn is not None:
            stmt = insert_fn(NotificationRecord).values(**values).on_conflict_do_nothing(
                index_elements=["order_id", "kind"]
            )
            return self.db.execute(stmt).rowcount == 1
        # Engines without ON CONFLICT: rely on the unique constraint inside a savepoint
        try:
            with self.db.begin_nested():
                self.db.add(NotificationRecord(**values))
        except IntegrityError:
            return False
        return True

    def reschedule(self, record_id: int, scheduled_for: datetime) -> bool:
        """Move a still-SCHEDULED, unclaimed record to a new due time (pickup time changed)."""
        stmt = (
            update(NotificationRecord)
            .where(
                NotificationRecord.id == record_id,
                NotificationRecord.status == STATUS_SCHEDULED,
                NotificationRecord.claimed_at.is_(None),
            )
            .values(scheduled_for=scheduled_for, error=None, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount == 1

    def skip_pending_for_order(self, order_id: str, reason: str | None = None) -> int:
        """Bulk SCHEDULED -> SKIPPED for one order. Drops any claim so an in-flight dispatch cannot finish them.
        Returns affected row count.
        """
        stmt = (
            update(NotificationRecord)
            .where(
                NotificationRecord.order_id == order_id,
                NotificationRecord.status == STATUS_SCHEDULED,
            )
            .values(status=STATUS_SKIPPED, error=reason, claimed_by=None, claimed_at=None, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount or 0

    def supersede(self, record_id: int, reason: str) -> bool:
        """SCHEDULED, unclaimed -> SKIPPED without committing (caller owns the transaction)."""
        stmt = (
            update(NotificationRecord)
            .where(
                NotificationRecord.id == record_id,
                NotificationRecord.status == STATUS_SCHEDULED,
                NotificationRecord.claimed_at.is_(None),
            )
            .values(status=STATUS_SKIPPED, error=reason, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount == 1

    # --- Claiming ---

    def _claimable(self, now: datetime):
        lease_cutoff = now - timedelta(seconds=self.claim_lease_seconds)
        return and_(
            NotificationRecord.status == STATUS_SCHEDULED,
            NotificationRecord.scheduled_for <= now,
            or_(NotificationRecord.claimed_at.is_(None), NotificationRecord.claimed_at < lease_cutoff),
        )

    def select_due_ids(self, limit: int, now: datetime) -> list[int]:
        """Oldest-due first. Rows locked by another transaction are skipped (Postgres); no-op lock on SQLite."""
        stmt = (
            select(NotificationRecord.id)
            .where(self._claimable(now))
            .order_by(NotificationRecord.scheduled_for.asc(), NotificationRecord.id.asc())
            .limit(limit)
            .with_for_update(skip_locked=True)
        )
        return list(self.db.execute(stmt).scalars().all())

    def claim_ids(self, record_ids: list[int], now: datetime, worker_id: str) -> list[int]:
        """Compare-and-swap claim per row. Returns the ids this worker won."""
        won = []
        for record_id in record_ids:
            stmt = (
                update(NotificationRecord)
                .where(NotificationRecord.id == record_id, self._claimable(now))
                .values(
                    claimed_by=worker_id,
                    claimed_at=now,
                    attempt_count=NotificationRecord.attempt_count + 1,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            if self.db.execute(stmt).rowcount == 1:
                won.append(record_id)
        return won

    def claim_due_batch(self, limit: int, now: datetime | None = None, worker_id: str = "worker") -> list[NotificationRecord]:
        """
        Atomically select up to `limit` due records and mark them claimed (attempt_count + 1).
        Commits before returning so no lock outlives the claim.
        """
        now = now or utc_now()
        try:
            ids = self.select_due_ids(limit, now)
            won = self.claim_ids(ids, now, worker_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        if len(won) < len(ids):
            logger.debug("Claim: %s of %s due records taken by another worker", len(ids) - len(won), len(ids))
        if not won:
            return []
        return (
            self.db.query(NotificationRecord)
            .filter(NotificationRecord.id.in_(won))
            .order_by(NotificationRecord.scheduled_for.asc(), NotificationRecord.id.asc())
            .all()
        )

    def renew_claim(self, record_id: int, worker_id: str, now: datetime | None = None) -> bool:
        """
        Restart the lease on a record this worker still holds. Does not commit, so the caller can make
        the renewal atomic with its own writes. False means the claim was lost (reclaimed, cancelled or finished).
        """
        stmt = (
            update(NotificationRecord)
            .where(
                NotificationRecord.id == record_id,
                NotificationRecord.status == STATUS_SCHEDULED,
                NotificationRecord.claimed_by == worker_id,
            )
            .values(claimed_at=now or utc_now())
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount == 1

    # --- Terminal / retry transitions (single row, guarded on SCHEDULED and, given a worker, its claim) ---

    def _finish(self, record_id: int, worker_id: str | None = None, **values) -> bool:
        values.setdefault("updated_at", utc_now())
        conditions = [NotificationRecord.id == record_id, NotificationRecord.status == STATUS_SCHEDULED]
        if worker_id is not None:
            conditions.append(NotificationRecord.claimed_by == worker_id)
        stmt = (
            update(NotificationRecord)
            .where(*conditions)
            .values(claimed_by=None, claimed_at=None, **values)
            .execution_options(synchronize_session=False)
        )
        changed = self.db.execute(stmt).rowcount == 1
        self.db.commit()
        return changed

    def mark_sent(self, record_id: int, now: datetime | None = None, worker_id: str | None = None) -> bool:
        now = now or utc_now()
        return self._finish(record_id, worker_id, status=STATUS_SENT, sent_at=now, error=None, updated_at=now)

    def mark_skipped(self, record_id: int, reason: str | None = None, worker_id: str | None = None) -> bool:
        return self._finish(record_id, worker_id, status=STATUS_SKIPPED, error=_truncate_error(reason))

    def release_or_fail(
        self,
        record_id: int,
        error: str,
        max_attempts: int,
        worker_id: str | None = None,
    ) -> str | None:
        """
        After a failed attempt: back to claimable SCHEDULED, or FAILED once attempt_count reached max_attempts.
        Returns the resulting status, or None if the record was no longer SCHEDULED or no longer held by worker_id.
        """
        record = self.get(record_id)
        if record is None or record.status != STATUS_SCHEDULED:
            return None
        if worker_id is not None and record.claimed_by != worker_id:
            return None
        if (record.attempt_count or 0) >= max_attempts:
            ok = self._finish(record_id, worker_id, status=STATUS_FAILED, error=_truncate_error(error))
            return STATUS_FAILED if ok else None
        ok = self._finish(record_id, worker_id, error=_truncate_error(error))
        return STATUS_SCHEDULED if ok else None
