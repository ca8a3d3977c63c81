"""notification_records: one scheduled reminder per (order_id, kind), with dispatch state.

- status: SCHEDULED | SENT | FAILED | SKIPPED (SCHEDULED is the only non-terminal state).
- claimed_by / claimed_at: claim lease held by a dispatcher while it processes a SCHEDULED row.
- (status, scheduled_for) index serves the claim query (due, oldest first).

Revision ID: 001
Revises:
Create Date: (run alembic upgrade head)

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "notification_records",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("order_id", sa.String(64), nullable=False),
        sa.Column("target_user_id", sa.String(64), nullable=False),
        sa.Column("kind", sa.String(16), nullable=False),
        sa.Column("scheduled_for", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="SCHEDULED"),
        sa.Column("attempt_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("claimed_by", sa.String(128), nullable=True),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("order_id", "kind", name="uq_notification_records_order_kind"),
    )
    op.create_index("ix_notification_records_order_id", "notification_records", ["order_id"])
    op.create_index("ix_notification_records_target_user_id", "notification_records", ["target_user_id"])
    op.create_index(
        "ix_notification_records_status_scheduled_for",
        "notification_records",
        ["status", "scheduled_for"],
    )


def downgrade() -> None:
    op.drop_index("ix_notification_records_status_scheduled_for", table_name="notification_records")
    op.drop_index("ix_notification_records_target_user_id", table_name="notification_records")
    op.drop_index("ix_notification_records_order_id", table_name="notification_records")
    op.drop_table("notification_records")
