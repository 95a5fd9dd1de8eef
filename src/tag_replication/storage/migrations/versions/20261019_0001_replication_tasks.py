"""Replication task table with pending/failed status."""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "replication_tasks",
        sa.Column("task_seq", sa.Integer(), nullable=False),
        sa.Column("tag", sa.String(), nullable=False),
        sa.Column("destination", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("digest", sa.String(), nullable=False, server_default=""),
        sa.Column("dependencies_json", sa.Text(), nullable=False, server_default="[]"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_attempt", sa.DateTime(timezone=True), nullable=False),
        sa.Column("delay_microseconds", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("task_seq"),
        sa.UniqueConstraint("tag", "destination", name="uq_replication_tasks_identity"),
        sqlite_autoincrement=True,
    )
    op.create_index(
        "idx_replication_tasks_status_seq",
        "replication_tasks",
        ["status", "task_seq"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("idx_replication_tasks_status_seq", table_name="replication_tasks")
    op.drop_table("replication_tasks")
