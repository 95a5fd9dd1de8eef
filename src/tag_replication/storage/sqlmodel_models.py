"""SQLModel ORM tables for the replication task store."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, Index, Text, UniqueConstraint
from sqlmodel import Field, SQLModel


class ReplicationTaskRow(SQLModel, table=True):
    __tablename__ = "replication_tasks"  # type: ignore[bad-override]
    __table_args__ = (
        UniqueConstraint(
            "tag",
            "destination",
            name="uq_replication_tasks_identity",
        ),
        Index("idx_replication_tasks_status_seq", "status", "task_seq"),
        {"sqlite_autoincrement": True},
    )

    # Monotonic across deletes, so it doubles as the insertion order.
    task_seq: int | None = Field(default=None, primary_key=True)
    tag: str
    destination: str
    status: str
    digest: str = ""
    dependencies_json: str = Field(
        default="[]",
        sa_column=Column(Text, nullable=False, server_default="[]"),
    )
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    last_attempt: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    delay_microseconds: int = 0
