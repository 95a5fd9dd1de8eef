"""Persistent pending/failed store for tag replication tasks."""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta
from pathlib import Path
from types import TracebackType

from sqlalchemy import delete as sa_delete
from sqlalchemy import update as sa_update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, select

from tag_replication.errors import StoreClosedError, TaskExistsError, TaskNotFoundError
from tag_replication.models import ReconcileSummary, Task, TaskStatus
from tag_replication.reconcile import delete_invalid_tasks
from tag_replication.storage.alembic_runner import upgrade_head
from tag_replication.storage.common import (
    build_sqlite_engine,
    to_db_datetime,
    to_utc_aware_datetime,
    utc_now,
)
from tag_replication.storage.sqlmodel_models import ReplicationTaskRow
from tag_replication.validator import RemoteValidator

logger = logging.getLogger(__name__)

DEFAULT_BUSY_TIMEOUT_MS = 5_000
_MICROSECOND = timedelta(microseconds=1)


class TaskStore:
    """Durable pending/failed task collections backed by SQLModel + SQLite.

    Opening the store migrates the schema and runs the validity sweep before
    returning, so a constructed store never serves tasks the validator would
    reject. Both collections live in one table keyed by (tag, destination),
    which keeps an identity in at most one state.
    """

    def __init__(
        self,
        db_path: Path,
        validator: RemoteValidator,
        *,
        sqlite_busy_timeout_ms: int = DEFAULT_BUSY_TIMEOUT_MS,
    ) -> None:
        self.db_path = db_path
        self.validator = validator
        self._closed = False
        self._active_calls = 0
        self._state = threading.Condition()

        upgrade_head(db_path)
        self.engine = build_sqlite_engine(db_path=db_path, busy_timeout_ms=sqlite_busy_timeout_ms)
        try:
            self.reconcile_summary: ReconcileSummary = delete_invalid_tasks(
                self.engine,
                validator,
            )
        except Exception:
            self.engine.dispose()
            raise
        logger.info("Opened replication task store at %s", db_path)

    def __enter__(self) -> TaskStore:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self._shutdown(already_closed_ok=True)

    @property
    def closed(self) -> bool:
        with self._state:
            return self._closed

    def close(self) -> None:
        """Release the engine; the store is unusable afterwards.

        Calls already in flight finish first; calls that start after
        ``close()`` raise ``StoreClosedError``.
        """

        self._shutdown(already_closed_ok=False)

    def add_pending(self, task: Task) -> None:
        """Insert a new pending task."""

        self._add(task, TaskStatus.PENDING)

    def add_failed(self, task: Task) -> None:
        """Insert a new failed task."""

        self._add(task, TaskStatus.FAILED)

    def mark_pending(self, task: Task) -> None:
        """Move a failed task back to pending."""

        self._move(task, source=TaskStatus.FAILED, target=TaskStatus.PENDING)

    def mark_failed(self, task: Task) -> None:
        """Move a pending task to failed."""

        self._move(task, source=TaskStatus.PENDING, target=TaskStatus.FAILED)

    def remove(self, task: Task) -> bool:
        """Delete the task from whichever collection holds it.

        Removing an unknown identity is a no-op and returns False.
        """

        with self._operation(), Session(self.engine) as session:
            result = session.exec(
                sa_delete(ReplicationTaskRow).where(
                    col(ReplicationTaskRow.tag) == task.tag,
                    col(ReplicationTaskRow.destination) == task.destination,
                ),
            )
            session.commit()
        removed = result.rowcount == 1
        logger.debug(
            "Removed replication task (tag=%s destination=%s removed=%s)",
            task.tag,
            task.destination,
            removed,
        )
        return removed

    def record_attempt(self, task: Task, *, attempted_at: datetime | None = None) -> Task:
        """Persist a new last-attempt timestamp in either collection."""

        when = attempted_at or utc_now()
        with self._operation(), Session(self.engine) as session:
            result = session.exec(
                sa_update(ReplicationTaskRow)
                .where(
                    col(ReplicationTaskRow.tag) == task.tag,
                    col(ReplicationTaskRow.destination) == task.destination,
                )
                .values(last_attempt=to_db_datetime(when)),
            )
            if result.rowcount != 1:
                session.rollback()
                raise TaskNotFoundError(
                    f"Task not found: tag={task.tag} destination={task.destination}",
                    tag=task.tag,
                    destination=task.destination,
                )
            row = session.exec(
                select(ReplicationTaskRow).where(
                    ReplicationTaskRow.tag == task.tag,
                    ReplicationTaskRow.destination == task.destination,
                ),
            ).one()
            session.commit()
            session.refresh(row)
            return _to_task(row)

    def get_pending(self) -> list[Task]:
        """Pending tasks in insertion order."""

        return self._list(TaskStatus.PENDING)

    def get_failed(self) -> list[Task]:
        """Failed tasks in insertion order."""

        return self._list(TaskStatus.FAILED)

    def _add(self, task: Task, status: TaskStatus) -> None:
        with self._operation(), Session(self.engine) as session:
            session.add(_to_row(task, status))
            try:
                session.commit()
            except IntegrityError as error:
                session.rollback()
                if "UNIQUE constraint failed" not in str(error.orig):
                    raise
                raise TaskExistsError(
                    f"Task already exists: tag={task.tag} destination={task.destination}",
                    tag=task.tag,
                    destination=task.destination,
                ) from error
        logger.debug(
            "Added %s replication task (tag=%s destination=%s)",
            status.value,
            task.tag,
            task.destination,
        )

    def _move(self, task: Task, *, source: TaskStatus, target: TaskStatus) -> None:
        with self._operation(), Session(self.engine) as session:
            result = session.exec(
                sa_update(ReplicationTaskRow)
                .where(
                    col(ReplicationTaskRow.tag) == task.tag,
                    col(ReplicationTaskRow.destination) == task.destination,
                    col(ReplicationTaskRow.status) == source.value,
                )
                .values(status=target.value),
            )
            if result.rowcount != 1:
                session.rollback()
                raise TaskNotFoundError(
                    f"No {source.value} task: tag={task.tag} destination={task.destination}",
                    tag=task.tag,
                    destination=task.destination,
                )
            session.commit()
        logger.debug(
            "Moved replication task %s -> %s (tag=%s destination=%s)",
            source.value,
            target.value,
            task.tag,
            task.destination,
        )

    def _list(self, status: TaskStatus) -> list[Task]:
        with self._operation(), Session(self.engine) as session:
            rows = session.exec(
                select(ReplicationTaskRow)
                .where(ReplicationTaskRow.status == status.value)
                .order_by(col(ReplicationTaskRow.task_seq).asc()),
            ).all()
        return [_to_task(row) for row in rows]

    @contextmanager
    def _operation(self) -> Iterator[None]:
        with self._state:
            if self._closed:
                raise StoreClosedError(f"Task store is closed: {self.db_path}")
            self._active_calls += 1
        try:
            yield
        finally:
            with self._state:
                self._active_calls -= 1
                self._state.notify_all()

    def _shutdown(self, *, already_closed_ok: bool) -> None:
        with self._state:
            if self._closed:
                if already_closed_ok:
                    return
                raise StoreClosedError(f"Task store is already closed: {self.db_path}")
            self._closed = True
            self._state.wait_for(lambda: self._active_calls == 0)
        self.engine.dispose()
        logger.info("Closed replication task store at %s", self.db_path)


def _to_row(task: Task, status: TaskStatus) -> ReplicationTaskRow:
    return ReplicationTaskRow(
        tag=task.tag,
        destination=task.destination,
        status=status.value,
        digest=task.digest,
        dependencies_json=json.dumps(list(task.dependencies)),
        created_at=to_db_datetime(task.created_at),
        last_attempt=to_db_datetime(task.last_attempt),
        delay_microseconds=task.delay // _MICROSECOND,
    )


def _to_task(row: ReplicationTaskRow) -> Task:
    dependencies = json.loads(row.dependencies_json) if row.dependencies_json else []
    return Task(
        tag=row.tag,
        destination=row.destination,
        digest=row.digest,
        dependencies=tuple(str(item) for item in dependencies),
        created_at=to_utc_aware_datetime(row.created_at),
        last_attempt=to_utc_aware_datetime(row.last_attempt),
        delay=timedelta(microseconds=row.delay_microseconds),
    )
