"""Controllers for task store CLI commands."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

from tag_replication.config import Settings
from tag_replication.models import Task, TaskStatus
from tag_replication.store import TaskStore
from tag_replication.validator import (
    AcceptAllValidator,
    AllowlistRemoteValidator,
    RemoteValidator,
)


@dataclass(slots=True)
class AddTaskCommand:
    """CLI input for adding a task."""

    db_path: Path | None
    tag: str
    destination: str
    digest: str
    dependencies: tuple[str, ...]
    delay_seconds: int | None
    failed: bool
    keep_all: bool


@dataclass(slots=True)
class ListTasksCommand:
    """CLI input for task listing."""

    db_path: Path | None
    status: str | None
    keep_all: bool


@dataclass(slots=True)
class MutateTaskCommand:
    """CLI input for mark/remove operations."""

    db_path: Path | None
    tag: str
    destination: str
    keep_all: bool


@dataclass(slots=True)
class ReconcileCommand:
    """CLI input for an explicit open-time sweep."""

    db_path: Path | None
    keep_all: bool


class TaskStoreCliController:
    """Coordinates task store inspection and manual mutations."""

    def add_task(self, command: AddTaskCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        delay = (
            timedelta(seconds=command.delay_seconds)
            if command.delay_seconds is not None
            else settings.replication.default_delay
        )
        task = Task(
            tag=command.tag,
            destination=command.destination,
            digest=command.digest,
            dependencies=command.dependencies,
            delay=delay,
        )
        with _store(settings, keep_all=command.keep_all) as store:
            if command.failed:
                store.add_failed(task)
            else:
                store.add_pending(task)
        status = TaskStatus.FAILED if command.failed else TaskStatus.PENDING
        return [f"Task added: tag={task.tag} destination={task.destination} status={status.value}"]

    def list_tasks(self, command: ListTasksCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        statuses = (
            (TaskStatus(command.status),)
            if command.status is not None
            else (TaskStatus.PENDING, TaskStatus.FAILED)
        )
        listed: list[tuple[TaskStatus, Task]] = []
        with _store(settings, keep_all=command.keep_all) as store:
            for status in statuses:
                tasks = store.get_pending() if status is TaskStatus.PENDING else store.get_failed()
                listed.extend((status, task) for task in tasks)

        lines = [f"Tasks: {len(listed)}"]
        for status, task in listed:
            lines.append(
                f"  {task.tag} -> {task.destination} status={status.value} "
                f"ready={'yes' if task.ready() else 'no'} "
                f"delay={int(task.delay.total_seconds())}s "
                f"created_at={task.created_at.isoformat()} "
                f"last_attempt={task.last_attempt.isoformat()}",
            )
        return lines

    def mark_failed(self, command: MutateTaskCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _store(settings, keep_all=command.keep_all) as store:
            store.mark_failed(Task(tag=command.tag, destination=command.destination))
        return [f"Task marked failed: tag={command.tag} destination={command.destination}"]

    def mark_pending(self, command: MutateTaskCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _store(settings, keep_all=command.keep_all) as store:
            store.mark_pending(Task(tag=command.tag, destination=command.destination))
        return [f"Task re-queued: tag={command.tag} destination={command.destination}"]

    def remove_task(self, command: MutateTaskCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _store(settings, keep_all=command.keep_all) as store:
            removed = store.remove(Task(tag=command.tag, destination=command.destination))
        if not removed:
            return [f"Task not found: tag={command.tag} destination={command.destination}"]
        return [f"Task removed: tag={command.tag} destination={command.destination}"]

    def reconcile(self, command: ReconcileCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _store(settings, keep_all=command.keep_all) as store:
            summary = store.reconcile_summary
            pending = len(store.get_pending())
            failed = len(store.get_failed())
        return [
            "Reconciled: "
            f"checked={summary.checked} deleted_pending={summary.deleted_pending} "
            f"deleted_failed={summary.deleted_failed}",
            f"Remaining: pending={pending} failed={failed}",
        ]


def build_validator(settings: Settings, *, keep_all: bool) -> RemoteValidator:
    """Pick the validator used by the open-time sweep."""

    if keep_all:
        return AcceptAllValidator()
    if not settings.replication.remotes:
        raise ValueError(
            "No replication remotes configured; every stored task would be purged. "
            "Set TAG_REPLICATION_REMOTES or pass --keep-all.",
        )
    return AllowlistRemoteValidator(settings.replication.remotes)


@contextmanager
def _store(settings: Settings, *, keep_all: bool) -> Iterator[TaskStore]:
    settings.validate()
    validator = build_validator(settings, keep_all=keep_all)
    with TaskStore(
        settings.db_path,
        validator,
        sqlite_busy_timeout_ms=settings.sqlite_busy_timeout_ms,
    ) as store:
        yield store
