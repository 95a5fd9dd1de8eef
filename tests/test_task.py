from __future__ import annotations

from datetime import UTC, datetime, timedelta

import allure
import pytest

from tag_replication.models import ReconcileSummary, Task

pytestmark = [
    allure.epic("Replication Tasks"),
    allure.feature("Task Model"),
]


def test_task_with_delay_is_not_ready_until_delay_elapses() -> None:
    task = Task(tag="library/app:1", destination="remote-a", delay=timedelta(minutes=5))

    assert task.ready() is False
    assert task.ready(now=task.created_at + timedelta(minutes=5)) is True
    assert task.ready(now=task.created_at + timedelta(minutes=4, seconds=59)) is False


def test_task_without_delay_is_ready_immediately() -> None:
    task = Task(tag="library/app:1", destination="remote-a", delay=timedelta(0))

    assert task.ready() is True


def test_ready_does_not_mutate_task() -> None:
    created_at = datetime(2026, 10, 19, 12, 0, 0, tzinfo=UTC)
    task = Task(
        tag="library/app:1",
        destination="remote-a",
        created_at=created_at,
        delay=timedelta(seconds=30),
    )

    task.ready(now=created_at + timedelta(hours=1))

    assert task.created_at == created_at
    assert task.last_attempt == created_at
    assert task.delay == timedelta(seconds=30)


def test_last_attempt_defaults_to_created_at() -> None:
    created_at = datetime(2026, 10, 19, 12, 0, 0, tzinfo=UTC)

    task = Task(tag="library/app:1", destination="remote-a", created_at=created_at)

    assert task.last_attempt == created_at


def test_naive_timestamps_are_treated_as_utc() -> None:
    task = Task(
        tag="library/app:1",
        destination="remote-a",
        created_at=datetime(2026, 10, 19, 12, 0, 0),
    )

    assert task.created_at == datetime(2026, 10, 19, 12, 0, 0, tzinfo=UTC)
    assert task.ready(now=datetime(2026, 10, 19, 12, 0, 1)) is True


def test_equality_ignores_sub_second_precision() -> None:
    created_at = datetime(2026, 10, 19, 12, 0, 0, 250_000, tzinfo=UTC)
    original = Task(tag="library/app:1", destination="remote-a", created_at=created_at)
    truncated = Task(
        tag="library/app:1",
        destination="remote-a",
        created_at=created_at.replace(microsecond=0),
    )

    assert original == truncated
    assert hash(original) == hash(truncated)


def test_equality_compares_non_timestamp_fields_exactly() -> None:
    created_at = datetime(2026, 10, 19, 12, 0, 0, tzinfo=UTC)
    base = Task(tag="library/app:1", destination="remote-a", created_at=created_at)

    assert base != Task(tag="library/app:1", destination="remote-b", created_at=created_at)
    assert base != Task(
        tag="library/app:1",
        destination="remote-a",
        created_at=created_at,
        delay=timedelta(seconds=1),
    )
    assert base != Task(
        tag="library/app:1",
        destination="remote-a",
        created_at=created_at + timedelta(seconds=1),
    )


@pytest.mark.parametrize(
    ("tag", "destination", "delay", "message"),
    [
        ("", "remote-a", timedelta(0), "tag must not be empty"),
        ("library/app:1", "", timedelta(0), "destination must not be empty"),
        ("library/app:1", "remote-a", timedelta(seconds=-1), "delay must be >= 0"),
    ],
)
def test_task_rejects_invalid_fields(
    tag: str,
    destination: str,
    delay: timedelta,
    message: str,
) -> None:
    with pytest.raises(ValueError, match=message):
        Task(tag=tag, destination=destination, delay=delay)


def test_reconcile_summary_totals_deleted_tasks() -> None:
    summary = ReconcileSummary(checked=5, deleted_pending=2, deleted_failed=1)

    assert summary.deleted == 3
