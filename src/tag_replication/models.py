"""Domain models for replication tasks."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum

from tag_replication.storage.common import to_utc_aware_datetime, utc_now


class TaskStatus(str, Enum):
    """Collections a stored task can live in."""

    PENDING = "pending"
    FAILED = "failed"


@dataclass(slots=True, eq=False)
class Task:
    """One instruction to replicate ``tag`` to ``destination``.

    The (tag, destination) pair is the task identity. Whether the task is
    pending or failed is decided by the store, not by the task itself.
    """

    tag: str
    destination: str
    digest: str = ""
    dependencies: tuple[str, ...] = ()
    created_at: datetime = field(default_factory=utc_now)
    last_attempt: datetime = None  # type: ignore[assignment]  # created_at when omitted
    delay: timedelta = timedelta(0)

    def __post_init__(self) -> None:
        if not self.tag:
            raise ValueError("Task tag must not be empty.")
        if not self.destination:
            raise ValueError("Task destination must not be empty.")
        if self.delay < timedelta(0):
            raise ValueError(f"Task delay must be >= 0, got {self.delay}.")
        self.dependencies = tuple(self.dependencies)
        self.created_at = to_utc_aware_datetime(self.created_at)
        if self.last_attempt is None:
            self.last_attempt = self.created_at
        else:
            self.last_attempt = to_utc_aware_datetime(self.last_attempt)

    @property
    def identity(self) -> tuple[str, str]:
        return (self.tag, self.destination)

    def ready(self, now: datetime | None = None) -> bool:
        """Whether the configured delay has elapsed since creation."""

        current = to_utc_aware_datetime(now) if now is not None else utc_now()
        return current >= self.created_at + self.delay

    def __eq__(self, other: object) -> bool:
        # SQLite round trips are exact, but other substrates may drop sub-second
        # precision, so timestamps compare at whole seconds.
        if not isinstance(other, Task):
            return NotImplemented
        return (
            self.identity == other.identity
            and self.digest == other.digest
            and self.dependencies == other.dependencies
            and self.delay == other.delay
            and _whole_seconds(self.created_at) == _whole_seconds(other.created_at)
            and _whole_seconds(self.last_attempt) == _whole_seconds(other.last_attempt)
        )

    def __hash__(self) -> int:
        return hash(self.identity)


@dataclass(slots=True)
class ReconcileSummary:
    """Outcome of the open-time validity sweep."""

    checked: int = 0
    deleted_pending: int = 0
    deleted_failed: int = 0

    @property
    def deleted(self) -> int:
        return self.deleted_pending + self.deleted_failed


def _whole_seconds(value: datetime) -> int:
    return int(value.timestamp())
