"""Error taxonomy of the replication task store."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, eq=False)
class TaskStoreError(RuntimeError):
    """Base task store error."""

    message: str

    def __str__(self) -> str:
        return self.message


@dataclass(slots=True, eq=False)
class TaskIdentityError(TaskStoreError):
    """Error bound to one (tag, destination) identity."""

    tag: str = ""
    destination: str = ""


@dataclass(slots=True, eq=False)
class TaskExistsError(TaskIdentityError):
    """Identity is already stored as pending or failed."""


@dataclass(slots=True, eq=False)
class TaskNotFoundError(TaskIdentityError):
    """Identity is absent from the collection the operation reads from."""


@dataclass(slots=True, eq=False)
class ReconciliationError(TaskIdentityError):
    """Remote validator failed while sweeping persisted tasks at open."""


@dataclass(slots=True, eq=False)
class StoreClosedError(TaskStoreError):
    """Store was used after close."""
