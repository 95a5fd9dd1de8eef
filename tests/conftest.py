"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from tag_replication.models import Task
from tag_replication.store import TaskStore
from tag_replication.validator import RemoteValidator


@pytest.fixture()
def task_factory() -> Callable[..., Task]:
    """Build tasks with unique identities unless overridden."""

    def _make(**overrides: object) -> Task:
        suffix = uuid4().hex[:12]
        values: dict[str, object] = {
            "tag": f"library/app-{suffix}:latest",
            "destination": f"build-index-{suffix}:8080",
            "digest": f"sha256:{uuid4().hex}",
            "dependencies": (f"sha256:{uuid4().hex}", f"sha256:{uuid4().hex}"),
        }
        values.update(overrides)
        return Task(**values)  # type: ignore[arg-type]

    return _make


@pytest.fixture()
def validator() -> MagicMock:
    """Remote validator that accepts everything unless reconfigured."""

    mock = MagicMock(spec=RemoteValidator)
    mock.valid.return_value = True
    return mock


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "replication.db"


@pytest.fixture()
def store(db_path: Path, validator: MagicMock) -> Iterator[TaskStore]:
    task_store = TaskStore(db_path, validator)
    yield task_store
    if not task_store.closed:
        task_store.close()
