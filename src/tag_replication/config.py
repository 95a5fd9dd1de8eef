"""Runtime configuration for the replication task store."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path


@dataclass(slots=True)
class ReplicationSettings:
    """Replication target and task defaults."""

    remotes: tuple[str, ...] = ()
    default_delay_seconds: int = 0

    @property
    def default_delay(self) -> timedelta:
        return timedelta(seconds=self.default_delay_seconds)


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    db_path: Path = Path(".tag_replication.db")
    sqlite_busy_timeout_ms: int = 5_000
    replication: ReplicationSettings = field(default_factory=ReplicationSettings)

    @classmethod
    def from_env(cls, db_path: Path | None = None) -> Settings:
        """Load settings from environment with sane defaults for local development."""

        return cls(
            db_path=db_path or Path(os.getenv("TAG_REPLICATION_DB_PATH", ".tag_replication.db")),
            sqlite_busy_timeout_ms=_env_int("TAG_REPLICATION_SQLITE_BUSY_TIMEOUT_MS", 5_000),
            replication=ReplicationSettings(
                remotes=_collect_remotes(),
                default_delay_seconds=_env_int("TAG_REPLICATION_DEFAULT_DELAY_SECONDS", 0),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error for out-of-range values."""

        if self.sqlite_busy_timeout_ms <= 0:
            raise ValueError("TAG_REPLICATION_SQLITE_BUSY_TIMEOUT_MS must be > 0.")
        if self.replication.default_delay_seconds < 0:
            raise ValueError("TAG_REPLICATION_DEFAULT_DELAY_SECONDS must be >= 0.")


def _collect_remotes() -> tuple[str, ...]:
    raw = os.getenv("TAG_REPLICATION_REMOTES", "").strip()
    if not raw:
        return ()

    remotes: list[str] = []
    seen: set[str] = set()
    for part in raw.split(","):
        remote = part.strip()
        if not remote or remote in seen:
            continue
        seen.add(remote)
        remotes.append(remote)
    return tuple(remotes)


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value.strip())
    except ValueError as error:
        raise ValueError(f"Invalid integer value for {name}: {value!r}") from error
