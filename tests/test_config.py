from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import allure
import pytest

from tag_replication.config import ReplicationSettings, Settings
from tag_replication.controllers import build_validator
from tag_replication.validator import AcceptAllValidator, AllowlistRemoteValidator

pytestmark = [
    allure.epic("Replication Tasks"),
    allure.feature("Configuration"),
]

_ENV_VARS = (
    "TAG_REPLICATION_DB_PATH",
    "TAG_REPLICATION_SQLITE_BUSY_TIMEOUT_MS",
    "TAG_REPLICATION_REMOTES",
    "TAG_REPLICATION_DEFAULT_DELAY_SECONDS",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_from_env_defaults() -> None:
    settings = Settings.from_env()

    assert settings.db_path == Path(".tag_replication.db")
    assert settings.sqlite_busy_timeout_ms == 5_000
    assert settings.replication.remotes == ()
    assert settings.replication.default_delay == timedelta(0)


def test_from_env_reads_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("TAG_REPLICATION_DB_PATH", str(tmp_path / "env.db"))
    monkeypatch.setenv("TAG_REPLICATION_SQLITE_BUSY_TIMEOUT_MS", "250")
    monkeypatch.setenv("TAG_REPLICATION_REMOTES", "remote-a, remote-b,,remote-a")
    monkeypatch.setenv("TAG_REPLICATION_DEFAULT_DELAY_SECONDS", "30")

    settings = Settings.from_env()

    assert settings.db_path == tmp_path / "env.db"
    assert settings.sqlite_busy_timeout_ms == 250
    assert settings.replication.remotes == ("remote-a", "remote-b")
    assert settings.replication.default_delay == timedelta(seconds=30)


def test_explicit_db_path_wins_over_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("TAG_REPLICATION_DB_PATH", str(tmp_path / "env.db"))

    settings = Settings.from_env(db_path=tmp_path / "cli.db")

    assert settings.db_path == tmp_path / "cli.db"


def test_from_env_rejects_invalid_integer(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TAG_REPLICATION_SQLITE_BUSY_TIMEOUT_MS", "soon")

    with pytest.raises(ValueError, match="TAG_REPLICATION_SQLITE_BUSY_TIMEOUT_MS"):
        Settings.from_env()


def test_validate_rejects_out_of_range_values() -> None:
    with pytest.raises(ValueError, match="BUSY_TIMEOUT_MS must be > 0"):
        Settings(sqlite_busy_timeout_ms=0).validate()
    with pytest.raises(ValueError, match="DEFAULT_DELAY_SECONDS must be >= 0"):
        Settings(replication=ReplicationSettings(default_delay_seconds=-1)).validate()


def test_build_validator_requires_remotes_unless_keep_all() -> None:
    settings = Settings()

    with pytest.raises(ValueError, match="No replication remotes configured"):
        build_validator(settings, keep_all=False)
    assert isinstance(build_validator(settings, keep_all=True), AcceptAllValidator)


def test_build_validator_uses_configured_remotes() -> None:
    settings = Settings(replication=ReplicationSettings(remotes=("remote-a",)))

    validator = build_validator(settings, keep_all=False)

    assert isinstance(validator, AllowlistRemoteValidator)
    assert validator.remotes == ("remote-a",)
