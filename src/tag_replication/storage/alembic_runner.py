"""Programmatic Alembic setup for the migrations shipped inside the package."""

from __future__ import annotations

from pathlib import Path

from alembic import command
from alembic.config import Config

ALEMBIC_HEAD = "20261019_0001"
MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"


def build_alembic_config(db_path: Path) -> Config:
    """Alembic config for ``db_path`` that needs no ``alembic.ini`` on disk."""

    config = Config()
    config.set_main_option("script_location", _escape(str(MIGRATIONS_DIR)))
    config.set_main_option("sqlalchemy.url", _escape(f"sqlite:///{db_path}"))
    return config


def upgrade_head(db_path: Path) -> None:
    """Bring the task store schema at ``db_path`` up to the latest revision."""

    command.upgrade(build_alembic_config(db_path), "head")


def _escape(value: str) -> str:
    # Config values go through ConfigParser interpolation.
    return value.replace("%", "%%")
