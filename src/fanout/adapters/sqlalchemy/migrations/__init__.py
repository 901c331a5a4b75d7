"""Utilities for managing Alembic migrations within the SQLAlchemy adapter."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Final

from alembic import command
from alembic.config import Config

from fanout.config.storage import get_database_uri

MIGRATIONS_PATH: Final[Path] = Path(__file__).resolve().parent

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine


def build_config(*, database_uri: str | None = None) -> Config:
    """Return an Alembic Config pointing at the packaged migration scripts."""

    config = Config()
    config.set_main_option("script_location", str(MIGRATIONS_PATH))
    if database_uri is not None:
        config.set_main_option("sqlalchemy.url", database_uri)
    return config


def upgrade_head(*, engine: Engine | None = None, database_uri: str | None = None) -> None:
    """Upgrade the database schema to the latest revision."""

    if engine is not None:
        config = build_config()
        with engine.begin() as connection:
            config.attributes["connection"] = connection
            command.upgrade(config, "head")
        return
    config = build_config(database_uri=database_uri or get_database_uri())
    command.upgrade(config, "head")
