"""Where the SQLAlchemy resource store keeps its database.

``DATABASE_URI`` wins outright. Otherwise parents and children live in
``fanout.db`` under ``FANOUT_DATA_DIR``, falling back to the XDG data home.
"""

from __future__ import annotations

from pathlib import Path
from typing import Final

from .env import optional_env_var

DATABASE_URI_ENV: Final[str] = "DATABASE_URI"
DATA_DIR_ENV: Final[str] = "FANOUT_DATA_DIR"
DEFAULT_DB_FILENAME: Final[str] = "fanout.db"


def data_dir() -> Path:
    configured = optional_env_var(DATA_DIR_ENV)
    if configured is not None:
        return Path(configured).expanduser().resolve()
    xdg_home = optional_env_var("XDG_DATA_HOME")
    base = Path(xdg_home) if xdg_home else Path.home() / ".local" / "share"
    return (base / "fanout").expanduser().resolve()


def get_database_uri(*, create_dir: bool = True) -> str:
    """Return the store's database URI, creating the data directory on demand."""

    override = optional_env_var(DATABASE_URI_ENV)
    if override is not None:
        return override
    directory = data_dir()
    if create_dir:
        directory.mkdir(parents=True, exist_ok=True)
    return f"sqlite+pysqlite:///{directory / DEFAULT_DB_FILENAME}"
