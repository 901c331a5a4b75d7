"""Application configuration helpers."""

from __future__ import annotations

from .env import env_float, optional_env_var
from .errors import ConfigurationError, MissingConfigurationError
from .logging import configure_logging
from .registry import (
    FileRegistryConfig,
    HttpRegistryConfig,
    RegistryConfig,
    get_registry_config,
)
from .storage import data_dir, get_database_uri

__all__ = [
    "ConfigurationError",
    "FileRegistryConfig",
    "HttpRegistryConfig",
    "MissingConfigurationError",
    "RegistryConfig",
    "configure_logging",
    "data_dir",
    "env_float",
    "get_database_uri",
    "get_registry_config",
    "optional_env_var",
]
