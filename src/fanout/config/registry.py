"""Definition registry configuration values."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from .env import env_float, optional_env_var
from .errors import ConfigurationError, MissingConfigurationError

if TYPE_CHECKING:
    from collections.abc import Mapping

REGISTRY_URL_ENV = "FANOUT_REGISTRY_URL"
DEFINITIONS_DIR_ENV = "FANOUT_DEFINITIONS_DIR"
REGISTRY_TIMEOUT_ENV = "FANOUT_REGISTRY_TIMEOUT"
REGISTRY_TOKEN_ENV = "FANOUT_REGISTRY_TOKEN"  # noqa: S105

DEFAULT_REGISTRY_TIMEOUT_SECONDS = 10.0


@dataclass(frozen=True, slots=True)
class HttpRegistryConfig:
    base_url: str
    timeout_seconds: float = DEFAULT_REGISTRY_TIMEOUT_SECONDS
    default_headers: Mapping[str, str] = field(default_factory=dict[str, str])


@dataclass(frozen=True, slots=True)
class FileRegistryConfig:
    directory: Path


type RegistryConfig = HttpRegistryConfig | FileRegistryConfig


def get_registry_config() -> RegistryConfig:
    """Pick the registry backend from the environment.

    ``FANOUT_REGISTRY_URL`` wins over ``FANOUT_DEFINITIONS_DIR``.
    """

    base_url = optional_env_var(REGISTRY_URL_ENV)
    if base_url is not None:
        timeout = env_float(REGISTRY_TIMEOUT_ENV, DEFAULT_REGISTRY_TIMEOUT_SECONDS)
        if timeout <= 0:
            raise ConfigurationError(f"{REGISTRY_TIMEOUT_ENV} must be positive")
        headers: dict[str, str] = {"Accept": "application/json"}
        token = optional_env_var(REGISTRY_TOKEN_ENV)
        if token is not None:
            headers["Authorization"] = f"Bearer {token}"
        return HttpRegistryConfig(
            base_url=base_url.rstrip("/"),
            timeout_seconds=timeout,
            default_headers=headers,
        )

    directory = optional_env_var(DEFINITIONS_DIR_ENV)
    if directory is not None:
        return FileRegistryConfig(directory=Path(directory).expanduser())

    raise MissingConfigurationError(
        f"Missing configuration for: {DEFINITIONS_DIR_ENV} or {REGISTRY_URL_ENV}"
    )
