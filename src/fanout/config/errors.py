"""Configuration error definitions."""

from __future__ import annotations

from fanout.domain.errors import FanoutError


class ConfigurationError(FanoutError):
    """Raised when configuration values are invalid."""


class MissingConfigurationError(ConfigurationError):
    """Raised when required configuration values are absent or blank."""
