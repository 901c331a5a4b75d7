"""Definition registry adapters."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fanout.config.registry import FileRegistryConfig, HttpRegistryConfig

from .filesystem import FileDefinitionRegistry
from .http import HttpDefinitionRegistry
from .translator import parse_definition, translate_definition

if TYPE_CHECKING:
    from fanout.config.registry import RegistryConfig
    from fanout.domain.ports import DefinitionRegistry


def build_registry(config: RegistryConfig) -> DefinitionRegistry:
    """Return the registry adapter matching ``config``."""

    match config:
        case HttpRegistryConfig():
            return HttpDefinitionRegistry(config=config)
        case FileRegistryConfig():
            return FileDefinitionRegistry(config.directory)


__all__ = [
    "FileDefinitionRegistry",
    "HttpDefinitionRegistry",
    "build_registry",
    "parse_definition",
    "translate_definition",
]
