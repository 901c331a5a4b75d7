"""Domain port definitions for adapters."""

from __future__ import annotations

from .ownership import OwnershipLinker
from .registry import DefinitionRegistry
from .store import ResourceStore

__all__ = [
    "DefinitionRegistry",
    "OwnershipLinker",
    "ResourceStore",
]
