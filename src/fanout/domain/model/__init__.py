"""Domain model for parents, children and definition documents."""

from __future__ import annotations

from .definitions import (
    DataDefinition,
    DataMapping,
    DeclaredChild,
    DefinitionDocument,
    DefinitionRef,
)
from .enums import ConditionStatus, ConditionType, Phase, Reason, ResourceKind
from .meta import (
    ENCOMPASSED_BY_LABEL,
    NamedObjectReference,
    ObjectMeta,
    ObjectReference,
    OwnerReference,
)
from .resources import (
    ChildResource,
    ChildSpec,
    ChildStatus,
    Condition,
    ParentResource,
    ParentSpec,
    ParentStatus,
)

__all__ = [
    "ENCOMPASSED_BY_LABEL",
    "ChildResource",
    "ChildSpec",
    "ChildStatus",
    "Condition",
    "ConditionStatus",
    "ConditionType",
    "DataDefinition",
    "DataMapping",
    "DeclaredChild",
    "DefinitionDocument",
    "DefinitionRef",
    "NamedObjectReference",
    "ObjectMeta",
    "ObjectReference",
    "OwnerReference",
    "ParentResource",
    "ParentSpec",
    "ParentStatus",
    "Phase",
    "Reason",
    "ResourceKind",
]
