"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class Phase(StrEnum):
    """Coarse lifecycle state of a parent or child resource."""

    INIT = "Init"
    PENDING = "PendingDependencies"
    PROGRESSING = "Progressing"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"


class ConditionStatus(StrEnum):
    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


class ConditionType(StrEnum):
    ENSURE_CHILDREN = "EnsureChildren"


class ResourceKind(StrEnum):
    """Discriminator used by owner references."""

    PARENT = "Parent"
    CHILD = "Child"


class Reason(StrEnum):
    """Reason codes written onto the ``EnsureChildren`` condition."""

    CHILD_NOT_FOUND = "ChildNotFound"
    CHILD_NOT_DELETED = "ChildNotDeleted"
    DEFINITION_NOT_FOUND = "DefinitionNotFound"
    INSTALLATION_CREATING_FAILED = "InstallationCreatingFailed"
    INSTALLATIONS_INSTALLED = "InstallationsInstalled"
