"""
Object identity building blocks shared by parents and children:
references, owner links, store-managed metadata.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Final
from uuid import UUID

from fanout.domain.model.enums import ResourceKind

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

ENCOMPASSED_BY_LABEL: Final[str] = "fanout.io/encompassed-by"


@dataclass(frozen=True, slots=True, order=True)
class ObjectReference:
    """Namespace-qualified name of a stored resource."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"

    @classmethod
    def parse(cls, value: str) -> ObjectReference:
        namespace, sep, name = value.strip().partition("/")
        if not sep or not namespace or not name or "/" in name:
            raise ValueError(f"Invalid object reference (expected NAMESPACE/NAME): {value!r}")
        return cls(namespace=namespace, name=name)


@dataclass(frozen=True, slots=True)
class NamedObjectReference:
    """One tracked child: the declared name plus where the child lives."""

    name: str
    reference: ObjectReference


@dataclass(frozen=True, slots=True, kw_only=True)
class OwnerReference:
    kind: ResourceKind
    name: str
    uid: UUID
    controller: bool = True
    block_owner_deletion: bool = True


@dataclass(frozen=True, slots=True, kw_only=True)
class ObjectMeta:
    """Store-managed metadata.

    ``uid`` and ``resource_version`` are assigned by the store on create and
    ``resource_version`` is bumped on every write. ``generate_name`` is only
    consulted when ``name`` is empty at creation time.
    """

    name: str = ""
    namespace: str
    generate_name: str = ""
    uid: UUID | None = None
    resource_version: int = 0
    labels: Mapping[str, str] = field(default_factory=dict[str, str])
    owner_references: tuple[OwnerReference, ...] = ()
    finalizers: tuple[str, ...] = ()
    deletion_timestamp: datetime | None = None
    creation_timestamp: datetime | None = None

    @property
    def reference(self) -> ObjectReference:
        return ObjectReference(namespace=self.namespace, name=self.name)

    @property
    def pending_deletion(self) -> bool:
        return self.deletion_timestamp is not None

    def controller_reference(self) -> OwnerReference | None:
        for owner in self.owner_references:
            if owner.controller:
                return owner
        return None

    def with_labels(self, labels: Mapping[str, str]) -> ObjectMeta:
        """Return a copy carrying exactly ``labels``."""

        return replace(self, labels=dict(labels))
