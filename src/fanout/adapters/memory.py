"""In-process store and registry backed by dictionaries."""

from __future__ import annotations

import secrets
import threading
import uuid
from dataclasses import replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Final

from fanout.domain.errors import (
    AlreadyExistsError,
    ConflictError,
    DefinitionNotFoundError,
    NotFoundError,
)
from fanout.domain.model import ChildResource, ObjectReference, ParentResource

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping

    from fanout.domain.context import ReconcileContext
    from fanout.domain.model import DefinitionDocument, DefinitionRef, Phase

# Same alphabet and length the usual generate-name implementations use.
_NAME_ALPHABET: Final[str] = "bcdfghjklmnpqrstvwxz2456789"
_NAME_SUFFIX_LENGTH: Final[int] = 5


def random_name_suffix() -> str:
    return "".join(secrets.choice(_NAME_ALPHABET) for _ in range(_NAME_SUFFIX_LENGTH))


def _utcnow() -> datetime:
    return datetime.now(UTC)


class InMemoryResourceStore:
    """Dictionary-backed :class:`~fanout.domain.ports.ResourceStore`.

    Deleting a child that carries finalizers only sets its deletion marker;
    :meth:`finalize_child` completes the deletion. Deleting a parent removes
    every child it controls.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], datetime] = _utcnow,
        name_suffix: Callable[[], str] = random_name_suffix,
    ) -> None:
        self._clock = clock
        self._name_suffix = name_suffix
        self._lock = threading.Lock()
        self._version = 0
        self._parents: dict[ObjectReference, ParentResource] = {}
        self._children: dict[ObjectReference, ChildResource] = {}

    # parents ------------------------------------------------------------

    def get_parent(self, ref: ObjectReference, *, ctx: ReconcileContext) -> ParentResource:
        ctx.check()
        with self._lock:
            try:
                return self._parents[ref]
            except KeyError:
                raise NotFoundError("Parent", ref) from None

    def create_parent(self, parent: ParentResource, *, ctx: ReconcileContext) -> ParentResource:
        ctx.check()
        with self._lock:
            ref = parent.reference
            if ref in self._parents:
                raise AlreadyExistsError("Parent", ref)
            stored = replace(
                parent,
                metadata=replace(
                    parent.metadata,
                    uid=uuid.uuid4(),
                    resource_version=self._next_version(),
                    creation_timestamp=self._clock(),
                ),
            )
            self._parents[ref] = stored
            return stored

    def update_parent_status(
        self, parent: ParentResource, *, ctx: ReconcileContext
    ) -> ParentResource:
        ctx.check()
        with self._lock:
            ref = parent.reference
            current = self._parents.get(ref)
            if current is None:
                raise NotFoundError("Parent", ref)
            self._check_version("Parent", ref, current.metadata.resource_version, parent)
            stored = replace(
                current,
                metadata=replace(current.metadata, resource_version=self._next_version()),
                status=parent.status,
            )
            self._parents[ref] = stored
            return stored

    def delete_parent(self, ref: ObjectReference, *, ctx: ReconcileContext) -> None:
        ctx.check()
        with self._lock:
            parent = self._parents.pop(ref, None)
            if parent is None:
                raise NotFoundError("Parent", ref)
            for child_ref, child in list(self._children.items()):
                controller = child.metadata.controller_reference()
                if controller is not None and controller.uid == parent.metadata.uid:
                    del self._children[child_ref]

    # children -----------------------------------------------------------

    def get_child(self, ref: ObjectReference, *, ctx: ReconcileContext) -> ChildResource:
        ctx.check()
        with self._lock:
            try:
                return self._children[ref]
            except KeyError:
                raise NotFoundError("Child", ref) from None

    def create_child(self, child: ChildResource, *, ctx: ReconcileContext) -> ChildResource:
        ctx.check()
        with self._lock:
            name = child.metadata.name or self._generate_name(child)
            ref = ObjectReference(namespace=child.metadata.namespace, name=name)
            if ref in self._children:
                raise AlreadyExistsError("Child", ref)
            stored = replace(
                child,
                metadata=replace(
                    child.metadata,
                    name=name,
                    uid=uuid.uuid4(),
                    resource_version=self._next_version(),
                    creation_timestamp=self._clock(),
                    deletion_timestamp=None,
                ),
            )
            self._children[ref] = stored
            return stored

    def update_child(self, child: ChildResource, *, ctx: ReconcileContext) -> ChildResource:
        ctx.check()
        with self._lock:
            ref = child.reference
            current = self._children.get(ref)
            if current is None:
                raise NotFoundError("Child", ref)
            self._check_version("Child", ref, current.metadata.resource_version, child)
            stored = replace(
                child,
                metadata=replace(
                    child.metadata,
                    uid=current.metadata.uid,
                    creation_timestamp=current.metadata.creation_timestamp,
                    deletion_timestamp=current.metadata.deletion_timestamp,
                    resource_version=self._next_version(),
                ),
            )
            self._children[ref] = stored
            return stored

    def set_child_phase(self, ref: ObjectReference, phase: Phase) -> ChildResource:
        """Simulate the child's own controller moving it to ``phase``."""

        with self._lock:
            current = self._children.get(ref)
            if current is None:
                raise NotFoundError("Child", ref)
            stored = replace(
                current,
                metadata=replace(current.metadata, resource_version=self._next_version()),
                status=replace(current.status, phase=phase),
            )
            self._children[ref] = stored
            return stored

    def delete_child(self, ref: ObjectReference, *, ctx: ReconcileContext) -> None:
        ctx.check()
        with self._lock:
            current = self._children.get(ref)
            if current is None:
                raise NotFoundError("Child", ref)
            if not current.metadata.finalizers:
                del self._children[ref]
                return
            if current.metadata.pending_deletion:
                return
            self._children[ref] = replace(
                current,
                metadata=replace(
                    current.metadata,
                    deletion_timestamp=self._clock(),
                    resource_version=self._next_version(),
                ),
            )

    def finalize_child(self, ref: ObjectReference) -> None:
        """Drop all finalizers, completing a pending deletion."""

        with self._lock:
            current = self._children.get(ref)
            if current is None:
                raise NotFoundError("Child", ref)
            if current.metadata.pending_deletion:
                del self._children[ref]
                return
            self._children[ref] = replace(
                current,
                metadata=replace(
                    current.metadata,
                    finalizers=(),
                    resource_version=self._next_version(),
                ),
            )

    def list_children(
        self,
        namespace: str,
        *,
        labels: Mapping[str, str] | None = None,
        ctx: ReconcileContext,
    ) -> list[ChildResource]:
        ctx.check()
        selector = dict(labels or {})
        with self._lock:
            return sorted(
                (
                    child
                    for ref, child in self._children.items()
                    if ref.namespace == namespace
                    and all(child.metadata.labels.get(k) == v for k, v in selector.items())
                ),
                key=lambda child: child.metadata.name,
            )

    # helpers ------------------------------------------------------------

    def _next_version(self) -> int:
        self._version += 1
        return self._version

    def _generate_name(self, child: ChildResource) -> str:
        prefix = child.metadata.generate_name
        if not prefix:
            raise ValueError("Child needs either a name or a generate_name prefix")
        for _ in range(16):
            candidate = f"{prefix}{self._name_suffix()}"
            ref = ObjectReference(namespace=child.metadata.namespace, name=candidate)
            if ref not in self._children:
                return candidate
        raise AlreadyExistsError("Child", f"{child.metadata.namespace}/{prefix}*")

    @staticmethod
    def _check_version(
        kind: str,
        ref: ObjectReference,
        stored_version: int,
        incoming: ParentResource | ChildResource,
    ) -> None:
        expected = incoming.metadata.resource_version
        if expected and expected != stored_version:
            raise ConflictError(kind, ref, expected=expected)


class InMemoryDefinitionRegistry:
    """Dictionary-backed :class:`~fanout.domain.ports.DefinitionRegistry`."""

    def __init__(self, definitions: Iterable[DefinitionDocument] = ()) -> None:
        self._definitions: dict[DefinitionRef, DefinitionDocument] = {}
        for definition in definitions:
            self.add(definition)

    def add(self, definition: DefinitionDocument) -> None:
        self._definitions[definition.ref] = definition

    def get_definition(
        self, ref: DefinitionRef, *, ctx: ReconcileContext
    ) -> DefinitionDocument:
        ctx.check()
        try:
            return self._definitions[ref]
        except KeyError:
            raise DefinitionNotFoundError(ref) from None


if TYPE_CHECKING:
    from fanout.domain.ports import DefinitionRegistry, ResourceStore

    _store_check: ResourceStore = InMemoryResourceStore()
    _registry_check: DefinitionRegistry = InMemoryDefinitionRegistry()
