"""Create or update one declared child.

A managed child carries exactly the encompassed-by label; any other label is
replaced on the next upsert.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import StrEnum
from typing import TYPE_CHECKING

from fanout.domain.errors import (
    ChildUpsertError,
    ConflictError,
    DefinitionResolutionError,
    MutationError,
    NotFoundError,
    OwnershipError,
    ReconcileInterrupted,
    RegistryError,
    StatusPersistError,
    StoreError,
)
from fanout.domain.model import (
    ENCOMPASSED_BY_LABEL,
    ChildResource,
    ChildSpec,
    NamedObjectReference,
    ObjectMeta,
    Phase,
    Reason,
)
from fanout.domain.reconciliation.compare import default_mappings

if TYPE_CHECKING:
    from collections.abc import Callable

    from fanout.domain.context import ReconcileContext
    from fanout.domain.model import DeclaredChild, DefinitionDocument, ParentResource
    from fanout.domain.ports import DefinitionRegistry, OwnershipLinker, ResourceStore
    from fanout.domain.reconciliation.reporting import StatusReporter

log = logging.getLogger(__name__)

type ChildMutator = Callable[[ChildResource], ChildResource]


class OperationResult(StrEnum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


@dataclass(frozen=True, slots=True)
class UpsertResult:
    parent: ParentResource
    child: ChildResource
    operation: OperationResult


def create_or_update_child(
    store: ResourceStore,
    child: ChildResource,
    mutate: ChildMutator,
    *,
    ctx: ReconcileContext,
) -> tuple[ChildResource, OperationResult]:
    """Create ``child`` or bring the stored copy in line with ``mutate``.

    Unnamed children (only ``generate_name`` set) are always created. The
    mutator receives the freshest stored copy and must keep its identity.
    """

    current: ChildResource | None = None
    if child.metadata.name:
        try:
            current = store.get_child(child.reference, ctx=ctx)
        except NotFoundError:
            current = None

    if current is None:
        desired = mutate(child)
        _ensure_same_identity(child, desired)
        return store.create_child(desired, ctx=ctx), OperationResult.CREATED

    desired = mutate(current)
    _ensure_same_identity(current, desired)
    if desired == current:
        return current, OperationResult.UNCHANGED
    return store.update_child(desired, ctx=ctx), OperationResult.UPDATED


def _ensure_same_identity(before: ChildResource, after: ChildResource) -> None:
    if (before.metadata.name, before.metadata.namespace) != (
        after.metadata.name,
        after.metadata.namespace,
    ):
        raise MutationError(
            f"Mutator changed object identity from {before.reference} to {after.reference}"
        )


def child_name_prefix(definition: DefinitionDocument, declared: DeclaredChild) -> str:
    return f"{definition.name}-{declared.name}-"


def new_child(
    parent: ParentResource,
    definition: DefinitionDocument,
    declared: DeclaredChild,
) -> ChildResource:
    return ChildResource(
        metadata=ObjectMeta(
            namespace=parent.metadata.namespace,
            generate_name=child_name_prefix(definition, declared),
        )
    )


def upsert_child(  # noqa: PLR0913
    parent: ParentResource,
    definition: DefinitionDocument,
    declared: DeclaredChild,
    existing: ChildResource | None,
    *,
    store: ResourceStore,
    registry: DefinitionRegistry,
    linker: OwnershipLinker,
    reporter: StatusReporter,
    ctx: ReconcileContext,
) -> UpsertResult:
    child = existing if existing is not None else new_child(parent, definition, declared)

    try:
        child_definition = registry.get_definition(declared.definition_ref, ctx=ctx)
    except ReconcileInterrupted:
        raise
    except RegistryError as exc:
        reporter.report_failure(
            parent,
            phase=Phase.FAILED,
            reason=Reason.DEFINITION_NOT_FOUND,
            message=f"Definition {declared.definition_ref} for {declared.name} cannot be found",
            ctx=ctx,
        )
        raise DefinitionResolutionError(
            f"unable to get definition {declared.definition_ref} for {declared.name}",
            reason=Reason.DEFINITION_NOT_FOUND,
        ) from exc

    inherited_imports, inherited_exports = default_mappings(declared, child_definition)

    def mutate(current: ChildResource) -> ChildResource:
        labelled = replace(
            current,
            metadata=current.metadata.with_labels({ENCOMPASSED_BY_LABEL: parent.metadata.name}),
        )
        owned = linker.set_owner(parent, labelled)
        return replace(
            owned,
            spec=ChildSpec(
                definition_ref=declared.definition_ref,
                imports=declared.imports,
                exports=declared.exports,
                inherited_imports=inherited_imports,
                inherited_exports=inherited_exports,
            ),
        )

    try:
        child, operation = create_or_update_child(store, child, mutate, ctx=ctx)
    except ReconcileInterrupted:
        raise
    except (StoreError, OwnershipError, MutationError) as exc:
        reporter.report_failure(
            parent,
            phase=Phase.FAILED,
            reason=Reason.INSTALLATION_CREATING_FAILED,
            message=f"Child {declared.name} cannot be created",
            ctx=ctx,
        )
        raise ChildUpsertError(
            f"unable to create child for {declared.name}",
            reason=Reason.INSTALLATION_CREATING_FAILED,
        ) from exc

    log.info("Child %s for %s: %s", child.reference, declared.name, operation)
    if operation is not OperationResult.CREATED:
        return UpsertResult(parent=parent, child=child, operation=operation)

    tracked = tuple(
        entry for entry in parent.status.tracked_children if entry.name != declared.name
    ) + (NamedObjectReference(name=declared.name, reference=child.reference),)
    try:
        parent = reporter.persist(
            parent, replace(parent.status, tracked_children=tracked), ctx=ctx
        )
    except (ReconcileInterrupted, ConflictError):
        raise
    except StoreError as exc:
        raise StatusPersistError(
            f"unable to add new child for {declared.name} to tracked children"
        ) from exc
    return UpsertResult(parent=parent, child=child, operation=operation)
