"""Application orchestration entry points."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from fanout.adapters.ownership import ControllerOwnershipLinker
from fanout.adapters.registry import build_registry
from fanout.adapters.sqlalchemy import SqlAlchemyResourceStore, is_started, startup
from fanout.config import get_registry_config
from fanout.domain.context import ReconcileContext, background
from fanout.domain.model import (
    ENCOMPASSED_BY_LABEL,
    ObjectMeta,
    ObjectReference,
    ParentResource,
    ParentSpec,
)
from fanout.domain.reconciliation import ChildReconciler

if TYPE_CHECKING:
    from collections.abc import Mapping

    from fanout.domain.model import ChildResource
    from fanout.domain.ports import DefinitionRegistry, OwnershipLinker, ResourceStore
    from fanout.domain.reconciliation import ReconcileOutcome

DEFAULT_NAMESPACE = "default"

log = getLogger(__name__)


class ParentManifest(BaseModel):
    """User-supplied description of a parent resource."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = Field(min_length=1)
    namespace: str = Field(default=DEFAULT_NAMESPACE, min_length=1)
    definition: str = Field(min_length=1)
    labels: dict[str, str] = Field(default_factory=dict[str, str])


@dataclass(frozen=True, slots=True)
class ParentDescription:
    parent: ParentResource
    children: tuple[ChildResource, ...]


def parse_manifest(manifest: Mapping[str, object]) -> ParentResource:
    """Validate a manifest mapping; raises ``ValueError`` when it is malformed."""

    validated = ParentManifest.model_validate(manifest)
    return ParentResource(
        metadata=ObjectMeta(
            name=validated.name,
            namespace=validated.namespace,
            labels=validated.labels,
        ),
        spec=ParentSpec(definition_ref=validated.definition),
    )


def _default_store() -> ResourceStore:
    if not is_started():
        startup()
    return SqlAlchemyResourceStore()


def _as_reference(ref: ObjectReference | str) -> ObjectReference:
    return ref if isinstance(ref, ObjectReference) else ObjectReference.parse(ref)


def apply_parent(
    manifest: Mapping[str, object],
    *,
    store: ResourceStore | None = None,
) -> ParentResource:
    """Create the parent described by ``manifest``."""

    parent = parse_manifest(manifest)
    created = (store or _default_store()).create_parent(parent, ctx=background())
    log.info(
        "Created parent %s (definition %s)",
        created.reference,
        created.spec.definition_ref,
    )
    return created


def reconcile_parent(
    ref: ObjectReference | str,
    *,
    store: ResourceStore | None = None,
    registry: DefinitionRegistry | None = None,
    linker: OwnershipLinker | None = None,
    timeout: float | None = None,
) -> ReconcileOutcome:
    """Run one reconciliation pass for the parent at ``ref``."""

    reference = _as_reference(ref)
    ctx = ReconcileContext.with_timeout(timeout) if timeout is not None else background()
    effective_store = store or _default_store()
    effective_registry = registry or build_registry(get_registry_config())

    parent = effective_store.get_parent(reference, ctx=ctx)
    definition = effective_registry.get_definition(parent.spec.definition_ref, ctx=ctx)
    log.info(
        "Reconciling %s against %s (%d declared children)",
        reference,
        definition.ref,
        len(definition.children),
    )

    reconciler = ChildReconciler(
        store=effective_store,
        registry=effective_registry,
        linker=linker or ControllerOwnershipLinker(),
    )
    outcome = reconciler.reconcile(parent, definition, ctx=ctx)

    log.info(
        "Finished reconciling %s: result=%s, created=%s, updated=%s, deleted=%s",
        reference,
        outcome.result,
        len(outcome.created),
        len(outcome.updated),
        len(outcome.deleted),
    )
    return outcome


def describe_parent(
    ref: ObjectReference | str,
    *,
    store: ResourceStore | None = None,
) -> ParentDescription:
    """Return the parent at ``ref`` together with the children it encompasses."""

    reference = _as_reference(ref)
    effective_store = store or _default_store()
    ctx = background()
    parent = effective_store.get_parent(reference, ctx=ctx)
    children = effective_store.list_children(
        reference.namespace,
        labels={ENCOMPASSED_BY_LABEL: reference.name},
        ctx=ctx,
    )
    return ParentDescription(parent=parent, children=tuple(children))
