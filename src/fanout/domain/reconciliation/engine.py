"""Orchestrator for one reconciliation pass of a parent's children.

A pass runs Fetching -> Gating -> Pruning -> Upserting -> Reporting and ends
early on the first error, on a child that is still in flight, or after any
orphan was deleted. Everything is re-derived from the store on each pass, so
the caller recovers from any failure by simply running the pass again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING

from fanout.domain.context import background
from fanout.domain.errors import (
    ConflictError,
    ReconcileInterrupted,
    StatusPersistError,
    StoreError,
)
from fanout.domain.model import ConditionStatus, Phase, Reason
from fanout.domain.reconciliation.compare import needs_update
from fanout.domain.reconciliation.fetch import load_children
from fanout.domain.reconciliation.gate import find_blocking_child
from fanout.domain.reconciliation.prune import prune_orphans
from fanout.domain.reconciliation.reporting import StatusReporter, updated_condition
from fanout.domain.reconciliation.upsert import OperationResult, upsert_child

if TYPE_CHECKING:
    from collections.abc import Callable

    from fanout.domain.context import ReconcileContext
    from fanout.domain.model import (
        Condition,
        DefinitionDocument,
        ObjectReference,
        ParentResource,
    )
    from fanout.domain.ports import DefinitionRegistry, OwnershipLinker, ResourceStore

log = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ReconcileResult(StrEnum):
    WAITING = "waiting"
    PRUNED = "pruned"
    INSTALLED = "installed"


@dataclass(frozen=True, slots=True, kw_only=True)
class ReconcileOutcome:
    """What a successful pass did; ``parent`` is the last persisted copy."""

    result: ReconcileResult
    parent: ParentResource
    created: tuple[str, ...] = ()
    updated: tuple[str, ...] = ()
    deleted: tuple[str, ...] = ()
    blocked_by: ObjectReference | None = None


@dataclass(slots=True)
class ChildReconciler:
    """Drive a parent's children toward the set its definition declares."""

    store: ResourceStore
    registry: DefinitionRegistry
    linker: OwnershipLinker
    clock: Callable[[], datetime] = _utcnow

    def reconcile(
        self,
        parent: ParentResource,
        definition: DefinitionDocument,
        *,
        ctx: ReconcileContext | None = None,
    ) -> ReconcileOutcome:
        """Run one pass for ``parent`` against ``definition``."""

        effective_ctx = ctx or background()
        reporter = StatusReporter(store=self.store, clock=self.clock)

        fetched = load_children(parent, store=self.store, reporter=reporter, ctx=effective_ctx)
        parent, children = fetched.parent, fetched.children

        blocking = find_blocking_child(children.values())
        if blocking is not None:
            log.info("Deferring %s until %s settles", parent.reference, blocking.reference)
            parent = self._write(
                reporter,
                parent,
                phase=Phase.PROGRESSING,
                ctx=effective_ctx,
            )
            return ReconcileOutcome(
                result=ReconcileResult.WAITING,
                parent=parent,
                blocked_by=blocking.reference,
            )

        pruned = prune_orphans(
            parent,
            definition,
            children,
            store=self.store,
            reporter=reporter,
            ctx=effective_ctx,
        )
        if pruned.any_deleted:
            log.info("Deleted orphans %s of %s", ", ".join(pruned.deleted), parent.reference)
            return ReconcileOutcome(
                result=ReconcileResult.PRUNED,
                parent=pruned.parent,
                deleted=pruned.deleted,
            )
        parent = pruned.parent

        created: list[str] = []
        updated: list[str] = []
        for declared in definition.children:
            existing = children.get(declared.name)
            if existing is not None and not needs_update(declared, existing):
                continue
            upserted = upsert_child(
                parent,
                definition,
                declared,
                existing,
                store=self.store,
                registry=self.registry,
                linker=self.linker,
                reporter=reporter,
                ctx=effective_ctx,
            )
            parent = upserted.parent
            if upserted.operation is OperationResult.CREATED:
                created.append(declared.name)
            elif upserted.operation is OperationResult.UPDATED:
                updated.append(declared.name)

        condition = updated_condition(
            reporter.condition(parent),
            ConditionStatus.TRUE,
            Reason.INSTALLATIONS_INSTALLED,
            "All children are successfully installed",
            now=self.clock(),
        )
        parent = self._write(
            reporter,
            parent,
            phase=parent.status.phase,
            condition=condition,
            ctx=effective_ctx,
        )
        return ReconcileOutcome(
            result=ReconcileResult.INSTALLED,
            parent=parent,
            created=tuple(created),
            updated=tuple(updated),
        )

    def _write(
        self,
        reporter: StatusReporter,
        parent: ParentResource,
        *,
        phase: Phase,
        ctx: ReconcileContext,
        condition: Condition | None = None,
    ) -> ParentResource:
        try:
            return reporter.report(
                parent,
                phase=phase,
                condition=condition or reporter.condition(parent),
                ctx=ctx,
            )
        except (ReconcileInterrupted, ConflictError):
            raise
        except StoreError as exc:
            raise StatusPersistError(f"unable to update status of {parent.reference}") from exc
