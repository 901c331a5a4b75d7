"""Delete children whose declared name left the definition."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from fanout.domain.errors import (
    ChildDeletionError,
    NotFoundError,
    ReconcileInterrupted,
    StoreError,
)
from fanout.domain.model import Phase, Reason

if TYPE_CHECKING:
    from collections.abc import Mapping

    from fanout.domain.context import ReconcileContext
    from fanout.domain.model import ChildResource, DefinitionDocument, ParentResource
    from fanout.domain.ports import ResourceStore
    from fanout.domain.reconciliation.reporting import StatusReporter

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PruneResult:
    parent: ParentResource
    deleted: tuple[str, ...] = ()

    @property
    def any_deleted(self) -> bool:
        return bool(self.deleted)


def find_orphans(
    definition: DefinitionDocument,
    children: Mapping[str, ChildResource],
) -> list[tuple[str, ChildResource]]:
    return [
        (name, child)
        for name, child in children.items()
        if definition.declared_child(name) is None
    ]


def prune_orphans(
    parent: ParentResource,
    definition: DefinitionDocument,
    children: Mapping[str, ChildResource],
    *,
    store: ResourceStore,
    reporter: StatusReporter,
    ctx: ReconcileContext,
) -> PruneResult:
    deleted: list[str] = []
    for name, child in find_orphans(definition, children):
        log.info("Deleting orphaned child %s (declared as %s)", child.reference, name)
        try:
            store.delete_child(child.reference, ctx=ctx)
        except NotFoundError:
            continue
        except ReconcileInterrupted:
            raise
        except StoreError as exc:
            reporter.report_failure(
                parent,
                phase=Phase.FAILED,
                reason=Reason.CHILD_NOT_DELETED,
                message=f"Child {child.metadata.name} cannot be deleted",
                ctx=ctx,
            )
            raise ChildDeletionError(
                f"unable to delete child {child.reference}", reason=Reason.CHILD_NOT_DELETED
            ) from exc
        deleted.append(name)
    return PruneResult(parent=parent, deleted=tuple(deleted))
