"""Load the children a parent currently tracks."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from fanout.domain.errors import (
    ChildFetchError,
    ConflictError,
    NotFoundError,
    ReconcileInterrupted,
    StatusPersistError,
    StoreError,
)
from fanout.domain.model import Phase, Reason

if TYPE_CHECKING:
    from fanout.domain.context import ReconcileContext
    from fanout.domain.model import ChildResource, NamedObjectReference, ParentResource
    from fanout.domain.ports import ResourceStore
    from fanout.domain.reconciliation.reporting import StatusReporter

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FetchResult:
    """Live children keyed by declared name, in tracked order."""

    parent: ParentResource
    children: dict[str, ChildResource]


def load_children(
    parent: ParentResource,
    *,
    store: ResourceStore,
    reporter: StatusReporter,
    ctx: ReconcileContext,
) -> FetchResult:
    """Resolve ``parent.status.tracked_children`` against the store.

    References to children that no longer exist are dropped and the pruned
    list is persisted before returning. Any other read failure is reported on
    the parent and raised as :class:`ChildFetchError`.
    """

    tracked = parent.status.tracked_children
    children: dict[str, ChildResource] = {}
    found: list[NamedObjectReference] = []

    for entry in tracked:
        try:
            child = store.get_child(entry.reference, ctx=ctx)
        except NotFoundError:
            log.debug(
                "Dropping stale reference %s (%s) of %s",
                entry.reference,
                entry.name,
                parent.reference,
            )
            continue
        except ReconcileInterrupted:
            raise
        except StoreError as exc:
            log.error("Unable to get child %s of %s: %s", entry.reference, parent.reference, exc)
            reporter.report_failure(
                parent,
                phase=Phase.PROGRESSING,
                reason=Reason.CHILD_NOT_FOUND,
                message=f"Child {entry.reference.name} not available",
                ctx=ctx,
            )
            raise ChildFetchError(
                f"unable to get child {entry.reference}", reason=Reason.CHILD_NOT_FOUND
            ) from exc
        children[entry.name] = child
        found.append(entry)

    if len(found) != len(tracked):
        log.info(
            "Pruning %d stale tracked reference(s) from %s",
            len(tracked) - len(found),
            parent.reference,
        )
        status = replace(parent.status, tracked_children=tuple(found))
        try:
            parent = reporter.persist(parent, status, ctx=ctx)
        except (ReconcileInterrupted, ConflictError):
            raise
        except StoreError as exc:
            raise StatusPersistError(
                f"unable to update tracked children of {parent.reference}"
            ) from exc

    return FetchResult(parent=parent, children=children)
