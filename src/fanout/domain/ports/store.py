"""Port for the external resource store."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Mapping

    from fanout.domain.context import ReconcileContext
    from fanout.domain.model import ChildResource, ObjectReference, ParentResource


@runtime_checkable
class ResourceStore(Protocol):
    """Persistence contract for parents and children.

    Every call is blocking and honours ``ctx``. Reads of missing objects raise
    :class:`~fanout.domain.errors.NotFoundError`; writes guarded by
    ``metadata.resource_version`` raise :class:`~fanout.domain.errors.ConflictError`
    when the stored version moved on.
    """

    def get_parent(self, ref: ObjectReference, *, ctx: ReconcileContext) -> ParentResource: ...

    def create_parent(self, parent: ParentResource, *, ctx: ReconcileContext) -> ParentResource: ...

    def update_parent_status(
        self, parent: ParentResource, *, ctx: ReconcileContext
    ) -> ParentResource: ...

    def get_child(self, ref: ObjectReference, *, ctx: ReconcileContext) -> ChildResource: ...

    def create_child(self, child: ChildResource, *, ctx: ReconcileContext) -> ChildResource: ...

    def update_child(self, child: ChildResource, *, ctx: ReconcileContext) -> ChildResource: ...

    def delete_child(self, ref: ObjectReference, *, ctx: ReconcileContext) -> None: ...

    def list_children(
        self,
        namespace: str,
        *,
        labels: Mapping[str, str] | None = None,
        ctx: ReconcileContext,
    ) -> list[ChildResource]: ...
