"""Port for establishing the structural parent -> child link."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from fanout.domain.model import ChildResource, ParentResource


@runtime_checkable
class OwnershipLinker(Protocol):
    def set_owner(self, owner: ParentResource, child: ChildResource) -> ChildResource: ...
