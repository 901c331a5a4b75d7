"""Controller owner references between parents and children."""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

from fanout.domain.errors import OwnershipError
from fanout.domain.model import OwnerReference, ResourceKind

if TYPE_CHECKING:
    from fanout.domain.model import ChildResource, ParentResource


def _same_owner(reference: OwnerReference, owner: ParentResource) -> bool:
    return reference.kind is ResourceKind.PARENT and reference.name == owner.metadata.name


class ControllerOwnershipLinker:
    """Make the parent the controlling owner of a child.

    References are matched by kind and name, so a parent recreated under the
    same name takes over its children with its new uid. Other non-controller
    owners are kept untouched.
    """

    def set_owner(self, owner: ParentResource, child: ChildResource) -> ChildResource:
        owner_meta = owner.metadata
        if owner_meta.uid is None:
            raise OwnershipError(f"Owner {owner.reference} has no uid; persist it first")
        if owner_meta.namespace != child.metadata.namespace:
            raise OwnershipError(
                f"Cross-namespace owner reference from {child.metadata.namespace} "
                f"to {owner.reference} is not allowed"
            )

        controller = child.metadata.controller_reference()
        if controller is not None and not _same_owner(controller, owner):
            raise OwnershipError(
                f"Child {child.reference} is already controlled by "
                f"{controller.kind} {controller.name}"
            )

        reference = OwnerReference(
            kind=ResourceKind.PARENT,
            name=owner_meta.name,
            uid=owner_meta.uid,
            controller=True,
            block_owner_deletion=True,
        )
        owners = [
            reference if _same_owner(ref, owner) else ref
            for ref in child.metadata.owner_references
        ]
        if reference not in owners:
            owners.append(reference)
        return replace(
            child,
            metadata=replace(child.metadata, owner_references=tuple(owners)),
        )


if TYPE_CHECKING:
    from fanout.domain.ports import OwnershipLinker

    _linker_check: OwnershipLinker = ControllerOwnershipLinker()
