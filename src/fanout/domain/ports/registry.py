"""Port for looking up definition documents."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from fanout.domain.context import ReconcileContext
    from fanout.domain.model import DefinitionDocument, DefinitionRef


@runtime_checkable
class DefinitionRegistry(Protocol):
    """Resolve a definition reference into its document."""

    def get_definition(
        self, ref: DefinitionRef, *, ctx: ReconcileContext
    ) -> DefinitionDocument: ...
