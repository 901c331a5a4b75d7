"""Error taxonomy shared by the domain and its adapters."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fanout.domain.model import ObjectReference, Reason


class FanoutError(RuntimeError):
    """Base class for all errors raised by fanout."""


# Store ------------------------------------------------------------------------


class StoreError(FanoutError):
    """Raised when the resource store rejects or fails a call."""


class NotFoundError(StoreError):
    def __init__(self, kind: str, reference: ObjectReference | str) -> None:
        super().__init__(f"{kind} {reference} not found")
        self.kind = kind
        self.reference = reference


class AlreadyExistsError(StoreError):
    def __init__(self, kind: str, reference: ObjectReference | str) -> None:
        super().__init__(f"{kind} {reference} already exists")
        self.kind = kind
        self.reference = reference


class ConflictError(StoreError):
    """Raised when a write carries a stale resource version."""

    def __init__(self, kind: str, reference: ObjectReference | str, *, expected: int) -> None:
        super().__init__(
            f"{kind} {reference} has been modified (expected resource version {expected})"
        )
        self.kind = kind
        self.reference = reference
        self.expected = expected


# Registry ---------------------------------------------------------------------


class RegistryError(FanoutError):
    """Raised when the definition registry cannot serve a lookup."""


class DefinitionNotFoundError(RegistryError):
    def __init__(self, ref: str) -> None:
        super().__init__(f"Definition {ref} not found")
        self.ref = ref


# Object wiring ----------------------------------------------------------------


class OwnershipError(FanoutError):
    """Raised when an ownership link cannot be established."""


class MutationError(FanoutError):
    """Raised when a create-or-update mutator changes an object's identity."""


# Reconciliation ---------------------------------------------------------------


class ReconciliationError(FanoutError):
    """A reconciliation pass failed after reporting ``reason`` on the parent."""

    def __init__(self, message: str, *, reason: Reason | None = None) -> None:
        super().__init__(message)
        self.reason = reason


class ChildFetchError(ReconciliationError):
    pass


class ChildDeletionError(ReconciliationError):
    pass


class DefinitionResolutionError(ReconciliationError):
    pass


class ChildUpsertError(ReconciliationError):
    pass


class StatusPersistError(ReconciliationError):
    """The parent status could not be written after its triggering step succeeded."""


# Interruption -----------------------------------------------------------------


class ReconcileInterrupted(FanoutError):
    """Raised by store and registry calls once the pass context is done."""


class CancelledError(ReconcileInterrupted):
    pass


class DeadlineExceededError(ReconcileInterrupted):
    pass
