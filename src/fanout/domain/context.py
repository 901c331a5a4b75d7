"""Cancellation and deadline context threaded through every store call."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from fanout.domain.errors import CancelledError, DeadlineExceededError

if TYPE_CHECKING:
    from collections.abc import Callable


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True, kw_only=True)
class ReconcileContext:
    """Carries an optional deadline and a cancellation flag for one pass.

    Store and registry adapters call :meth:`check` before doing any work.
    Nothing is rolled back once the context is done; the next pass resumes
    from whatever was committed.
    """

    deadline: datetime | None = None
    clock: Callable[[], datetime] = _utcnow
    _cancelled: threading.Event = field(default_factory=threading.Event)

    @classmethod
    def with_timeout(
        cls,
        seconds: float,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> ReconcileContext:
        return cls(deadline=clock() + timedelta(seconds=seconds), clock=clock)

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def expired(self) -> bool:
        return self.deadline is not None and self.clock() >= self.deadline

    def remaining_seconds(self) -> float | None:
        """Seconds left before the deadline, or ``None`` without one."""

        if self.deadline is None:
            return None
        return max((self.deadline - self.clock()).total_seconds(), 0.0)

    def check(self) -> None:
        if self.cancelled:
            raise CancelledError("Reconciliation cancelled")
        if self.expired:
            raise DeadlineExceededError(f"Reconciliation deadline {self.deadline} exceeded")


def background() -> ReconcileContext:
    """Return a context that never expires and is never cancelled."""

    return ReconcileContext()
