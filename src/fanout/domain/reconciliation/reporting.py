"""Status condition bookkeeping and parent status writes."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from fanout.domain.model import Condition, ConditionStatus, ConditionType

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from fanout.domain.context import ReconcileContext
    from fanout.domain.model import ParentResource, ParentStatus, Phase, Reason
    from fanout.domain.ports import ResourceStore

log = logging.getLogger(__name__)


def get_or_init_condition(
    status: ParentStatus,
    condition_type: ConditionType,
    *,
    now: datetime,
) -> Condition:
    existing = status.condition(condition_type)
    if existing is not None:
        return existing
    return Condition(
        type=condition_type,
        status=ConditionStatus.UNKNOWN,
        last_transition_time=now,
        last_update_time=now,
    )


def updated_condition(
    condition: Condition,
    status: ConditionStatus,
    reason: str,
    message: str,
    *,
    now: datetime,
) -> Condition:
    """Return ``condition`` moved to ``status``.

    Timestamps only move when something observable changed, so repeating the
    same outcome yields an equal condition.
    """

    if (condition.status, condition.reason, condition.message) == (status, reason, message):
        return condition
    transition = now if condition.status != status else condition.last_transition_time
    return replace(
        condition,
        status=status,
        reason=reason,
        message=message,
        last_transition_time=transition,
        last_update_time=now,
    )


@dataclass(slots=True)
class StatusReporter:
    """Writes the ``EnsureChildren`` condition and phase onto a parent."""

    store: ResourceStore
    clock: Callable[[], datetime]
    condition_type: ConditionType = ConditionType.ENSURE_CHILDREN

    def condition(self, parent: ParentResource) -> Condition:
        return get_or_init_condition(parent.status, self.condition_type, now=self.clock())

    def persist(
        self,
        parent: ParentResource,
        status: ParentStatus,
        *,
        ctx: ReconcileContext,
    ) -> ParentResource:
        """Write ``status`` unless it equals what the parent already carries."""

        if status == parent.status:
            log.debug("Status of %s unchanged, skipping write", parent.reference)
            return parent
        return self.store.update_parent_status(parent.with_status(status), ctx=ctx)

    def report(
        self,
        parent: ParentResource,
        *,
        phase: Phase,
        condition: Condition,
        ctx: ReconcileContext,
    ) -> ParentResource:
        status = replace(parent.status, phase=phase).with_condition(condition)
        return self.persist(parent, status, ctx=ctx)

    def report_failure(
        self,
        parent: ParentResource,
        *,
        phase: Phase,
        reason: Reason,
        message: str,
        ctx: ReconcileContext,
    ) -> None:
        """Best-effort write of a False condition; never raises."""

        condition = updated_condition(
            self.condition(parent),
            ConditionStatus.FALSE,
            reason,
            message,
            now=self.clock(),
        )
        try:
            self.report(parent, phase=phase, condition=condition, ctx=ctx)
        except Exception:  # noqa: BLE001
            log.warning(
                "Unable to record %s on %s", reason, parent.reference, exc_info=True
            )
