"""Parent and child resources.

The two are distinct types: a child points back at its parent through an
:class:`~fanout.domain.model.meta.OwnerReference` in its metadata, a parent
remembers its children through ``status.tracked_children``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from fanout.domain.model.enums import ConditionStatus, ConditionType, Phase

if TYPE_CHECKING:
    from datetime import datetime

    from fanout.domain.model.definitions import DataMapping, DefinitionRef
    from fanout.domain.model.meta import NamedObjectReference, ObjectMeta, ObjectReference


@dataclass(frozen=True, slots=True, kw_only=True)
class Condition:
    type: ConditionType
    status: ConditionStatus = ConditionStatus.UNKNOWN
    reason: str = ""
    message: str = ""
    last_transition_time: datetime | None = None
    last_update_time: datetime | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class ParentSpec:
    definition_ref: DefinitionRef


@dataclass(frozen=True, slots=True, kw_only=True)
class ParentStatus:
    phase: Phase = Phase.INIT
    conditions: tuple[Condition, ...] = ()
    tracked_children: tuple[NamedObjectReference, ...] = ()

    def condition(self, condition_type: ConditionType) -> Condition | None:
        for condition in self.conditions:
            if condition.type == condition_type:
                return condition
        return None

    def with_condition(self, condition: Condition) -> ParentStatus:
        """Return a copy where ``condition`` replaces the one of the same type."""

        merged: list[Condition] = []
        replaced = False
        for existing in self.conditions:
            if existing.type == condition.type:
                merged.append(condition)
                replaced = True
            else:
                merged.append(existing)
        if not replaced:
            merged.append(condition)
        return replace(self, conditions=tuple(merged))


@dataclass(frozen=True, slots=True, kw_only=True)
class ParentResource:
    metadata: ObjectMeta
    spec: ParentSpec
    status: ParentStatus = field(default_factory=ParentStatus)

    @property
    def reference(self) -> ObjectReference:
        return self.metadata.reference

    def with_status(self, status: ParentStatus) -> ParentResource:
        return replace(self, status=status)


@dataclass(frozen=True, slots=True, kw_only=True)
class ChildSpec:
    """Declared contract for a child.

    ``imports``/``exports`` hold exactly what the parent definition declares;
    ``inherited_*`` hold the defaults derived from the child's own definition.
    """

    definition_ref: DefinitionRef
    imports: tuple[DataMapping, ...] = ()
    exports: tuple[DataMapping, ...] = ()
    inherited_imports: tuple[DataMapping, ...] = ()
    inherited_exports: tuple[DataMapping, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class ChildStatus:
    phase: Phase = Phase.INIT


@dataclass(frozen=True, slots=True, kw_only=True)
class ChildResource:
    metadata: ObjectMeta
    spec: ChildSpec | None = None
    status: ChildStatus = field(default_factory=ChildStatus)

    @property
    def reference(self) -> ObjectReference:
        return self.metadata.reference
