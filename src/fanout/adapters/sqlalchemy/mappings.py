"""SQLAlchemy table metadata for parents and children."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import (
    Column,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
)

from fanout.domain.model import (
    Condition,
    ConditionStatus,
    ConditionType,
    DataMapping,
    NamedObjectReference,
    ObjectReference,
    OwnerReference,
    Phase,
    ResourceKind,
)

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


def _load_list(value: str | None) -> list[dict[str, Any]]:
    if value is None:
        return []
    loaded = json.loads(value)
    if not isinstance(loaded, list):
        return []
    return [item for item in cast(list[Any], loaded) if isinstance(item, dict)]


def _dump(payload: object) -> str:
    return json.dumps(payload, separators=(",", ":"), sort_keys=True)


def _iso(value: datetime | None) -> str | None:
    return value.astimezone(UTC).isoformat() if value is not None else None


def _from_iso(value: object) -> datetime | None:
    if not isinstance(value, str):
        return None
    parsed = datetime.fromisoformat(value)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class StringMapType(TypeDecorator[dict[str, str]]):
    impl = Text
    cache_ok = True

    def process_bind_param(self, value: Mapping[str, str] | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return _dump(dict(value))

    def process_result_value(self, value: str | None, dialect: Dialect) -> dict[str, str]:
        _ = dialect
        if value is None:
            return {}
        loaded = json.loads(value)
        if not isinstance(loaded, dict):
            return {}
        items = cast(dict[Any, Any], loaded)
        return {str(key): str(item) for key, item in items.items()}


class StringTupleType(TypeDecorator[tuple[str, ...]]):
    impl = Text
    cache_ok = True

    def process_bind_param(self, value: Sequence[str] | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return _dump(list(value))

    def process_result_value(self, value: str | None, dialect: Dialect) -> tuple[str, ...]:
        _ = dialect
        if value is None:
            return ()
        loaded = json.loads(value)
        if not isinstance(loaded, list):
            return ()
        return tuple(str(item) for item in cast(list[Any], loaded))


class DataMappingListType(TypeDecorator[tuple[DataMapping, ...]]):
    impl = Text
    cache_ok = True

    def process_bind_param(
        self, value: Sequence[DataMapping] | None, dialect: Dialect
    ) -> str | None:
        _ = dialect
        if value is None:
            return None
        return _dump([{"from": item.source, "to": item.destination} for item in value])

    def process_result_value(self, value: str | None, dialect: Dialect) -> tuple[DataMapping, ...]:
        _ = dialect
        return tuple(
            DataMapping(source=str(item["from"]), destination=str(item["to"]))
            for item in _load_list(value)
        )


class OwnerReferenceListType(TypeDecorator[tuple[OwnerReference, ...]]):
    impl = Text
    cache_ok = True

    def process_bind_param(
        self, value: Sequence[OwnerReference] | None, dialect: Dialect
    ) -> str | None:
        _ = dialect
        if value is None:
            return None
        return _dump(
            [
                {
                    "kind": item.kind.value,
                    "name": item.name,
                    "uid": str(item.uid),
                    "controller": item.controller,
                    "blockOwnerDeletion": item.block_owner_deletion,
                }
                for item in value
            ]
        )

    def process_result_value(
        self, value: str | None, dialect: Dialect
    ) -> tuple[OwnerReference, ...]:
        _ = dialect
        return tuple(
            OwnerReference(
                kind=ResourceKind(item["kind"]),
                name=str(item["name"]),
                uid=uuid.UUID(str(item["uid"])),
                controller=bool(item.get("controller", False)),
                block_owner_deletion=bool(item.get("blockOwnerDeletion", False)),
            )
            for item in _load_list(value)
        )


class ConditionListType(TypeDecorator[tuple[Condition, ...]]):
    impl = Text
    cache_ok = True

    def process_bind_param(self, value: Sequence[Condition] | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return _dump(
            [
                {
                    "type": item.type.value,
                    "status": item.status.value,
                    "reason": item.reason,
                    "message": item.message,
                    "lastTransitionTime": _iso(item.last_transition_time),
                    "lastUpdateTime": _iso(item.last_update_time),
                }
                for item in value
            ]
        )

    def process_result_value(self, value: str | None, dialect: Dialect) -> tuple[Condition, ...]:
        _ = dialect
        conditions: list[Condition] = []
        for item in _load_list(value):
            try:
                condition_type = ConditionType(item["type"])
            except ValueError:
                log.warning("Skipping unknown condition type %r", item.get("type"))
                continue
            conditions.append(
                Condition(
                    type=condition_type,
                    status=ConditionStatus(item.get("status", ConditionStatus.UNKNOWN)),
                    reason=str(item.get("reason", "")),
                    message=str(item.get("message", "")),
                    last_transition_time=_from_iso(item.get("lastTransitionTime")),
                    last_update_time=_from_iso(item.get("lastUpdateTime")),
                )
            )
        return tuple(conditions)


class TrackedChildrenType(TypeDecorator[tuple[NamedObjectReference, ...]]):
    impl = Text
    cache_ok = True

    def process_bind_param(
        self, value: Sequence[NamedObjectReference] | None, dialect: Dialect
    ) -> str | None:
        _ = dialect
        if value is None:
            return None
        return _dump(
            [
                {
                    "name": item.name,
                    "namespace": item.reference.namespace,
                    "reference": item.reference.name,
                }
                for item in value
            ]
        )

    def process_result_value(
        self, value: str | None, dialect: Dialect
    ) -> tuple[NamedObjectReference, ...]:
        _ = dialect
        return tuple(
            NamedObjectReference(
                name=str(item["name"]),
                reference=ObjectReference(
                    namespace=str(item["namespace"]), name=str(item["reference"])
                ),
            )
            for item in _load_list(value)
        )


metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_name)s_%(column_1_name)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)

_phase_enum = Enum(
    Phase,
    name="phase",
    native_enum=False,
    validate_strings=True,
    length=32,
    values_callable=lambda members: [member.value for member in members],
)

parent_table = Table(
    "parent_resource",
    metadata,
    Column("uid", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("namespace", String(253), nullable=False),
    Column("name", String(253), nullable=False),
    Column("resource_version", Integer, nullable=False, default=1),
    Column("labels", StringMapType, nullable=False, default=dict),
    Column("creation_timestamp", UTCDateTime, nullable=False),
    Column("definition_ref", String, nullable=False),
    Column("phase", _phase_enum, nullable=False, default=Phase.INIT),
    Column("conditions", ConditionListType, nullable=False, default=tuple),
    Column("tracked_children", TrackedChildrenType, nullable=False, default=tuple),
    UniqueConstraint("namespace", "name"),
)

child_table = Table(
    "child_resource",
    metadata,
    Column("uid", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("namespace", String(253), nullable=False),
    Column("name", String(253), nullable=False),
    Column("generate_name", String(253), nullable=False, default=""),
    Column("resource_version", Integer, nullable=False, default=1),
    Column("labels", StringMapType, nullable=False, default=dict),
    Column("owner_references", OwnerReferenceListType, nullable=False, default=tuple),
    Column(
        "owner_uid",
        UUIDColumnType,
        ForeignKey("parent_resource.uid", ondelete="CASCADE"),
        nullable=True,
    ),
    Column("finalizers", StringTupleType, nullable=False, default=tuple),
    Column("deletion_timestamp", UTCDateTime, nullable=True),
    Column("creation_timestamp", UTCDateTime, nullable=False),
    Column("definition_ref", String, nullable=True),
    Column("imports", DataMappingListType, nullable=False, default=tuple),
    Column("exports", DataMappingListType, nullable=False, default=tuple),
    Column("inherited_imports", DataMappingListType, nullable=False, default=tuple),
    Column("inherited_exports", DataMappingListType, nullable=False, default=tuple),
    Column("phase", _phase_enum, nullable=False, default=Phase.INIT),
    UniqueConstraint("namespace", "name"),
    Index("ix_child_resource_owner_uid", "owner_uid"),
)


def create_all_tables(engine: Engine) -> None:
    metadata.create_all(engine)
