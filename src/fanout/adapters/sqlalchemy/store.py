"""Resource store backed by SQLAlchemy Core tables.

Each call runs in its own transaction, so every write the reconciler makes is
committed independently. Updates are guarded by ``resource_version``.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from fanout.adapters.memory import random_name_suffix
from fanout.adapters.sqlalchemy.mappings import child_table, parent_table
from fanout.adapters.sqlalchemy.session import session_factory as default_session_factory
from fanout.domain.errors import AlreadyExistsError, ConflictError, NotFoundError, StoreError
from fanout.domain.model import (
    ChildResource,
    ChildSpec,
    ChildStatus,
    ObjectMeta,
    ObjectReference,
    ParentResource,
    ParentSpec,
    ParentStatus,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Mapping

    from sqlalchemy import RowMapping, Table
    from sqlalchemy.orm import Session, sessionmaker

    from fanout.domain.context import ReconcileContext

log = logging.getLogger(__name__)

_GENERATE_NAME_ATTEMPTS = 16


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _where_ref(table: Table, ref: ObjectReference) -> Any:
    return (table.c.namespace == ref.namespace) & (table.c.name == ref.name)


def _parent_from_row(row: RowMapping) -> ParentResource:
    return ParentResource(
        metadata=ObjectMeta(
            name=row["name"],
            namespace=row["namespace"],
            uid=row["uid"],
            resource_version=row["resource_version"],
            labels=row["labels"],
            creation_timestamp=row["creation_timestamp"],
        ),
        spec=ParentSpec(definition_ref=row["definition_ref"]),
        status=ParentStatus(
            phase=row["phase"],
            conditions=row["conditions"],
            tracked_children=row["tracked_children"],
        ),
    )


def _child_from_row(row: RowMapping) -> ChildResource:
    spec: ChildSpec | None = None
    if row["definition_ref"] is not None:
        spec = ChildSpec(
            definition_ref=row["definition_ref"],
            imports=row["imports"],
            exports=row["exports"],
            inherited_imports=row["inherited_imports"],
            inherited_exports=row["inherited_exports"],
        )
    return ChildResource(
        metadata=ObjectMeta(
            name=row["name"],
            namespace=row["namespace"],
            generate_name=row["generate_name"],
            uid=row["uid"],
            resource_version=row["resource_version"],
            labels=row["labels"],
            owner_references=row["owner_references"],
            finalizers=row["finalizers"],
            deletion_timestamp=row["deletion_timestamp"],
            creation_timestamp=row["creation_timestamp"],
        ),
        spec=spec,
        status=ChildStatus(phase=row["phase"]),
    )


def _child_values(child: ChildResource) -> dict[str, object]:
    meta = child.metadata
    controller = meta.controller_reference()
    spec = child.spec
    return {
        "generate_name": meta.generate_name,
        "labels": dict(meta.labels),
        "owner_references": meta.owner_references,
        "owner_uid": controller.uid if controller is not None else None,
        "finalizers": meta.finalizers,
        "definition_ref": spec.definition_ref if spec is not None else None,
        "imports": spec.imports if spec is not None else (),
        "exports": spec.exports if spec is not None else (),
        "inherited_imports": spec.inherited_imports if spec is not None else (),
        "inherited_exports": spec.inherited_exports if spec is not None else (),
        "phase": child.status.phase,
    }


class SqlAlchemyResourceStore:
    """:class:`~fanout.domain.ports.ResourceStore` over ``parent_resource``/``child_resource``."""

    def __init__(
        self,
        session_factory: sessionmaker[Session] | None = None,
        *,
        clock: Callable[[], datetime] = _utcnow,
        name_suffix: Callable[[], str] = random_name_suffix,
    ) -> None:
        self._session_factory = session_factory or default_session_factory()
        self._clock = clock
        self._name_suffix = name_suffix

    @contextmanager
    def _transaction(self, ctx: ReconcileContext, action: str) -> Iterator[Session]:
        ctx.check()
        try:
            with self._session_factory.begin() as session:
                yield session
        except SQLAlchemyError as exc:
            log.debug("Store call %s failed", action, exc_info=True)
            raise StoreError(f"Store call {action} failed: {exc}") from exc

    # parents ------------------------------------------------------------

    def get_parent(self, ref: ObjectReference, *, ctx: ReconcileContext) -> ParentResource:
        with self._transaction(ctx, "get_parent") as session:
            row = session.execute(
                select(parent_table).where(_where_ref(parent_table, ref))
            ).mappings().one_or_none()
            if row is None:
                raise NotFoundError("Parent", ref)
            return _parent_from_row(row)

    def create_parent(self, parent: ParentResource, *, ctx: ReconcileContext) -> ParentResource:
        ref = parent.reference
        try:
            with self._transaction(ctx, "create_parent") as session:
                exists = session.execute(
                    select(parent_table.c.uid).where(_where_ref(parent_table, ref))
                ).first()
                if exists is not None:
                    raise AlreadyExistsError("Parent", ref)
                session.execute(
                    parent_table.insert().values(
                        namespace=ref.namespace,
                        name=ref.name,
                        resource_version=1,
                        labels=dict(parent.metadata.labels),
                        creation_timestamp=self._clock(),
                        definition_ref=parent.spec.definition_ref,
                        phase=parent.status.phase,
                        conditions=parent.status.conditions,
                        tracked_children=parent.status.tracked_children,
                    )
                )
                row = session.execute(
                    select(parent_table).where(_where_ref(parent_table, ref))
                ).mappings().one()
                return _parent_from_row(row)
        except StoreError as exc:
            if isinstance(exc.__cause__, IntegrityError):
                raise AlreadyExistsError("Parent", ref) from exc
            raise

    def update_parent_status(
        self, parent: ParentResource, *, ctx: ReconcileContext
    ) -> ParentResource:
        ref = parent.reference
        with self._transaction(ctx, "update_parent_status") as session:
            current = self._current_version(session, parent_table, "Parent", parent)
            result = session.execute(
                update(parent_table)
                .where(_where_ref(parent_table, ref))
                .where(parent_table.c.resource_version == current)
                .values(
                    phase=parent.status.phase,
                    conditions=parent.status.conditions,
                    tracked_children=parent.status.tracked_children,
                    resource_version=current + 1,
                )
            )
            if result.rowcount != 1:
                raise ConflictError("Parent", ref, expected=current)
            row = session.execute(
                select(parent_table).where(_where_ref(parent_table, ref))
            ).mappings().one()
            return _parent_from_row(row)

    def delete_parent(self, ref: ObjectReference, *, ctx: ReconcileContext) -> None:
        with self._transaction(ctx, "delete_parent") as session:
            uid = session.execute(
                select(parent_table.c.uid).where(_where_ref(parent_table, ref))
            ).scalar_one_or_none()
            if uid is None:
                raise NotFoundError("Parent", ref)
            session.execute(delete(child_table).where(child_table.c.owner_uid == uid))
            session.execute(delete(parent_table).where(parent_table.c.uid == uid))

    # children -----------------------------------------------------------

    def get_child(self, ref: ObjectReference, *, ctx: ReconcileContext) -> ChildResource:
        with self._transaction(ctx, "get_child") as session:
            return self._load_child(session, ref)

    def create_child(self, child: ChildResource, *, ctx: ReconcileContext) -> ChildResource:
        try:
            with self._transaction(ctx, "create_child") as session:
                name = child.metadata.name or self._generate_name(session, child)
                ref = ObjectReference(namespace=child.metadata.namespace, name=name)
                exists = session.execute(
                    select(child_table.c.uid).where(_where_ref(child_table, ref))
                ).first()
                if exists is not None:
                    raise AlreadyExistsError("Child", ref)
                session.execute(
                    child_table.insert().values(
                        namespace=ref.namespace,
                        name=ref.name,
                        resource_version=1,
                        creation_timestamp=self._clock(),
                        **_child_values(child),
                    )
                )
                return self._load_child(session, ref)
        except StoreError as exc:
            if isinstance(exc.__cause__, IntegrityError):
                raise AlreadyExistsError("Child", child.reference) from exc
            raise

    def update_child(self, child: ChildResource, *, ctx: ReconcileContext) -> ChildResource:
        ref = child.reference
        with self._transaction(ctx, "update_child") as session:
            current = self._current_version(session, child_table, "Child", child)
            values = _child_values(child)
            del values["generate_name"]
            result = session.execute(
                update(child_table)
                .where(_where_ref(child_table, ref))
                .where(child_table.c.resource_version == current)
                .values(resource_version=current + 1, **values)
            )
            if result.rowcount != 1:
                raise ConflictError("Child", ref, expected=current)
            return self._load_child(session, ref)

    def delete_child(self, ref: ObjectReference, *, ctx: ReconcileContext) -> None:
        with self._transaction(ctx, "delete_child") as session:
            child = self._load_child(session, ref)
            if not child.metadata.finalizers:
                session.execute(delete(child_table).where(_where_ref(child_table, ref)))
                return
            if child.metadata.pending_deletion:
                return
            session.execute(
                update(child_table)
                .where(_where_ref(child_table, ref))
                .values(
                    deletion_timestamp=self._clock(),
                    resource_version=child_table.c.resource_version + 1,
                )
            )

    def list_children(
        self,
        namespace: str,
        *,
        labels: Mapping[str, str] | None = None,
        ctx: ReconcileContext,
    ) -> list[ChildResource]:
        selector = dict(labels or {})
        with self._transaction(ctx, "list_children") as session:
            rows = session.execute(
                select(child_table)
                .where(child_table.c.namespace == namespace)
                .order_by(child_table.c.name)
            ).mappings()
            children = [_child_from_row(row) for row in rows]
        return [
            child
            for child in children
            if all(child.metadata.labels.get(key) == value for key, value in selector.items())
        ]

    # helpers ------------------------------------------------------------

    @staticmethod
    def _load_child(session: Session, ref: ObjectReference) -> ChildResource:
        row = session.execute(
            select(child_table).where(_where_ref(child_table, ref))
        ).mappings().one_or_none()
        if row is None:
            raise NotFoundError("Child", ref)
        return _child_from_row(row)

    @staticmethod
    def _current_version(
        session: Session,
        table: Table,
        kind: str,
        resource: ParentResource | ChildResource,
    ) -> int:
        ref = resource.reference
        current = session.execute(
            select(table.c.resource_version).where(_where_ref(table, ref))
        ).scalar_one_or_none()
        if current is None:
            raise NotFoundError(kind, ref)
        expected = resource.metadata.resource_version
        if expected and expected != current:
            raise ConflictError(kind, ref, expected=expected)
        return current

    def _generate_name(self, session: Session, child: ChildResource) -> str:
        prefix = child.metadata.generate_name
        if not prefix:
            raise ValueError("Child needs either a name or a generate_name prefix")
        for _ in range(_GENERATE_NAME_ATTEMPTS):
            candidate = f"{prefix}{self._name_suffix()}"
            ref = ObjectReference(namespace=child.metadata.namespace, name=candidate)
            taken = session.execute(
                select(child_table.c.uid).where(_where_ref(child_table, ref))
            ).first()
            if taken is None:
                return candidate
        raise AlreadyExistsError("Child", f"{child.metadata.namespace}/{prefix}*")


if TYPE_CHECKING:
    from typing import cast

    from fanout.domain.ports import ResourceStore

    _store_check: ResourceStore = SqlAlchemyResourceStore(cast("sessionmaker[Session]", object()))
