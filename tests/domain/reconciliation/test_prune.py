from __future__ import annotations

import pytest

from fanout.domain.context import background
from fanout.domain.errors import ChildDeletionError, NotFoundError, StoreError
from fanout.domain.model import ConditionStatus, ConditionType, Phase, Reason
from fanout.domain.reconciliation.prune import find_orphans, prune_orphans
from tests.helpers.resources import Harness, declared, make_definition


def test_find_orphans_lists_undeclared_children(harness: Harness) -> None:
    a = harness.add_child(name="def-a-1")
    b = harness.add_child(name="def-b-1")

    orphans = find_orphans(make_definition(declared("a")), {"a": a, "b": b})

    assert orphans == [("b", b)]


def test_prune_deletes_only_undeclared_children(harness: Harness) -> None:
    a = harness.add_child(name="def-a-1")
    b = harness.add_child(name="def-b-1")
    parent = harness.create_parent()

    result = prune_orphans(
        parent,
        make_definition(declared("a")),
        {"a": a, "b": b},
        store=harness.store,
        reporter=harness.reporter(),
        ctx=background(),
    )

    assert result.deleted == ("b",)
    assert result.any_deleted
    assert harness.store.mutations() == [("delete_child", str(b.reference))]
    assert [child.metadata.name for child in harness.children_of(parent)] == ["def-a-1"]


def test_prune_deletes_every_orphan_found(harness: Harness) -> None:
    b = harness.add_child(name="def-b-1")
    c = harness.add_child(name="def-c-1")

    result = prune_orphans(
        harness.create_parent(),
        make_definition(),
        {"b": b, "c": c},
        store=harness.store,
        reporter=harness.reporter(),
        ctx=background(),
    )

    assert result.deleted == ("b", "c")


def test_prune_without_orphans_is_a_noop(harness: Harness) -> None:
    a = harness.add_child(name="def-a-1")

    result = prune_orphans(
        harness.create_parent(),
        make_definition(declared("a")),
        {"a": a},
        store=harness.store,
        reporter=harness.reporter(),
        ctx=background(),
    )

    assert not result.any_deleted
    assert harness.store.calls == []


def test_prune_ignores_children_that_already_vanished(harness: Harness) -> None:
    b = harness.add_child(name="def-b-1")
    harness.store.fail("delete_child", NotFoundError("Child", b.reference))

    result = prune_orphans(
        harness.create_parent(),
        make_definition(),
        {"b": b},
        store=harness.store,
        reporter=harness.reporter(),
        ctx=background(),
    )

    assert result.deleted == ()
    assert harness.store.status_writes() == 0


def test_prune_reports_failed_deletion(harness: Harness) -> None:
    b = harness.add_child(name="def-b-1")
    parent = harness.create_parent()
    harness.store.fail("delete_child", StoreError("forbidden"))

    with pytest.raises(ChildDeletionError) as excinfo:
        prune_orphans(
            parent,
            make_definition(),
            {"b": b},
            store=harness.store,
            reporter=harness.reporter(),
            ctx=background(),
        )

    assert excinfo.value.reason is Reason.CHILD_NOT_DELETED
    stored = harness.reload(parent)
    condition = stored.status.condition(ConditionType.ENSURE_CHILDREN)
    assert stored.status.phase is Phase.FAILED
    assert condition is not None
    assert condition.status is ConditionStatus.FALSE
    assert condition.message == "Child def-b-1 cannot be deleted"


def test_prune_failure_survives_failed_status_write(harness: Harness) -> None:
    b = harness.add_child(name="def-b-1")
    harness.store.fail("delete_child", StoreError("forbidden"))
    harness.store.fail("update_parent_status", StoreError("read-only"))

    with pytest.raises(ChildDeletionError) as excinfo:
        prune_orphans(
            harness.create_parent(),
            make_definition(),
            {"b": b},
            store=harness.store,
            reporter=harness.reporter(),
            ctx=background(),
        )

    assert str(excinfo.value.__cause__) == "forbidden"
