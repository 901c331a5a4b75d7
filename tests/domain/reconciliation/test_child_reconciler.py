from __future__ import annotations

import re
from dataclasses import replace

import pytest

from fanout.domain.context import ReconcileContext, background
from fanout.domain.errors import (
    CancelledError,
    ConflictError,
    DeadlineExceededError,
    DefinitionResolutionError,
)
from fanout.domain.model import (
    ConditionStatus,
    ConditionType,
    NamedObjectReference,
    ParentResource,
    Phase,
    Reason,
)
from fanout.domain.reconciliation import ReconcileResult
from tests.helpers.resources import (
    Harness,
    declared,
    leaf_definition,
    make_definition,
    mapping,
)


def _tracked_names(parent: ParentResource) -> list[str]:
    return [entry.name for entry in parent.status.tracked_children]


@pytest.fixture
def installed(harness: Harness) -> ParentResource:
    """A parent whose declared children ``x`` and ``y`` are installed."""

    harness.add_definitions(leaf_definition())
    definition = make_definition(declared("x"), declared("y"))
    outcome = harness.reconciler().reconcile(harness.create_parent(), definition)
    assert outcome.result is ReconcileResult.INSTALLED
    harness.store.reset_calls()
    return outcome.parent


def test_single_child_scenario(harness: Harness) -> None:
    harness.add_definitions(make_definition(name="def", version="v1"))
    definition = make_definition(
        declared("x", "def/v1", imports=(mapping("a", "b"),)), name="root"
    )
    parent = harness.create_parent(None)

    outcome = harness.reconciler().reconcile(parent, definition)

    assert outcome.result is ReconcileResult.INSTALLED
    assert outcome.created == ("x",)
    children = harness.children_of(parent)
    assert len(children) == 1
    child = children[0]
    assert re.fullmatch(r"root-x-\w{5}", child.metadata.name)
    assert child.spec is not None
    assert child.spec.definition_ref == "def/v1"
    assert child.spec.imports == (mapping("a", "b"),)

    stored = harness.reload(parent)
    assert stored.status.tracked_children == (
        NamedObjectReference(name="x", reference=child.reference),
    )
    condition = stored.status.condition(ConditionType.ENSURE_CHILDREN)
    assert condition is not None
    assert condition.status is ConditionStatus.TRUE
    assert condition.reason == Reason.INSTALLATIONS_INSTALLED
    assert condition.message == "All children are successfully installed"
    assert outcome.parent == stored


def test_second_pass_is_idempotent(harness: Harness, installed: ParentResource) -> None:
    definition = make_definition(declared("x"), declared("y"))

    outcome = harness.reconciler().reconcile(installed, definition)

    assert outcome.result is ReconcileResult.INSTALLED
    assert outcome.created == ()
    assert outcome.updated == ()
    assert harness.store.mutations() == []
    assert harness.store.status_writes() == 0
    assert harness.reload(installed) == installed


def test_reordered_mappings_cause_no_update(harness: Harness) -> None:
    harness.add_definitions(leaf_definition())
    first = make_definition(declared("x", imports=(mapping("a", "b"), mapping("c", "d"))))
    parent = harness.reconciler().reconcile(harness.create_parent(), first).parent
    harness.store.reset_calls()

    reordered = make_definition(declared("x", imports=(mapping("c", "d"), mapping("a", "b"))))
    outcome = harness.reconciler().reconcile(parent, reordered)

    assert outcome.updated == ()
    assert harness.store.mutations() == []


def test_changed_mapping_updates_child_in_place(
    harness: Harness, installed: ParentResource
) -> None:
    before = {child.metadata.name for child in harness.children_of(installed)}
    definition = make_definition(declared("x", imports=(mapping("a", "b"),)), declared("y"))

    outcome = harness.reconciler().reconcile(installed, definition)

    assert outcome.updated == ("x",)
    assert {child.metadata.name for child in harness.children_of(installed)} == before
    assert [method for method, _ in harness.store.mutations()] == ["update_child"]


def test_removed_child_is_pruned_and_the_pass_stops(
    harness: Harness, installed: ParentResource
) -> None:
    children = {child.metadata.name: child for child in harness.children_of(installed)}
    x_ref = installed.status.tracked_children[0].reference
    y_ref = installed.status.tracked_children[1].reference

    outcome = harness.reconciler().reconcile(installed, make_definition(declared("x")))

    assert outcome.result is ReconcileResult.PRUNED
    assert outcome.deleted == ("y",)
    assert harness.store.mutations() == [("delete_child", str(y_ref))]
    remaining = harness.children_of(installed)
    assert [child.reference for child in remaining] == [x_ref]
    assert remaining[0] == children[x_ref.name]


def test_pruning_pass_defers_update_of_drifted_child(
    harness: Harness, installed: ParentResource
) -> None:
    x_ref = installed.status.tracked_children[0].reference
    y_ref = installed.status.tracked_children[1].reference
    definition = make_definition(declared("x", imports=(mapping("a", "z"),)))
    reconciler = harness.reconciler()

    pruned = reconciler.reconcile(installed, definition)

    assert pruned.result is ReconcileResult.PRUNED
    assert pruned.updated == ()
    assert harness.store.mutations() == [("delete_child", str(y_ref))]
    untouched = harness.store.inner.get_child(x_ref, ctx=background())
    assert untouched.spec is not None
    assert untouched.spec.imports == ()

    harness.store.reset_calls()
    outcome = reconciler.reconcile(pruned.parent, definition)

    assert outcome.updated == ("x",)
    assert outcome.created == ()
    assert harness.store.mutations() == [("update_child", str(x_ref))]
    updated = harness.store.inner.get_child(x_ref, ctx=background())
    assert updated.spec is not None
    assert updated.spec.imports == (mapping("a", "z"),)


def test_stale_tracking_entry_is_dropped_on_the_next_pass(
    harness: Harness, installed: ParentResource
) -> None:
    definition = make_definition(declared("x"))
    pruned = harness.reconciler().reconcile(installed, definition)

    outcome = harness.reconciler().reconcile(pruned.parent, definition)

    assert outcome.result is ReconcileResult.INSTALLED
    assert _tracked_names(harness.reload(installed)) == ["x"]


def test_definition_changes_converge(harness: Harness, installed: ParentResource) -> None:
    target = make_definition(declared("x", imports=(mapping("a", "c"),)), declared("z"))
    reconciler = harness.reconciler()

    parent = installed
    results: list[ReconcileResult] = []
    for _ in range(3):
        outcome = reconciler.reconcile(parent, target)
        results.append(outcome.result)
        parent = outcome.parent
        if outcome.result is ReconcileResult.INSTALLED:
            break

    assert results == [ReconcileResult.PRUNED, ReconcileResult.INSTALLED]
    assert sorted(_tracked_names(harness.reload(installed))) == ["x", "z"]
    assert len(harness.children_of(installed)) == 2

    harness.store.reset_calls()
    reconciler.reconcile(harness.reload(installed), target)
    assert harness.store.mutations() == []


def test_progressing_child_defers_all_mutations(
    harness: Harness, installed: ParentResource
) -> None:
    x_ref = installed.status.tracked_children[0].reference
    harness.store.inner.set_child_phase(x_ref, Phase.PROGRESSING)
    definition = make_definition(declared("x", "leaf/v1", imports=(mapping("a", "b"),)))

    outcome = harness.reconciler().reconcile(installed, definition)

    assert outcome.result is ReconcileResult.WAITING
    assert outcome.blocked_by == x_ref
    assert harness.store.mutations() == []
    assert harness.reload(installed).status.phase is Phase.PROGRESSING

    harness.store.inner.set_child_phase(x_ref, Phase.SUCCEEDED)
    resumed = harness.reconciler().reconcile(outcome.parent, definition)
    assert resumed.result is ReconcileResult.PRUNED


def test_child_with_finalizers_blocks_until_finalized(
    harness: Harness, installed: ParentResource
) -> None:
    y_ref = installed.status.tracked_children[1].reference
    y = harness.store.inner.get_child(y_ref, ctx=background())
    harness.store.inner.update_child(
        replace(y, metadata=replace(y.metadata, finalizers=("fanout.io/cleanup",))),
        ctx=background(),
    )
    definition = make_definition(declared("x"))
    reconciler = harness.reconciler()

    first = reconciler.reconcile(installed, definition)
    assert first.result is ReconcileResult.PRUNED
    assert harness.store.inner.get_child(y_ref, ctx=background()).metadata.pending_deletion

    second = reconciler.reconcile(first.parent, definition)
    assert second.result is ReconcileResult.WAITING
    assert second.blocked_by == y_ref

    harness.store.inner.finalize_child(y_ref)
    third = reconciler.reconcile(second.parent, definition)
    assert third.result is ReconcileResult.INSTALLED
    assert _tracked_names(third.parent) == ["x"]


def test_unresolvable_child_definition_fails_the_pass(harness: Harness) -> None:
    parent = harness.create_parent()
    definition = make_definition(declared("x", "missing/v1"))

    with pytest.raises(DefinitionResolutionError):
        harness.reconciler().reconcile(parent, definition)

    condition = harness.reload(parent).status.condition(ConditionType.ENSURE_CHILDREN)
    assert condition is not None
    assert condition.status is ConditionStatus.FALSE
    assert condition.reason == Reason.DEFINITION_NOT_FOUND


def test_cancelled_pass_writes_nothing(harness: Harness, installed: ParentResource) -> None:
    ctx = background()
    ctx.cancel()

    with pytest.raises(CancelledError):
        harness.reconciler().reconcile(installed, make_definition(declared("x")), ctx=ctx)

    assert harness.store.mutations() == []
    assert harness.store.status_writes() == 0


def test_expired_deadline_interrupts_the_pass(harness: Harness) -> None:
    harness.add_definitions(leaf_definition())
    parent = harness.create_parent()

    with pytest.raises(DeadlineExceededError):
        harness.reconciler().reconcile(
            parent,
            make_definition(declared("x")),
            ctx=ReconcileContext.with_timeout(0),
        )

    assert harness.children_of(parent) == []


def test_stale_parent_surfaces_conflict(harness: Harness) -> None:
    harness.add_definitions(leaf_definition())
    stale = harness.create_parent()
    harness.store.inner.update_parent_status(
        stale.with_status(replace(stale.status, phase=Phase.PENDING)), ctx=background()
    )

    with pytest.raises(ConflictError):
        harness.reconciler().reconcile(stale, make_definition(declared("x")))
