from __future__ import annotations

from fanout.domain.model import ChildResource, ChildSpec, DataMapping, ObjectMeta
from fanout.domain.reconciliation.compare import default_mappings, needs_update, same_mappings
from tests.helpers.resources import declared, leaf_definition, mapping


def _live(
    definition_ref: str = "leaf/v1",
    *,
    imports: tuple[DataMapping, ...] = (),
    exports: tuple[DataMapping, ...] = (),
    inherited_imports: tuple[DataMapping, ...] = (),
) -> ChildResource:
    return ChildResource(
        metadata=ObjectMeta(name="def-x-00001", namespace="ns"),
        spec=ChildSpec(
            definition_ref=definition_ref,
            imports=imports,
            exports=exports,
            inherited_imports=inherited_imports,
        ),
    )


def test_matching_child_needs_no_update() -> None:
    child = declared("x", imports=(mapping("a", "b"),), exports=(mapping("out", "res"),))
    live = _live(imports=(mapping("a", "b"),), exports=(mapping("out", "res"),))

    assert needs_update(child, live) is False


def test_mapping_order_is_ignored() -> None:
    child = declared("x", imports=(mapping("a", "b"), mapping("c", "d")))
    live = _live(imports=(mapping("c", "d"), mapping("a", "b")))

    assert needs_update(child, live) is False


def test_changed_definition_ref_is_drift() -> None:
    assert needs_update(declared("x", "leaf/v2"), _live("leaf/v1")) is True


def test_changed_mapping_is_drift() -> None:
    child = declared("x", imports=(mapping("a", "b"),))
    live = _live(imports=(mapping("a", "c"),))

    assert needs_update(child, live) is True


def test_changed_export_is_drift() -> None:
    child = declared("x", exports=(mapping("out", "res"),))

    assert needs_update(child, _live()) is True


def test_duplicate_mapping_counts_as_drift() -> None:
    child = declared("x", imports=(mapping("a", "b"), mapping("a", "b")))
    live = _live(imports=(mapping("a", "b"),))

    assert needs_update(child, live) is True


def test_empty_mapping_lists_are_equal_only_to_each_other() -> None:
    assert needs_update(declared("x"), _live()) is False
    assert needs_update(declared("x"), _live(imports=(mapping("a", "b"),))) is True
    assert needs_update(declared("x", imports=(mapping("a", "b"),)), _live()) is True


def test_child_without_spec_needs_update() -> None:
    live = ChildResource(metadata=ObjectMeta(name="bare", namespace="ns"))

    assert needs_update(declared("x"), live) is True


def test_inherited_mappings_are_not_compared() -> None:
    child = declared("x", imports=(mapping("a", "b"),))
    live = _live(imports=(mapping("a", "b"),), inherited_imports=(mapping("c", "c"),))

    assert needs_update(child, live) is False


def test_same_mappings_compares_sizes_first() -> None:
    assert same_mappings((), ()) is True
    assert same_mappings((mapping("a", "b"),), (mapping("a", "b"), mapping("a", "b"))) is False


def test_default_mappings_fill_unmapped_keys() -> None:
    child = declared("x", imports=(mapping("a", "b"),), exports=(mapping("out", "res"),))
    definition = leaf_definition(imports=("b", "c", "c"), exports=("out", "log"))

    imports, exports = default_mappings(child, definition)

    assert imports == (mapping("c", "c"),)
    assert exports == (mapping("log", "log"),)


def test_default_mappings_without_data_definitions() -> None:
    assert default_mappings(declared("x"), leaf_definition()) == ((), ())
