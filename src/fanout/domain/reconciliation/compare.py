"""Drift detection between a declared child and its live counterpart."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fanout.domain.model import DataMapping

if TYPE_CHECKING:
    from collections.abc import Sequence

    from fanout.domain.model import ChildResource, DeclaredChild, DefinitionDocument


def needs_update(declared: DeclaredChild, live: ChildResource) -> bool:
    """Return whether ``live`` no longer matches what ``declared`` asks for.

    Mappings are compared as unordered sets of ``(source, destination)`` pairs
    and by count, so duplicates on either side count as drift. Inherited
    default mappings are not part of the comparison.
    """

    spec = live.spec
    if spec is None:
        return True
    if declared.definition_ref != spec.definition_ref:
        return True
    if not same_mappings(declared.imports, spec.imports):
        return True
    return not same_mappings(declared.exports, spec.exports)


def same_mappings(left: Sequence[DataMapping], right: Sequence[DataMapping]) -> bool:
    if len(left) != len(right):
        return False
    return set(left) == set(right)


def default_mappings(
    declared: DeclaredChild,
    definition: DefinitionDocument,
) -> tuple[tuple[DataMapping, ...], tuple[DataMapping, ...]]:
    """Derive the mappings a child inherits from its own definition.

    Every import key of ``definition`` that no declared import targets, and
    every export key that no declared export reads from, maps onto itself.
    """

    mapped_imports = {mapping.destination for mapping in declared.imports}
    mapped_exports = {mapping.source for mapping in declared.exports}

    imports: list[DataMapping] = []
    for data in definition.imports:
        if data.key in mapped_imports:
            continue
        mapped_imports.add(data.key)
        imports.append(DataMapping(source=data.key, destination=data.key))

    exports: list[DataMapping] = []
    for data in definition.exports:
        if data.key in mapped_exports:
            continue
        mapped_exports.add(data.key)
        exports.append(DataMapping(source=data.key, destination=data.key))

    return tuple(imports), tuple(exports)
