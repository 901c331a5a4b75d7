"""Translate registry payloads into domain definition documents."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import ValidationError

from fanout.domain.errors import RegistryError
from fanout.domain.model import DataDefinition, DataMapping, DeclaredChild, DefinitionDocument

from .schema import DefinitionPayload

if TYPE_CHECKING:
    from .schema import DataDefinitionPayload, DataMappingPayload, DeclaredChildPayload


def _mappings(items: list[DataMappingPayload]) -> tuple[DataMapping, ...]:
    return tuple(DataMapping(source=item.source, destination=item.destination) for item in items)


def _data_definitions(items: list[DataDefinitionPayload]) -> tuple[DataDefinition, ...]:
    return tuple(DataDefinition(key=item.key, type=item.type) for item in items)


def _declared_child(item: DeclaredChildPayload) -> DeclaredChild:
    return DeclaredChild(
        name=item.name,
        definition_ref=item.definition_ref,
        imports=_mappings(item.imports),
        exports=_mappings(item.exports),
    )


def translate_definition(payload: DefinitionPayload) -> DefinitionDocument:
    try:
        return DefinitionDocument(
            name=payload.name,
            version=payload.version,
            imports=_data_definitions(payload.imports),
            exports=_data_definitions(payload.exports),
            children=tuple(_declared_child(item) for item in payload.children),
        )
    except ValueError as exc:
        raise RegistryError(f"Invalid definition {payload.name}: {exc}") from exc


def parse_definition(raw: object, *, source: str) -> DefinitionDocument:
    """Validate ``raw`` JSON data and translate it; ``source`` names it in errors."""

    try:
        payload = DefinitionPayload.model_validate(raw)
    except ValidationError as exc:
        raise RegistryError(f"Invalid definition payload from {source}: {exc}") from exc
    return translate_definition(payload)
