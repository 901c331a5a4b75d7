"""JSON schema of definition documents served by a registry."""

from __future__ import annotations

import logging
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

log = logging.getLogger(__name__)


class RegistryBaseModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)
    _logged_extra_keys: ClassVar[set[str]] = set()

    def model_post_init(self, _context: object, /) -> None:
        extras = self.__pydantic_extra__
        if not extras:
            return
        new_keys = set(extras).difference(self._logged_extra_keys)
        if not new_keys:
            return
        self._logged_extra_keys.update(new_keys)
        log.warning(
            "Definition %s: unmodeled keys: %s",
            type(self).__name__,
            ", ".join(sorted(new_keys)),
        )


class DataMappingPayload(RegistryBaseModel):
    source: str = Field(alias="from")
    destination: str = Field(alias="to")


class DataDefinitionPayload(RegistryBaseModel):
    key: str
    type: str | None = None


class DeclaredChildPayload(RegistryBaseModel):
    name: str = Field(min_length=1)
    definition_ref: str = Field(alias="definitionRef", min_length=1)
    imports: list[DataMappingPayload] = Field(default_factory=list[DataMappingPayload])
    exports: list[DataMappingPayload] = Field(default_factory=list[DataMappingPayload])


class DefinitionPayload(RegistryBaseModel):
    name: str = Field(min_length=1)
    version: str | None = None
    imports: list[DataDefinitionPayload] = Field(default_factory=list[DataDefinitionPayload])
    exports: list[DataDefinitionPayload] = Field(default_factory=list[DataDefinitionPayload])
    children: list[DeclaredChildPayload] = Field(default_factory=list[DeclaredChildPayload])
