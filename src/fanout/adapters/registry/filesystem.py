"""Definition registry backed by a directory of JSON documents."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from fanout.domain.errors import DefinitionNotFoundError, RegistryError

from .translator import parse_definition

if TYPE_CHECKING:
    from pathlib import Path

    from fanout.domain.context import ReconcileContext
    from fanout.domain.model import DefinitionDocument, DefinitionRef

log = logging.getLogger(__name__)


class FileDefinitionRegistry:
    """Serve every ``*.json`` definition found in ``directory``, keyed by ref.

    Documents are read lazily on first lookup and cached afterwards; call
    :meth:`reload` to pick up changes.
    """

    def __init__(self, directory: Path) -> None:
        self._directory = directory
        self._definitions: dict[DefinitionRef, DefinitionDocument] | None = None

    def reload(self) -> dict[DefinitionRef, DefinitionDocument]:
        if not self._directory.is_dir():
            raise RegistryError(f"Definitions directory {self._directory} does not exist")
        definitions: dict[DefinitionRef, DefinitionDocument] = {}
        for path in sorted(self._directory.glob("*.json")):
            try:
                raw = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as exc:
                raise RegistryError(f"Cannot read definition file {path}: {exc}") from exc
            definition = parse_definition(raw, source=str(path))
            if definition.ref in definitions:
                raise RegistryError(f"Definition {definition.ref} is defined more than once")
            definitions[definition.ref] = definition
        log.debug("Loaded %d definitions from %s", len(definitions), self._directory)
        self._definitions = definitions
        return definitions

    def get_definition(
        self, ref: DefinitionRef, *, ctx: ReconcileContext
    ) -> DefinitionDocument:
        ctx.check()
        definitions = self._definitions if self._definitions is not None else self.reload()
        try:
            return definitions[ref]
        except KeyError:
            raise DefinitionNotFoundError(ref) from None


if TYPE_CHECKING:
    from pathlib import Path as _Path

    from fanout.domain.ports import DefinitionRegistry

    _registry_check: DefinitionRegistry = FileDefinitionRegistry(_Path())
