"""Definition documents: the declarative source of a parent's desired children."""

from __future__ import annotations

from dataclasses import dataclass

type DefinitionRef = str


@dataclass(frozen=True, slots=True)
class DataMapping:
    """Maps the ``source`` data key onto ``destination``."""

    source: str
    destination: str

    def __str__(self) -> str:
        return f"{self.source}->{self.destination}"


@dataclass(frozen=True, slots=True)
class DataDefinition:
    """A data key a definition consumes (import) or produces (export)."""

    key: str
    type: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class DeclaredChild:
    """One entry of a definition's declared children."""

    name: str
    definition_ref: DefinitionRef
    imports: tuple[DataMapping, ...] = ()
    exports: tuple[DataMapping, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class DefinitionDocument:
    name: str
    version: str | None = None
    imports: tuple[DataDefinition, ...] = ()
    exports: tuple[DataDefinition, ...] = ()
    children: tuple[DeclaredChild, ...] = ()

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for child in self.children:
            if child.name in seen:
                raise ValueError(
                    f"Definition {self.ref} declares child {child.name!r} more than once"
                )
            seen.add(child.name)

    @property
    def ref(self) -> DefinitionRef:
        return f"{self.name}/{self.version}" if self.version else self.name

    def declared_child(self, name: str) -> DeclaredChild | None:
        for child in self.children:
            if child.name == name:
                return child
        return None
