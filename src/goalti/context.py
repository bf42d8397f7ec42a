"""Analysis contexts that goals read from.

The engine never parses source. A context names the module a query is asked
about and gives evaluators read-only access to the host's reference index.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator


class ReferenceKind(Enum):
    """What a reference in the index points at."""

    FIELD = "field"
    METHOD = "method"
    METHOD_CALL = "method_call"
    TYPE = "type"


@dataclass(frozen=True)
class ItemReference:
    """A named element found in source.

    Attributes:
        name: Simple name of the element
        kind: What the element is
        module: Module the element was found in
        offset: Start offset of the element in the module
        length: Length of the element's name in the module
        parent: Name of the enclosing type, or None at module level

    """

    name: str
    kind: ReferenceKind
    module: str
    offset: int = 0
    length: int = 0
    parent: str | None = None

    def qualified_name(self) -> str:
        """Name prefixed by its enclosing type, if any."""
        if self.parent:
            return f"{self.parent}.{self.name}"
        return self.name


@runtime_checkable
class SourceIndex(Protocol):
    """Search access to the host's source index."""

    def find_references(
        self,
        name: str,
        kind: ReferenceKind,
        parent: str | None = None,
    ) -> Iterable[ItemReference]:
        """Return references called ``name`` of the given kind.

        When ``parent`` is given, only references enclosed by that type
        are returned.
        """
        ...


class InMemorySourceIndex:
    """List-backed SourceIndex, keeps references in insertion order."""

    def __init__(self, references: Iterable[ItemReference] = ()) -> None:
        self._references: list[ItemReference] = list(references)

    def __len__(self) -> int:
        return len(self._references)

    def __iter__(self) -> Iterator[ItemReference]:
        return iter(self._references)

    def add(self, reference: ItemReference) -> None:
        """Add a reference to the index."""
        self._references.append(reference)

    def extend(self, references: Iterable[ItemReference]) -> None:
        """Add several references to the index."""
        self._references.extend(references)

    def find_references(
        self,
        name: str,
        kind: ReferenceKind,
        parent: str | None = None,
    ) -> list[ItemReference]:
        """Return matching references in insertion order."""
        return [
            ref
            for ref in self._references
            if ref.name == name
            and ref.kind is kind
            and (parent is None or ref.parent == parent)
        ]


@dataclass(frozen=True)
class BasicContext:
    """Module-level analysis context.

    The index is not part of the context's identity: two contexts for the
    same module compare equal so goals built from them share a cache entry.
    """

    module: str
    index: SourceIndex = field(
        default_factory=InMemorySourceIndex,
        compare=False,
        repr=False,
    )


@dataclass(frozen=True)
class InstanceContext(BasicContext):
    """Context inside a method body, where ``self`` has a known type."""

    instance_type: str = ""
