"""Canonical data structures shared by traversal, dedupe and serialization."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from readbooks.extraction.fingerprint import fingerprint_pages

MAX_PRECEDENCE = 3
PRECEDENCE_NAMES = ("Original", "Copy of Original", "Copy of Copy", "Tattered")


class ArtifactKind(str, Enum):
    DOCUMENT = "document"
    SIGN = "sign"


class ContainerKind(str, Enum):
    CHEST = "chest"
    BOX = "box"
    STACK = "stack"
    DISPLAY = "display"

    @property
    def nests(self) -> bool:
        """Only boxes and stacks keep their contents when held by another container."""

        return self in (ContainerKind.BOX, ContainerKind.STACK)


@dataclass(frozen=True, slots=True)
class RawArtifactFields:
    """Logical artifact fields, identical in shape for every schema generation."""

    kind: ArtifactKind
    pages: tuple[str, ...]
    title: str | None = None
    author: str | None = None
    precedence: int | None = None
    item_id: str | None = None
    item_count: int = 1
    back_lines: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class Artifact:
    """One extracted document or sign with its provenance."""

    kind: ArtifactKind
    pages: tuple[str, ...]
    provenance: str
    title: str | None = None
    author: str | None = None
    precedence: int = 0
    item_id: str | None = None
    item_count: int = 1
    back_lines: tuple[str, ...] = ()
    origin: tuple[int, int, int] | None = None
    fingerprint: int = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "fingerprint", fingerprint_pages(self.pages))

    @classmethod
    def from_fields(
        cls,
        fields: RawArtifactFields,
        provenance: str,
        origin: tuple[int, int, int] | None = None,
    ) -> "Artifact":
        return cls(
            kind=fields.kind,
            pages=fields.pages,
            provenance=provenance,
            title=fields.title,
            author=fields.author,
            precedence=fields.precedence or 0,
            item_id=fields.item_id,
            item_count=fields.item_count,
            back_lines=fields.back_lines,
            origin=origin,
        )

    @property
    def precedence_name(self) -> str:
        return PRECEDENCE_NAMES[self.precedence]


@dataclass(frozen=True, slots=True)
class ArtifactFound:
    """Walker event: an artifact and the location string it was found at."""

    artifact: Artifact
    location: str
