"""Storage collaborator contract for deduplicated records."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol, runtime_checkable

from readbooks.extraction.fingerprint import format_fingerprint
from readbooks.extraction.models import Artifact, ArtifactKind

MAX_KEY_ATTEMPTS = 1000


class Bucket(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"


@dataclass(frozen=True, slots=True)
class StorageRef:
    """Opaque handle of one stored record: its bucket plus its key inside the bucket."""

    bucket: Bucket
    key: str


@dataclass(frozen=True, slots=True)
class StoredRecord:
    """Immutable snapshot of an accepted artifact."""

    kind: ArtifactKind
    fingerprint: int
    pages: tuple[str, ...]
    provenance: str
    sequence: int
    title: str | None = None
    author: str | None = None
    precedence: int = 0
    back_lines: tuple[str, ...] = ()
    item_id: str | None = None
    item_count: int = 1
    origin: tuple[int, int, int] | None = None

    @classmethod
    def from_artifact(cls, artifact: Artifact, sequence: int) -> "StoredRecord":
        return cls(
            kind=artifact.kind,
            fingerprint=artifact.fingerprint,
            pages=artifact.pages,
            provenance=artifact.provenance,
            sequence=sequence,
            title=artifact.title,
            author=artifact.author,
            precedence=artifact.precedence,
            back_lines=artifact.back_lines,
            item_id=artifact.item_id,
            item_count=artifact.item_count,
            origin=artifact.origin,
        )


@dataclass(slots=True)
class StorageError(Exception):
    """Raised when the storage collaborator cannot complete an operation."""

    operation: str
    message: str

    def __str__(self) -> str:
        return f"{self.message} (operation={self.operation})"


@runtime_checkable
class RecordStorage(Protocol):
    """Content-addressed key/value surface with two buckets."""

    def store(self, bucket: Bucket, record: StoredRecord) -> StorageRef:
        """Persist a record, choosing a collision-free key, and return its handle."""

    def relocate(self, ref: StorageRef, to_bucket: Bucket) -> StorageRef:
        """Move a record to another bucket without editing it; return the new handle."""

    def list(self, bucket: Bucket) -> list[StorageRef]:
        """Return handles in ``bucket`` ordered by record sequence."""

    def load(self, ref: StorageRef) -> StoredRecord:
        """Read a record back."""


def record_key(record: StoredRecord) -> str:
    return f"{record.kind.value}-{format_fingerprint(record.fingerprint)}"


def candidate_keys(base: str):
    """Yield ``base`` then collision-safe alternates ``base_2``, ``base_3``, ..."""

    yield base
    for attempt in range(2, MAX_KEY_ATTEMPTS + 1):
        yield f"{base}_{attempt}"
