"""Run orchestration: load trees, walk them, dedupe into storage, reconcile."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
import logging
from pathlib import Path
import time

from readbooks.dedupe.engine import DedupEngine, DedupStore, PlacementDecision, ReconciliationReport
from readbooks.extraction.models import ArtifactFound, ArtifactKind
from readbooks.extraction.schema import SchemaGeneration
from readbooks.extraction.text import is_blank
from readbooks.extraction.walker import DEFAULT_MAX_DEPTH, ContainerWalker
from readbooks.extraction.warnings import CollectingWarningSink, LoggingWarningSink, Severity, WarningSink
from readbooks.nbt.loader import SourceTree
from readbooks.storage.base import RecordStorage, StorageError

logger = logging.getLogger(__name__)

_SUPPORTED_SUFFIXES = {".json"}


@dataclass(slots=True)
class ExtractionStats:
    trees: int = 0
    artifacts: int = 0
    new_primary: int = 0
    new_secondary: int = 0
    accepted: int = 0
    empty_signs_skipped: int = 0
    storage_errors: int = 0
    duration_ms: int = 0
    error_details: list[dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> dict[str, int | list[dict[str, str]]]:
        return {
            "trees": self.trees,
            "artifacts": self.artifacts,
            "new_primary": self.new_primary,
            "new_secondary": self.new_secondary,
            "accepted": self.accepted,
            "empty_signs_skipped": self.empty_signs_skipped,
            "storage_errors": self.storage_errors,
            "duration_ms": self.duration_ms,
            "error_details": self.error_details,
        }


def collect_inputs(target: Path) -> list[Path]:
    if target.is_file():
        return [target]
    if target.is_dir():
        return sorted(
            path for path in target.rglob("*") if path.is_file() and path.suffix.lower() in _SUPPORTED_SUFFIXES
        )
    return []


class ExtractionRun:
    """One extraction run over any number of trees sharing a dedup store."""

    def __init__(
        self,
        storage: RecordStorage,
        *,
        generation: SchemaGeneration = SchemaGeneration.MODERN,
        max_depth: int = DEFAULT_MAX_DEPTH,
        sink: WarningSink | None = None,
        store: DedupStore | None = None,
    ) -> None:
        self.generation = generation
        self.max_depth = max_depth
        self._sink = CollectingWarningSink(forward=sink or LoggingWarningSink())
        self._engine = DedupEngine(storage, store, sink=self._sink)
        self._stats = ExtractionStats()
        self._started = time.perf_counter()

    @classmethod
    def resume(cls, storage: RecordStorage, **kwargs) -> "ExtractionRun":
        """Start a run that dedupes against records stored by earlier runs."""

        return cls(storage, store=DedupStore.from_storage(storage), **kwargs)

    @property
    def stats(self) -> ExtractionStats:
        return self._stats

    @property
    def warnings(self) -> CollectingWarningSink:
        return self._sink

    @property
    def engine(self) -> DedupEngine:
        return self._engine

    def walker(self, generation: SchemaGeneration | None = None) -> ContainerWalker:
        return ContainerWalker(generation or self.generation, max_depth=self.max_depth, sink=self._sink)

    def walk_tree(self, tree: SourceTree, generation: SchemaGeneration | None = None) -> Iterator[ArtifactFound]:
        walker = self.walker(generation)
        if tree.source_kind == "chunk":
            return walker.walk_chunk(tree.root, tree.location)
        if tree.source_kind == "player":
            return walker.walk_player(tree.root, tree.location)
        return walker.walk(tree.root, tree.location)

    def process_tree(self, tree: SourceTree, generation: SchemaGeneration | None = None) -> int:
        """Walk one tree and ingest what it holds; returns the number of artifacts found."""

        found_count = 0
        for found in self.walk_tree(tree, generation):
            found_count += 1
            self.ingest(found)
        self._stats.trees += 1
        logger.info("Processed %s: %s artifacts", tree.location, found_count)
        return found_count

    def ingest(self, found: ArtifactFound) -> PlacementDecision | None:
        """Ingest one artifact; storage failures are recorded and do not stop the run."""

        artifact = found.artifact
        if artifact.kind is ArtifactKind.SIGN and is_blank(artifact.pages) and is_blank(artifact.back_lines):
            self._stats.empty_signs_skipped += 1
            return None

        self._stats.artifacts += 1
        try:
            decision = self._engine.ingest(artifact)
        except StorageError as exc:
            self._stats.storage_errors += 1
            self._stats.error_details.append({"location": found.location, "error": str(exc)})
            self._sink.emit(Severity.ERROR, f"Failed to store artifact from {found.location}: {exc}")
            return None

        if decision is PlacementDecision.NEW_PRIMARY:
            self._stats.new_primary += 1
        elif decision is PlacementDecision.NEW_SECONDARY:
            self._stats.new_secondary += 1
        else:
            self._stats.accepted += 1
        return decision

    def finish(self) -> ReconciliationReport:
        """Run the end-of-run reconciliation pass and close the stats."""

        report = self._engine.reconcile()
        self._stats.duration_ms = int((time.perf_counter() - self._started) * 1000)
        return report
