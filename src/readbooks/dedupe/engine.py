"""Content-addressed deduplication with a canonical-copy placement invariant.

For every fingerprint the engine keeps one record in the primary bucket and
any further copies in the secondary bucket. Whenever some copy of a
fingerprint is canonical (precedence 0), the primary record is canonical too:
``ingest`` keeps this true after every artifact and ``reconcile`` restores it
over everything already in durable storage.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
import logging

from readbooks.extraction.models import Artifact, ArtifactKind
from readbooks.extraction.warnings import Severity, WarningSink
from readbooks.storage.base import Bucket, RecordStorage, StorageError, StorageRef, StoredRecord

logger = logging.getLogger(__name__)


class PlacementDecision(str, Enum):
    NEW_PRIMARY = "new_primary"
    NEW_SECONDARY = "new_secondary"
    ACCEPTED = "accepted"


@dataclass(slots=True)
class StoredEntry:
    ref: StorageRef
    precedence: int
    sequence: int

    @property
    def canonical(self) -> bool:
        return self.precedence == 0


@dataclass(slots=True)
class KindBuckets:
    primary: dict[int, StoredEntry] = field(default_factory=dict)
    secondary: dict[int, list[StoredEntry]] = field(default_factory=dict)

    def contains(self, fingerprint: int) -> bool:
        return fingerprint in self.primary or bool(self.secondary.get(fingerprint))


class DedupStore:
    """In-memory index of what one run has stored, owned by the caller."""

    def __init__(self) -> None:
        self._kinds: dict[ArtifactKind, KindBuckets] = {kind: KindBuckets() for kind in ArtifactKind}
        self._next_sequence = 0

    def buckets(self, kind: ArtifactKind) -> KindBuckets:
        return self._kinds[kind]

    def next_sequence(self) -> int:
        sequence = self._next_sequence
        self._next_sequence += 1
        return sequence

    def peek_sequence(self) -> int:
        return self._next_sequence

    def record(self, kind: ArtifactKind, fingerprint: int, bucket: Bucket, entry: StoredEntry) -> None:
        buckets = self._kinds[kind]
        if bucket is Bucket.PRIMARY and fingerprint not in buckets.primary:
            buckets.primary[fingerprint] = entry
        else:
            buckets.secondary.setdefault(fingerprint, []).append(entry)
        self._next_sequence = max(self._next_sequence, entry.sequence + 1)

    @classmethod
    def from_storage(cls, storage: RecordStorage) -> "DedupStore":
        """Seed an index from records persisted by earlier runs."""

        store = cls()
        for bucket in (Bucket.PRIMARY, Bucket.SECONDARY):
            for ref in storage.list(bucket):
                record = storage.load(ref)
                entry = StoredEntry(ref=ref, precedence=record.precedence, sequence=record.sequence)
                store.record(record.kind, record.fingerprint, bucket, entry)
        return store

    def stats(self) -> dict[str, dict[str, int]]:
        return {
            kind.value: {
                "primary": len(buckets.primary),
                "secondary": sum(len(entries) for entries in buckets.secondary.values()),
            }
            for kind, buckets in self._kinds.items()
        }


@dataclass(slots=True)
class ReconciliationReport:
    checked: int = 0
    swaps: int = 0
    promotions: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "checked": self.checked,
            "swaps": self.swaps,
            "promotions": self.promotions,
            "errors": list(self.errors),
        }


@dataclass(slots=True)
class _Group:
    primary: list[tuple[StorageRef, StoredRecord]] = field(default_factory=list)
    secondary: list[tuple[StorageRef, StoredRecord]] = field(default_factory=list)


class DedupEngine:
    """Route each artifact to the primary or secondary bucket of a storage collaborator."""

    def __init__(
        self,
        storage: RecordStorage,
        store: DedupStore | None = None,
        *,
        sink: WarningSink | None = None,
    ) -> None:
        self._storage = storage
        self._store = store or DedupStore()
        self._sink = sink

    @property
    def store(self) -> DedupStore:
        return self._store

    @property
    def storage(self) -> RecordStorage:
        return self._storage

    def ingest(self, artifact: Artifact) -> PlacementDecision:
        """Store one artifact and report where it went.

        Raises :class:`StorageError` when the collaborator fails; the index is
        only updated after a successful write, so the caller may continue with
        the next artifact.
        """

        fingerprint = artifact.fingerprint
        buckets = self._store.buckets(artifact.kind)
        primary = buckets.primary.get(fingerprint)

        if primary is None:
            # Also covers a persisted store whose primary went missing: the
            # newcomer takes the empty slot and reconcile() settles the rest.
            self._put(artifact, Bucket.PRIMARY)
            return PlacementDecision.NEW_PRIMARY

        if artifact.precedence == 0 and not primary.canonical:
            self._swap_in(artifact, primary)
            return PlacementDecision.ACCEPTED

        self._put(artifact, Bucket.SECONDARY)
        return PlacementDecision.NEW_SECONDARY

    def reconcile(self) -> ReconciliationReport:
        """Restore the placement invariant over everything in storage.

        Safe to run repeatedly; a store that already satisfies the invariant is
        left untouched.
        """

        report = ReconciliationReport()
        groups: dict[tuple[ArtifactKind, int], _Group] = defaultdict(_Group)
        for bucket in (Bucket.PRIMARY, Bucket.SECONDARY):
            for ref in self._storage.list(bucket):
                record = self._storage.load(ref)
                group = groups[(record.kind, record.fingerprint)]
                target = group.primary if bucket is Bucket.PRIMARY else group.secondary
                target.append((ref, record))

        for (kind, fingerprint), group in groups.items():
            report.checked += 1
            try:
                self._reconcile_group(group, report)
            except StorageError as exc:
                message = f"Reconciliation failed for {kind.value} {fingerprint:016x}: {exc}"
                report.errors.append(message)
                self._emit(Severity.ERROR, message)

        self._store = DedupStore.from_storage(self._storage)
        logger.info(
            "Reconciled %s fingerprints: %s swaps, %s promotions, %s errors",
            report.checked,
            report.swaps,
            report.promotions,
            len(report.errors),
        )
        return report

    def _reconcile_group(self, group: _Group, report: ReconciliationReport) -> None:
        everything = sorted(group.primary + group.secondary, key=lambda item: item[1].sequence)
        canonical = [item for item in everything if item[1].precedence == 0]
        current = sorted(group.primary, key=lambda item: item[1].sequence)

        if canonical:
            desired = canonical[0]
            if current and current[0][1].precedence == 0:
                desired = current[0]
        elif current:
            desired = current[0]
        else:
            desired = everything[0]

        displaced = [item for item in current if item[0] != desired[0]]
        if not displaced and desired in current:
            return

        for ref, record in displaced:
            self._storage.relocate(ref, Bucket.SECONDARY)
            logger.debug("Moved %s out of primary (precedence %s)", ref.key, record.precedence)

        if desired in current:
            return
        self._storage.relocate(desired[0], Bucket.PRIMARY)
        if current:
            report.swaps += 1
        else:
            report.promotions += 1

    def _put(self, artifact: Artifact, bucket: Bucket) -> StorageRef:
        sequence = self._store.peek_sequence()
        record = StoredRecord.from_artifact(artifact, sequence)
        ref = self._storage.store(bucket, record)
        self._store.next_sequence()
        self._store.record(
            artifact.kind,
            artifact.fingerprint,
            bucket,
            StoredEntry(ref=ref, precedence=artifact.precedence, sequence=sequence),
        )
        return ref

    def _swap_in(self, artifact: Artifact, primary: StoredEntry) -> None:
        buckets = self._store.buckets(artifact.kind)
        fingerprint = artifact.fingerprint

        demoted_ref = self._storage.relocate(primary.ref, Bucket.SECONDARY)
        sequence = self._store.peek_sequence()
        record = StoredRecord.from_artifact(artifact, sequence)
        try:
            ref = self._storage.store(Bucket.PRIMARY, record)
        except StorageError:
            try:
                restored_ref = self._storage.relocate(demoted_ref, Bucket.PRIMARY)
            except StorageError as restore_exc:
                # Still stored, only in the wrong bucket; reconcile() moves it back.
                self._emit(Severity.ERROR, f"Could not restore {demoted_ref.key} to primary: {restore_exc}")
                del buckets.primary[fingerprint]
                demoted = StoredEntry(ref=demoted_ref, precedence=primary.precedence, sequence=primary.sequence)
                buckets.secondary.setdefault(fingerprint, []).append(demoted)
            else:
                primary.ref = restored_ref
            raise

        self._store.next_sequence()
        del buckets.primary[fingerprint]
        demoted = StoredEntry(ref=demoted_ref, precedence=primary.precedence, sequence=primary.sequence)
        buckets.secondary.setdefault(fingerprint, []).append(demoted)
        buckets.primary[fingerprint] = StoredEntry(ref=ref, precedence=artifact.precedence, sequence=sequence)
        logger.debug("Canonical copy replaced %s as primary", demoted_ref.key)

    def _emit(self, severity: Severity, message: str) -> None:
        if self._sink is not None:
            self._sink.emit(severity, message)
        else:
            logger.log(logging.ERROR if severity is Severity.ERROR else logging.WARNING, message)
