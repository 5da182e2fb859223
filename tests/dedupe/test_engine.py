from __future__ import annotations

import pytest

from readbooks.dedupe.engine import DedupEngine, DedupStore, PlacementDecision
from readbooks.extraction.models import Artifact, ArtifactKind
from readbooks.extraction.warnings import CollectingWarningSink, Severity
from readbooks.storage.base import Bucket, StorageError, StorageRef, StoredRecord
from readbooks.storage.memory import MemoryRecordStorage


def _doc(pages: tuple[str, ...], precedence: int, provenance: str = "somewhere") -> Artifact:
    return Artifact(
        kind=ArtifactKind.DOCUMENT,
        pages=pages,
        provenance=provenance,
        title="Book",
        author="Author",
        precedence=precedence,
    )


def _records(storage: MemoryRecordStorage, bucket: Bucket) -> list[StoredRecord]:
    return [storage.load(ref) for ref in storage.list(bucket)]


class _FailingPrimaryStorage(MemoryRecordStorage):
    def __init__(self) -> None:
        super().__init__()
        self.fail_primary_store = False

    def store(self, bucket: Bucket, record: StoredRecord) -> StorageRef:
        if self.fail_primary_store and bucket is Bucket.PRIMARY:
            raise StorageError("store", "primary unavailable")
        return super().store(bucket, record)


def test_swap_on_late_canonical() -> None:
    storage = MemoryRecordStorage()
    engine = DedupEngine(storage)

    assert engine.ingest(_doc(("x",), 1)) is PlacementDecision.NEW_PRIMARY
    assert engine.ingest(_doc(("x",), 0)) is PlacementDecision.ACCEPTED

    primary = _records(storage, Bucket.PRIMARY)
    secondary = _records(storage, Bucket.SECONDARY)
    assert [record.precedence for record in primary] == [0]
    assert [record.precedence for record in secondary] == [1]


def test_duplicates_go_to_secondary() -> None:
    storage = MemoryRecordStorage()
    engine = DedupEngine(storage)

    assert engine.ingest(_doc(("x",), 0)) is PlacementDecision.NEW_PRIMARY
    assert engine.ingest(_doc(("x",), 0)) is PlacementDecision.NEW_SECONDARY
    assert engine.ingest(_doc(("x",), 2)) is PlacementDecision.NEW_SECONDARY
    assert engine.ingest(_doc(("y",), 3)) is PlacementDecision.NEW_PRIMARY

    assert len(storage.list(Bucket.PRIMARY)) == 2
    assert len(storage.list(Bucket.SECONDARY)) == 2
    assert engine.store.stats()["document"] == {"primary": 2, "secondary": 2}


def test_second_copy_does_not_swap_with_equal_precedence() -> None:
    storage = MemoryRecordStorage()
    engine = DedupEngine(storage)

    engine.ingest(_doc(("x",), 2, provenance="first"))
    assert engine.ingest(_doc(("x",), 1, provenance="second")) is PlacementDecision.NEW_SECONDARY

    assert _records(storage, Bucket.PRIMARY)[0].provenance == "first"


def test_documents_and_signs_with_same_pages_are_separate() -> None:
    storage = MemoryRecordStorage()
    engine = DedupEngine(storage)
    sign = Artifact(kind=ArtifactKind.SIGN, pages=("x",), provenance="sign")

    assert engine.ingest(_doc(("x",), 0)) is PlacementDecision.NEW_PRIMARY
    assert engine.ingest(sign) is PlacementDecision.NEW_PRIMARY
    assert len(storage.list(Bucket.PRIMARY)) == 2


def test_placement_invariant_holds_after_every_ingest() -> None:
    storage = MemoryRecordStorage()
    engine = DedupEngine(storage)
    sequence = [(("a",), 2), (("b",), 1), (("a",), 3), (("a",), 0), (("b",), 0), (("a",), 0), (("c",), 1)]
    canonical_seen: set[tuple[str, ...]] = set()

    for pages, precedence in sequence:
        engine.ingest(_doc(pages, precedence))
        if precedence == 0:
            canonical_seen.add(pages)
        primaries = {record.pages: record for record in _records(storage, Bucket.PRIMARY)}
        for pages_seen in canonical_seen:
            assert primaries[pages_seen].precedence == 0


def test_reconcile_restores_invariant_over_persisted_records() -> None:
    storage = MemoryRecordStorage()
    fingerprint = _doc(("x",), 0).fingerprint
    common = {"kind": ArtifactKind.DOCUMENT, "fingerprint": fingerprint, "pages": ("x",)}
    storage.store(Bucket.PRIMARY, StoredRecord(provenance="copy", sequence=0, precedence=2, **common))
    storage.store(Bucket.SECONDARY, StoredRecord(provenance="late original", sequence=5, precedence=0, **common))
    storage.store(Bucket.SECONDARY, StoredRecord(provenance="early original", sequence=3, precedence=0, **common))

    report = DedupEngine(storage).reconcile()

    assert report.checked == 1
    assert report.swaps == 1
    primary = _records(storage, Bucket.PRIMARY)
    assert [record.provenance for record in primary] == ["early original"]
    assert sorted(record.provenance for record in _records(storage, Bucket.SECONDARY)) == ["copy", "late original"]


def test_reconcile_is_idempotent() -> None:
    storage = MemoryRecordStorage()
    engine = DedupEngine(storage)
    engine.ingest(_doc(("x",), 1))
    engine.ingest(_doc(("x",), 0))
    engine.ingest(_doc(("y",), 0))

    first = engine.reconcile()
    snapshot = {bucket: storage.list(bucket) for bucket in Bucket}
    second = engine.reconcile()

    assert first.swaps == 0 and first.promotions == 0
    assert second.to_dict() == {"checked": 2, "swaps": 0, "promotions": 0, "errors": []}
    assert {bucket: storage.list(bucket) for bucket in Bucket} == snapshot


def test_reconcile_promotes_orphaned_secondary() -> None:
    storage = MemoryRecordStorage()
    fingerprint = _doc(("z",), 0).fingerprint
    storage.store(
        Bucket.SECONDARY,
        StoredRecord(kind=ArtifactKind.DOCUMENT, fingerprint=fingerprint, pages=("z",), provenance="lost", sequence=0, precedence=1),
    )

    report = DedupEngine(storage).reconcile()

    assert report.promotions == 1
    assert [record.provenance for record in _records(storage, Bucket.PRIMARY)] == ["lost"]


def test_reconcile_rebuilds_index_for_later_ingests() -> None:
    storage = MemoryRecordStorage()
    fingerprint = _doc(("x",), 0).fingerprint
    storage.store(
        Bucket.PRIMARY,
        StoredRecord(kind=ArtifactKind.DOCUMENT, fingerprint=fingerprint, pages=("x",), provenance="old", sequence=4),
    )
    engine = DedupEngine(storage)

    engine.reconcile()

    assert engine.ingest(_doc(("x",), 0)) is PlacementDecision.NEW_SECONDARY
    assert engine.store.peek_sequence() == 6


def test_from_storage_seeds_index_and_sequence() -> None:
    storage = MemoryRecordStorage()
    first = DedupEngine(storage)
    first.ingest(_doc(("x",), 2))
    first.ingest(_doc(("x",), 3))

    store = DedupStore.from_storage(storage)
    second = DedupEngine(storage, store)

    assert store.peek_sequence() == 2
    assert second.ingest(_doc(("x",), 0)) is PlacementDecision.ACCEPTED
    assert [record.precedence for record in _records(storage, Bucket.PRIMARY)] == [0]


def test_failed_swap_keeps_previous_primary() -> None:
    storage = _FailingPrimaryStorage()
    sink = CollectingWarningSink()
    engine = DedupEngine(storage, sink=sink)
    engine.ingest(_doc(("x",), 1, provenance="copy"))

    storage.fail_primary_store = True
    with pytest.raises(StorageError):
        engine.ingest(_doc(("x",), 0, provenance="original"))

    assert [record.provenance for record in _records(storage, Bucket.PRIMARY)] == ["copy"]
    assert storage.list(Bucket.SECONDARY) == []
    assert sink.count(Severity.ERROR) == 0

    storage.fail_primary_store = False
    assert engine.ingest(_doc(("x",), 0, provenance="original")) is PlacementDecision.ACCEPTED
    assert [record.provenance for record in _records(storage, Bucket.PRIMARY)] == ["original"]
