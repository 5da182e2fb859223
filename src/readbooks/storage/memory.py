"""In-process storage used by tests and dry runs."""

from __future__ import annotations

from readbooks.storage.base import Bucket, StorageError, StorageRef, StoredRecord, candidate_keys, record_key


class MemoryRecordStorage:
    def __init__(self) -> None:
        self._buckets: dict[Bucket, dict[str, StoredRecord]] = {bucket: {} for bucket in Bucket}

    def store(self, bucket: Bucket, record: StoredRecord) -> StorageRef:
        return self._put(bucket, record)

    def relocate(self, ref: StorageRef, to_bucket: Bucket) -> StorageRef:
        source = self._buckets[ref.bucket]
        record = source.get(ref.key)
        if record is None:
            raise StorageError("relocate", f"No record under {ref.bucket.value}/{ref.key}")
        if ref.bucket is to_bucket:
            return ref
        # Insert before removing so a failed insert never drops the record.
        new_ref = self._put(to_bucket, record)
        del source[ref.key]
        return new_ref

    def list(self, bucket: Bucket) -> list[StorageRef]:
        entries = sorted(self._buckets[bucket].items(), key=lambda item: (item[1].sequence, item[0]))
        return [StorageRef(bucket=bucket, key=key) for key, _ in entries]

    def load(self, ref: StorageRef) -> StoredRecord:
        record = self._buckets[ref.bucket].get(ref.key)
        if record is None:
            raise StorageError("load", f"No record under {ref.bucket.value}/{ref.key}")
        return record

    def __len__(self) -> int:
        return sum(len(records) for records in self._buckets.values())

    def _put(self, bucket: Bucket, record: StoredRecord) -> StorageRef:
        records = self._buckets[bucket]
        base_key = record_key(record)
        for key in candidate_keys(base_key):
            if key not in records:
                records[key] = record
                return StorageRef(bucket=bucket, key=key)
        raise StorageError("store", f"No free key left for {base_key} in {bucket.value}")
