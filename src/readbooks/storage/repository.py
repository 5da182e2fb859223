"""SQLite-backed record storage."""

from __future__ import annotations

import json
import logging
from pathlib import Path
import sqlite3

from readbooks.extraction.fingerprint import format_fingerprint, parse_fingerprint
from readbooks.extraction.models import ArtifactKind
from readbooks.storage.base import Bucket, StorageError, StorageRef, StoredRecord, candidate_keys, record_key
from readbooks.storage.schema import apply_runtime_pragmas, ensure_schema

logger = logging.getLogger(__name__)

_RECORD_COLUMNS = """
    kind, fingerprint, sequence, title, author, precedence, pages_json,
    back_lines_json, provenance, item_id, item_count, origin_x, origin_y, origin_z
"""


class SQLiteRecordStorage:
    """Thin transactional layer over the SQLite record schema."""

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path)
        try:
            self._connection = sqlite3.connect(str(self._db_path))
            self._connection.row_factory = sqlite3.Row
            apply_runtime_pragmas(self._connection)
            ensure_schema(self._connection)
        except sqlite3.Error as exc:
            raise StorageError("open", f"Failed to open record store {self._db_path}: {exc}") from exc

    @property
    def connection(self) -> sqlite3.Connection:
        return self._connection

    def close(self) -> None:
        self._connection.close()

    def __enter__(self) -> "SQLiteRecordStorage":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def store(self, bucket: Bucket, record: StoredRecord) -> StorageRef:
        base_key = record_key(record)
        origin = record.origin or (None, None, None)
        for key in candidate_keys(base_key):
            try:
                with self._connection:
                    self._connection.execute(
                        f"""
                        INSERT INTO records(bucket, record_key, {_RECORD_COLUMNS})
                        VALUES(?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                        """,
                        (
                            bucket.value,
                            key,
                            record.kind.value,
                            format_fingerprint(record.fingerprint),
                            record.sequence,
                            record.title,
                            record.author,
                            record.precedence,
                            json.dumps(list(record.pages), ensure_ascii=True),
                            json.dumps(list(record.back_lines), ensure_ascii=True),
                            record.provenance,
                            record.item_id,
                            record.item_count,
                            origin[0],
                            origin[1],
                            origin[2],
                        ),
                    )
            except sqlite3.IntegrityError as exc:
                if not self._key_taken(bucket, key):
                    raise StorageError("store", f"Record rejected by schema: {exc}") from exc
                logger.debug("Key %s/%s taken, trying next", bucket.value, key)
                continue
            except (sqlite3.Error, UnicodeError) as exc:
                raise StorageError("store", f"Failed to store {base_key}: {exc}") from exc
            return StorageRef(bucket=bucket, key=key)
        raise StorageError("store", f"No free key left for {base_key} in {bucket.value}")

    def relocate(self, ref: StorageRef, to_bucket: Bucket) -> StorageRef:
        record = self.load(ref)
        if ref.bucket is to_bucket:
            return ref
        for key in candidate_keys(record_key(record)):
            try:
                with self._connection:
                    cursor = self._connection.execute(
                        """
                        UPDATE records
                        SET bucket = ?, record_key = ?
                        WHERE bucket = ? AND record_key = ?
                        """,
                        (to_bucket.value, key, ref.bucket.value, ref.key),
                    )
            except sqlite3.IntegrityError as exc:
                if not self._key_taken(to_bucket, key):
                    raise StorageError("relocate", f"Relocation rejected by schema: {exc}") from exc
                logger.debug("Key %s/%s taken during relocation, trying next", to_bucket.value, key)
                continue
            except (sqlite3.Error, UnicodeError) as exc:
                raise StorageError("relocate", f"Failed to relocate {ref.key}: {exc}") from exc
            if cursor.rowcount != 1:
                raise StorageError("relocate", f"No record under {ref.bucket.value}/{ref.key}")
            return StorageRef(bucket=to_bucket, key=key)
        raise StorageError("relocate", f"No free key left for {ref.key} in {to_bucket.value}")

    def list(self, bucket: Bucket) -> list[StorageRef]:
        try:
            rows = self._connection.execute(
                """
                SELECT record_key
                FROM records
                WHERE bucket = ?
                ORDER BY sequence ASC, record_key ASC
                """,
                (bucket.value,),
            ).fetchall()
        except sqlite3.Error as exc:
            raise StorageError("list", f"Failed to list {bucket.value}: {exc}") from exc
        return [StorageRef(bucket=bucket, key=row["record_key"]) for row in rows]

    def load(self, ref: StorageRef) -> StoredRecord:
        try:
            row = self._connection.execute(
                f"""
                SELECT {_RECORD_COLUMNS}
                FROM records
                WHERE bucket = ? AND record_key = ?
                """,
                (ref.bucket.value, ref.key),
            ).fetchone()
        except sqlite3.Error as exc:
            raise StorageError("load", f"Failed to load {ref.key}: {exc}") from exc
        if row is None:
            raise StorageError("load", f"No record under {ref.bucket.value}/{ref.key}")
        origin = None
        if row["origin_x"] is not None:
            origin = (int(row["origin_x"]), int(row["origin_y"]), int(row["origin_z"]))
        return StoredRecord(
            kind=ArtifactKind(row["kind"]),
            fingerprint=parse_fingerprint(row["fingerprint"]),
            pages=tuple(json.loads(row["pages_json"])),
            provenance=row["provenance"],
            sequence=int(row["sequence"]),
            title=row["title"],
            author=row["author"],
            precedence=int(row["precedence"]),
            back_lines=tuple(json.loads(row["back_lines_json"])),
            item_id=row["item_id"],
            item_count=int(row["item_count"]),
            origin=origin,
        )

    def count(self, bucket: Bucket | None = None) -> int:
        if bucket is None:
            row = self._connection.execute("SELECT COUNT(*) AS total FROM records").fetchone()
        else:
            row = self._connection.execute(
                "SELECT COUNT(*) AS total FROM records WHERE bucket = ?",
                (bucket.value,),
            ).fetchone()
        return int(row["total"])

    def _key_taken(self, bucket: Bucket, key: str) -> bool:
        row = self._connection.execute(
            "SELECT 1 FROM records WHERE bucket = ? AND record_key = ?",
            (bucket.value, key),
        ).fetchone()
        return row is not None
