"""SQLite schema and pragmas for the record store."""

from __future__ import annotations

import sqlite3


PRAGMA_BUSY_TIMEOUT_MS = 5000


def apply_runtime_pragmas(connection: sqlite3.Connection) -> None:
    """Apply runtime pragmas recommended for local batch writes."""

    connection.execute("PRAGMA journal_mode=WAL;")
    connection.execute(f"PRAGMA busy_timeout={PRAGMA_BUSY_TIMEOUT_MS};")
    connection.execute("PRAGMA synchronous=NORMAL;")
    connection.execute("PRAGMA foreign_keys=ON;")


def ensure_schema(connection: sqlite3.Connection) -> None:
    """Create record tables and indexes if missing."""

    connection.executescript(
        """
        CREATE TABLE IF NOT EXISTS records (
            id INTEGER PRIMARY KEY,
            bucket TEXT NOT NULL CHECK(bucket IN ('primary','secondary')),
            record_key TEXT NOT NULL,
            kind TEXT NOT NULL CHECK(kind IN ('document','sign')),
            fingerprint TEXT NOT NULL,
            sequence INTEGER NOT NULL,
            title TEXT,
            author TEXT,
            precedence INTEGER NOT NULL DEFAULT 0 CHECK(precedence BETWEEN 0 AND 3),
            pages_json TEXT NOT NULL,
            back_lines_json TEXT NOT NULL DEFAULT '[]',
            provenance TEXT NOT NULL,
            item_id TEXT,
            item_count INTEGER NOT NULL DEFAULT 1,
            origin_x INTEGER,
            origin_y INTEGER,
            origin_z INTEGER,
            stored_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
            UNIQUE(bucket, record_key)
        );

        CREATE INDEX IF NOT EXISTS idx_records_kind_fingerprint ON records(kind, fingerprint);
        CREATE INDEX IF NOT EXISTS idx_records_bucket_sequence ON records(bucket, sequence);
        """
    )
