"""Durable storage for deduplicated records."""

from .base import Bucket, RecordStorage, StorageError, StorageRef, StoredRecord
from .memory import MemoryRecordStorage
from .repository import SQLiteRecordStorage

__all__ = [
    "Bucket",
    "MemoryRecordStorage",
    "RecordStorage",
    "SQLiteRecordStorage",
    "StorageError",
    "StorageRef",
    "StoredRecord",
]
