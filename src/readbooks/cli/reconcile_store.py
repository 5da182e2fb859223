"""CLI entrypoint for re-running placement reconciliation on a record store."""

from __future__ import annotations

import argparse
import json
import logging

from dotenv import load_dotenv

load_dotenv()

from readbooks.dedupe.engine import DedupEngine
from readbooks.extraction.config import ExtractionSettings
from readbooks.storage.base import Bucket, StorageError
from readbooks.storage.repository import SQLiteRecordStorage

LOGGER = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    try:
        settings = ExtractionSettings.from_env()
    except ValueError as exc:
        LOGGER.error("Invalid configuration: %s", exc)
        return 2

    parser = argparse.ArgumentParser(description="Restore canonical copies to the primary bucket")
    parser.add_argument("--db-path", default=str(settings.db_path), help="SQLite record store path")
    args = parser.parse_args(argv)

    try:
        with SQLiteRecordStorage(args.db_path) as storage:
            report = DedupEngine(storage, store=None).reconcile()
            counts = {bucket.value: storage.count(bucket) for bucket in Bucket}
    except StorageError as exc:
        LOGGER.error("%s", exc)
        return 1

    payload = {"db_path": args.db_path, "records": counts, **report.to_dict()}
    print(json.dumps(payload, ensure_ascii=True, indent=2))
    return 0 if not report.errors else 1


if __name__ == "__main__":
    raise SystemExit(main())
