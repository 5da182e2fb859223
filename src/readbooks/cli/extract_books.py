"""CLI entrypoint for extracting books and signs from decoded tree dumps."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

from readbooks.commands.datapack import write_datapack
from readbooks.commands.export import render_commands
from readbooks.commands.targets import parse_targets
from readbooks.extraction.config import ExtractionSettings
from readbooks.extraction.pipeline import ExtractionRun, collect_inputs
from readbooks.extraction.schema import SchemaGeneration
from readbooks.nbt.loader import TreeLoadError, load_trees
from readbooks.storage.base import StorageError
from readbooks.storage.repository import SQLiteRecordStorage

LOGGER = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None, settings: ExtractionSettings) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Extract written books and signs from JSON tree dumps")
    parser.add_argument("--path", required=True, help="Tree dump file or directory of dumps")
    parser.add_argument(
        "--schema",
        choices=[generation.value for generation in SchemaGeneration],
        default=settings.schema.value,
        help="Item layout generation of the source trees",
    )
    parser.add_argument("--db-path", default=str(settings.db_path), help="SQLite record store path")
    parser.add_argument("--output-dir", default=str(settings.output_dir), help="Directory for generated datapacks")
    parser.add_argument(
        "--target",
        action="append",
        default=None,
        help="Target version (repeatable, e.g. 1_20_5); defaults to every supported version",
    )
    parser.add_argument("--max-depth", type=int, default=settings.max_depth, help="Container nesting ceiling")
    parser.add_argument("--no-datapack", action="store_true", help="Only fill the record store")
    parser.add_argument(
        "--include-duplicate-books",
        action="store_true",
        help="Also emit give commands for duplicate copies of books",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    try:
        settings = ExtractionSettings.from_env()
    except ValueError as exc:
        LOGGER.error("Invalid configuration: %s", exc)
        return 2
    args = _parse_args(argv, settings)

    try:
        targets = parse_targets(args.target) if args.target else list(settings.targets)
    except ValueError as exc:
        LOGGER.error("%s", exc)
        return 2
    if args.max_depth < 1:
        LOGGER.error("--max-depth must be >= 1")
        return 2

    source_path = Path(args.path)
    files = collect_inputs(source_path)
    errors: list[dict[str, str]] = []
    outputs: list[dict[str, object]] = []

    try:
        storage = SQLiteRecordStorage(args.db_path)
    except StorageError as exc:
        LOGGER.error("%s", exc)
        return 1

    with storage:
        run = ExtractionRun.resume(
            storage,
            generation=SchemaGeneration.parse(args.schema),
            max_depth=args.max_depth,
        )
        for file_path in files:
            try:
                trees = load_trees(file_path)
            except TreeLoadError as exc:
                errors.append({"source_path": str(file_path), "error": str(exc)})
                continue
            for tree in trees:
                run.process_tree(tree)

        reconciliation = run.finish()

        if not args.no_datapack:
            for target in targets:
                try:
                    rendered = render_commands(
                        storage,
                        target,
                        include_duplicate_books=args.include_duplicate_books,
                    )
                    result = write_datapack(
                        args.output_dir,
                        target,
                        books=rendered.books,
                        signs=rendered.signs,
                        shulker_boxes=rendered.shulker_boxes,
                    )
                except (StorageError, OSError) as exc:
                    errors.append({"target": target.value, "error": str(exc)})
                    continue
                outputs.append(result.to_dict())

    errors.extend(run.stats.error_details)
    errors.extend({"error": message} for message in reconciliation.errors)
    payload = {
        "path": str(source_path),
        "processed": len(files),
        "stats": run.stats.to_dict(),
        "reconciliation": reconciliation.to_dict(),
        "warnings": [warning.to_dict() for warning in run.warnings.warnings],
        "outputs": outputs,
        "errors": errors,
    }
    print(json.dumps(payload, ensure_ascii=True, indent=2))
    return 0 if not errors else 1


if __name__ == "__main__":
    raise SystemExit(main())
