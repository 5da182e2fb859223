"""Runtime configuration for extraction runs."""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
from typing import Mapping

from readbooks.commands.targets import SerializationTarget, parse_targets
from readbooks.extraction.schema import SchemaGeneration
from readbooks.extraction.walker import DEFAULT_MAX_DEPTH

DEFAULT_DB_PATH = ".readbooks.db"
DEFAULT_OUTPUT_DIR = "readbooks_output"


@dataclass(frozen=True, slots=True)
class ExtractionSettings:
    """Validated settings shared by the extraction CLIs."""

    schema: SchemaGeneration = SchemaGeneration.MODERN
    max_depth: int = DEFAULT_MAX_DEPTH
    targets: tuple[SerializationTarget, ...] = field(default_factory=lambda: tuple(SerializationTarget))
    db_path: Path = Path(DEFAULT_DB_PATH)
    output_dir: Path = Path(DEFAULT_OUTPUT_DIR)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ExtractionSettings":
        source: Mapping[str, str] = os.environ if environ is None else environ

        schema_raw = source.get("READBOOKS_SCHEMA", SchemaGeneration.MODERN.value).strip()
        try:
            schema = SchemaGeneration.parse(schema_raw or SchemaGeneration.MODERN.value)
        except ValueError as exc:
            raise ValueError(f"READBOOKS_SCHEMA is invalid: {exc}") from exc

        depth_raw = source.get("READBOOKS_MAX_DEPTH", str(DEFAULT_MAX_DEPTH)).strip()
        try:
            max_depth = int(depth_raw)
        except ValueError as exc:
            raise ValueError("READBOOKS_MAX_DEPTH must be an integer") from exc
        if max_depth < 1:
            raise ValueError("READBOOKS_MAX_DEPTH must be >= 1")

        try:
            targets = tuple(parse_targets(source.get("READBOOKS_TARGETS")))
        except ValueError as exc:
            raise ValueError(f"READBOOKS_TARGETS is invalid: {exc}") from exc

        db_path = source.get("READBOOKS_DB_PATH", DEFAULT_DB_PATH).strip()
        if not db_path:
            raise ValueError("READBOOKS_DB_PATH cannot be empty")
        output_dir = source.get("READBOOKS_OUTPUT_DIR", DEFAULT_OUTPUT_DIR).strip()
        if not output_dir:
            raise ValueError("READBOOKS_OUTPUT_DIR cannot be empty")

        return cls(
            schema=schema,
            max_depth=max_depth,
            targets=targets,
            db_path=Path(db_path),
            output_dir=Path(output_dir),
        )
