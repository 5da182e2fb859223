"""Datapack output: one pack per target version."""

from __future__ import annotations

from dataclasses import dataclass
import json
import logging
from pathlib import Path

from readbooks.commands.targets import SerializationTarget

logger = logging.getLogger(__name__)

NAMESPACE = "readbooks"


@dataclass(slots=True)
class DatapackResult:
    target: SerializationTarget
    root: Path
    function_dir: Path
    files: dict[str, int]

    def to_dict(self) -> dict[str, object]:
        return {
            "target": self.target.value,
            "root": str(self.root),
            "function_dir": str(self.function_dir),
            "files": dict(self.files),
        }


def datapack_root(output_dir: str | Path, target: SerializationTarget) -> Path:
    return Path(output_dir) / f"readbooks_datapack_{target.value}"


def write_pack_mcmeta(root: Path, target: SerializationTarget) -> Path:
    profile = target.profile
    payload = {"pack": {"pack_format": profile.pack_format, "description": profile.description}}
    path = root / "pack.mcmeta"
    path.write_text(json.dumps(payload, ensure_ascii=True, indent=2) + "\n", encoding="utf-8")
    return path


def write_function(function_dir: Path, name: str, commands: list[str]) -> Path:
    path = function_dir / f"{name}.mcfunction"
    body = "\n".join(commands)
    path.write_text(body + "\n" if body else "", encoding="utf-8")
    return path


def write_datapack(
    output_dir: str | Path,
    target: SerializationTarget,
    *,
    books: list[str],
    signs: list[str],
    shulker_boxes: list[str] | None = None,
) -> DatapackResult:
    """Write ``pack.mcmeta`` plus one ``.mcfunction`` file per command group.

    1.21 renamed the function directory from ``functions`` to ``function``;
    the target profile decides which one is used.
    """

    root = datapack_root(output_dir, target)
    function_dir = root / "data" / NAMESPACE / target.profile.function_dir
    function_dir.mkdir(parents=True, exist_ok=True)
    write_pack_mcmeta(root, target)

    groups = {"books": books, "signs": signs}
    if shulker_boxes is not None:
        groups["shulker_boxes"] = shulker_boxes
    files: dict[str, int] = {}
    for name, commands in groups.items():
        path = write_function(function_dir, name, commands)
        files[path.name] = len(commands)

    logger.info("Wrote datapack %s (%s)", root, ", ".join(f"{name}={count}" for name, count in files.items()))
    return DatapackResult(target=target, root=root, function_dir=function_dir, files=files)
