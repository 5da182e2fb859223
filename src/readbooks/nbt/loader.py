"""Loading of JSON dumps produced by an external NBT decoder."""

from __future__ import annotations

from dataclasses import dataclass
import json
from pathlib import Path
from typing import Any

from readbooks.nbt.tree import NodeKind, get_child, kind

_CHUNK_KEYS = ("Level", "block_entities", "TileEntities", "entities", "Entities")
_PLAYER_KEYS = ("Inventory", "EnderItems")


@dataclass(slots=True)
class TreeLoadError(Exception):
    """Raised when a dump file cannot be read or does not hold a tree."""

    path: Path
    message: str

    def __str__(self) -> str:
        return f"{self.message} (path={self.path})"


@dataclass(slots=True)
class SourceTree:
    """One decoded root plus the label it was loaded under."""

    root: Any
    location: str
    source_kind: str


def detect_source_kind(root: Any) -> str:
    """Guess whether a root is a chunk, player data, or a bare container."""

    if any(get_child(root, key) is not None for key in _PLAYER_KEYS):
        return "player"
    if any(get_child(root, key) is not None for key in _CHUNK_KEYS):
        return "chunk"
    return "container"


def load_trees(path: str | Path) -> list[SourceTree]:
    """Read a JSON dump holding one root compound or a list of them."""

    source = Path(path)
    try:
        payload = json.loads(source.read_text(encoding="utf-8"))
    except OSError as exc:
        raise TreeLoadError(source, f"Failed to read tree dump: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise TreeLoadError(source, f"Tree dump is not valid JSON: {exc}") from exc

    roots: list[Any]
    if kind(payload) is NodeKind.COMPOUND:
        roots = [payload]
    elif kind(payload) is NodeKind.LIST:
        roots = list(payload)
    else:
        raise TreeLoadError(source, "Tree dump must hold a compound or a list of compounds")

    trees: list[SourceTree] = []
    for index, root in enumerate(roots):
        if kind(root) is not NodeKind.COMPOUND:
            raise TreeLoadError(source, f"Entry {index} is not a compound")
        location = source.name if len(roots) == 1 else f"{source.name}#{index}"
        trees.append(SourceTree(root=root, location=location, source_kind=detect_source_kind(root)))
    return trees
