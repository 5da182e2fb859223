"""Generic node accessors for decoded NBT trees.

A decoded tree is made of plain Python values: mappings for compounds,
sequences for lists and arrays, and ``str``/``int``/``float``/``bytes`` for
primitives. Decoders that subclass the builtin types (``nbtlib`` does) work
unchanged. Nothing in this module mutates the tree.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from enum import Enum
from typing import Any


class NodeKind(str, Enum):
    COMPOUND = "compound"
    LIST = "list"
    STRING = "string"
    INT = "int"
    FLOAT = "float"
    BYTES = "bytes"


def kind(node: Any) -> NodeKind | None:
    """Classify a node, returning None for values that are not tree nodes."""

    if isinstance(node, Mapping):
        return NodeKind.COMPOUND
    if isinstance(node, str):
        return NodeKind.STRING
    if isinstance(node, (bytes, bytearray)):
        return NodeKind.BYTES
    if isinstance(node, bool):
        return NodeKind.INT
    if isinstance(node, int):
        return NodeKind.INT
    if isinstance(node, float):
        return NodeKind.FLOAT
    if isinstance(node, Sequence):
        return NodeKind.LIST
    return None


def get_child(node: Any, key: str) -> Any | None:
    if kind(node) is not NodeKind.COMPOUND:
        return None
    return node.get(key)


def get_indexed(node: Any, index: int) -> Any | None:
    if kind(node) is not NodeKind.LIST:
        return None
    if index < 0 or index >= len(node):
        return None
    return node[index]


def get_path(node: Any, *keys: str) -> Any | None:
    """Follow compound keys, stopping at the first missing or non-compound step."""

    current = node
    for key in keys:
        current = get_child(current, key)
        if current is None:
            return None
    return current


def has_key(node: Any, key: str) -> bool:
    return get_child(node, key) is not None


def as_string(node: Any) -> str | None:
    if kind(node) is NodeKind.STRING:
        return str(node)
    return None


def as_int(node: Any) -> int | None:
    if kind(node) is NodeKind.INT:
        return int(node)
    return None


def as_number(node: Any) -> float | None:
    node_kind = kind(node)
    if node_kind is NodeKind.INT or node_kind is NodeKind.FLOAT:
        return float(node)
    return None


def as_bytes(node: Any) -> bytes | None:
    if kind(node) is NodeKind.BYTES:
        return bytes(node)
    return None


def iter_list(node: Any) -> Iterator[Any]:
    if kind(node) is not NodeKind.LIST:
        return iter(())
    return iter(node)


def compound_list(node: Any, key: str) -> list[Mapping[str, Any]]:
    """Return the compounds stored in the list under ``key``, skipping other kinds."""

    return [child for child in iter_list(get_child(node, key)) if kind(child) is NodeKind.COMPOUND]


def string_list(node: Any) -> list[str] | None:
    """Return a list node's values when every element is a string."""

    if kind(node) is not NodeKind.LIST:
        return None
    values: list[str] = []
    for child in node:
        text = as_string(child)
        if text is None:
            return None
        values.append(text)
    return values
