"""Read-only views over already-decoded NBT trees."""

from .loader import SourceTree, TreeLoadError, load_trees
from .tree import NodeKind, as_bytes, as_int, as_number, as_string, get_child, get_indexed, kind

__all__ = [
    "NodeKind",
    "SourceTree",
    "TreeLoadError",
    "as_bytes",
    "as_int",
    "as_number",
    "as_string",
    "get_child",
    "get_indexed",
    "kind",
    "load_trees",
]
