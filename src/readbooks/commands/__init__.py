"""Version-aware command serialization."""

from .layout import LayoutAllocator, Placement
from .serializer import SIGN_LINE_COUNT, serialize, serialize_page
from .targets import SerializationTarget, parse_targets

__all__ = [
    "LayoutAllocator",
    "Placement",
    "SIGN_LINE_COUNT",
    "SerializationTarget",
    "parse_targets",
    "serialize",
    "serialize_page",
]
