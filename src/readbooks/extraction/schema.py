"""Field resolution across the legacy ``tag`` and modern ``components`` item layouts.

Item data changed shape in the 1.20.5 data-component rework:

* legacy items keep book fields flat under ``tag`` (``tag.pages`` is a list of
  strings, ``Count`` is a byte) and container contents under
  ``tag.BlockEntityTag.Items``;
* modern items nest them under a namespaced component
  (``components["minecraft:written_book_content"]``), wrap every page and the
  title one level deeper in a ``{raw, filtered}`` compound, store ``count`` as
  an int, and list container contents as ``{slot, item}`` records.

Signs changed separately (1.20): ``Text1``..``Text4`` became
``front_text``/``back_text`` compounds holding a ``messages`` list.

Both layouts produce the same :class:`RawArtifactFields`. Resolution never
raises: malformed data yields ``None``.
"""

from __future__ import annotations

from dataclasses import replace
from enum import Enum
import json
from typing import Any

from readbooks.extraction.models import MAX_PRECEDENCE, ArtifactKind, ContainerKind, RawArtifactFields
from readbooks.extraction.warnings import Severity, WarningSink
from readbooks.nbt.tree import (
    NodeKind,
    as_int,
    as_string,
    compound_list,
    get_child,
    get_path,
    iter_list,
    kind,
    string_list,
)

WRITTEN_BOOK_ID = "minecraft:written_book"
WRITABLE_BOOK_ID = "minecraft:writable_book"
BOOK_IDS = frozenset({WRITTEN_BOOK_ID, WRITABLE_BOOK_ID})

WRITTEN_BOOK_COMPONENT = "minecraft:written_book_content"
WRITABLE_BOOK_COMPONENT = "minecraft:writable_book_content"
CONTAINER_COMPONENT = "minecraft:container"
BUNDLE_COMPONENT = "minecraft:bundle_contents"

SIGN_LEGACY_KEYS = ("Text1", "Text2", "Text3", "Text4")

DYE_COLORS = (
    "white",
    "orange",
    "magenta",
    "light_blue",
    "yellow",
    "lime",
    "pink",
    "gray",
    "light_gray",
    "cyan",
    "purple",
    "blue",
    "brown",
    "green",
    "red",
    "black",
)

_CHEST_IDS = frozenset(
    f"minecraft:{name}"
    for name in (
        "chest",
        "trapped_chest",
        "barrel",
        "dispenser",
        "dropper",
        "hopper",
        "furnace",
        "blast_furnace",
        "smoker",
        "decorated_pot",
        "crafter",
        "chiseled_bookshelf",
        "chest_minecart",
        "hopper_minecart",
        "chest_boat",
        "copper_chest",
        "exposed_copper_chest",
        "weathered_copper_chest",
        "oxidized_copper_chest",
        "waxed_copper_chest",
        "waxed_exposed_copper_chest",
        "waxed_weathered_copper_chest",
        "waxed_oxidized_copper_chest",
    )
)
_CHEST_SUFFIXES = ("_chest_boat", "_chest_raft")
_BOX_IDS = frozenset({"minecraft:shulker_box"} | {f"minecraft:{color}_shulker_box" for color in DYE_COLORS})
_STACK_IDS = frozenset({"minecraft:bundle"} | {f"minecraft:{color}_bundle" for color in DYE_COLORS})
_DISPLAY_FIELDS = {
    "minecraft:lectern": "Book",
    "minecraft:item_frame": "Item",
    "minecraft:glow_item_frame": "Item",
    "minecraft:item": "Item",
}


class SchemaGeneration(str, Enum):
    LEGACY = "legacy"
    MODERN = "modern"

    @classmethod
    def parse(cls, value: str) -> "SchemaGeneration":
        normalized = value.strip().lower()
        for member in cls:
            if member.value == normalized:
                return member
        allowed = ", ".join(member.value for member in cls)
        raise ValueError(f"Unknown schema generation '{value}' (expected one of: {allowed})")

    @property
    def other(self) -> "SchemaGeneration":
        return SchemaGeneration.MODERN if self is SchemaGeneration.LEGACY else SchemaGeneration.LEGACY


def normalize_item_id(raw: str | None) -> str | None:
    if not raw:
        return None
    if ":" not in raw:
        return f"minecraft:{raw}"
    return raw


def node_id(node: Any) -> str | None:
    return normalize_item_id(as_string(get_child(node, "id")))


def id_label(identifier: str | None) -> str:
    if not identifier:
        return "unknown"
    return identifier.split(":", 1)[-1]


def slot_of(node: Any, default: int) -> int:
    slot = as_int(get_child(node, "Slot"))
    if slot is None:
        slot = as_int(get_child(node, "slot"))
    return default if slot is None else slot


def _component_string(node: Any) -> str | None:
    """Render a page/line node as text, serializing structured components as JSON."""

    text = as_string(node)
    if text is not None:
        return text
    if kind(node) in (NodeKind.COMPOUND, NodeKind.LIST):
        try:
            return json.dumps(node, ensure_ascii=False, separators=(",", ":"))
        except (TypeError, ValueError):
            return None
    return None


def _filterable_text(node: Any) -> str | None:
    """Read a filterable string: either a bare value or a ``{raw, filtered}`` compound."""

    if kind(node) is NodeKind.COMPOUND and ("raw" in node or "filtered" in node):
        raw = get_child(node, "raw")
        if raw is None:
            raw = get_child(node, "filtered")
        return _component_string(raw)
    return _component_string(node)


def _item_slots(items: list[Any]) -> list[tuple[int, Any]]:
    return [(slot_of(item, index), item) for index, item in enumerate(items)]


class LegacyLayout:
    """Pre-1.20.5 items and pre-1.20 signs."""

    generation = SchemaGeneration.LEGACY

    def book_fields(self, item: Any) -> RawArtifactFields | None:
        item_id = node_id(item)
        if item_id not in BOOK_IDS:
            return None
        tag = get_child(item, "tag")
        if kind(tag) is not NodeKind.COMPOUND:
            return None
        pages = string_list(get_child(tag, "pages"))
        if not pages:
            return None

        count = as_int(get_child(item, "Count"))
        if item_id == WRITABLE_BOOK_ID:
            return RawArtifactFields(
                kind=ArtifactKind.DOCUMENT,
                pages=tuple(pages),
                item_id=item_id,
                item_count=1 if count is None else count,
            )
        return RawArtifactFields(
            kind=ArtifactKind.DOCUMENT,
            pages=tuple(pages),
            title=as_string(get_child(tag, "title")),
            author=as_string(get_child(tag, "author")),
            precedence=as_int(get_child(tag, "generation")),
            item_id=item_id,
            item_count=1 if count is None else count,
        )

    def sign_fields(self, block_entity: Any) -> RawArtifactFields | None:
        if get_child(block_entity, SIGN_LEGACY_KEYS[0]) is None:
            return None
        lines: list[str] = []
        for key in SIGN_LEGACY_KEYS:
            value = get_child(block_entity, key)
            if value is None:
                lines.append("")
                continue
            text = as_string(value)
            if text is None:
                return None
            lines.append(text)
        return RawArtifactFields(kind=ArtifactKind.SIGN, pages=tuple(lines), item_id=node_id(block_entity))

    def container_items(self, node: Any, container_kind: ContainerKind) -> list[tuple[int, Any]] | None:
        if container_kind is ContainerKind.STACK:
            holder = get_child(node, "tag")
        else:
            holder = get_path(node, "tag", "BlockEntityTag")
        if kind(get_child(holder, "Items")) is not NodeKind.LIST:
            return None
        return _item_slots(compound_list(holder, "Items"))


class ModernLayout:
    """1.20.5+ component items and 1.20+ two-sided signs."""

    generation = SchemaGeneration.MODERN

    def book_fields(self, item: Any) -> RawArtifactFields | None:
        item_id = node_id(item)
        if item_id not in BOOK_IDS:
            return None
        component_key = WRITTEN_BOOK_COMPONENT if item_id == WRITTEN_BOOK_ID else WRITABLE_BOOK_COMPONENT
        content = get_path(item, "components", component_key)
        if kind(content) is not NodeKind.COMPOUND:
            return None
        pages_node = get_child(content, "pages")
        if kind(pages_node) is not NodeKind.LIST:
            return None
        pages: list[str] = []
        for entry in iter_list(pages_node):
            text = _filterable_text(entry)
            if text is None:
                return None
            pages.append(text)
        if not pages:
            return None

        count = as_int(get_child(item, "count"))
        if item_id == WRITABLE_BOOK_ID:
            return RawArtifactFields(
                kind=ArtifactKind.DOCUMENT,
                pages=tuple(pages),
                item_id=item_id,
                item_count=1 if count is None else count,
            )
        title_node = get_child(content, "title")
        return RawArtifactFields(
            kind=ArtifactKind.DOCUMENT,
            pages=tuple(pages),
            title=None if title_node is None else _filterable_text(title_node),
            author=as_string(get_child(content, "author")),
            precedence=as_int(get_child(content, "generation")),
            item_id=item_id,
            item_count=1 if count is None else count,
        )

    def sign_fields(self, block_entity: Any) -> RawArtifactFields | None:
        front = self._face(get_child(block_entity, "front_text"))
        if front is None:
            return None
        back = self._face(get_child(block_entity, "back_text")) or []
        return RawArtifactFields(
            kind=ArtifactKind.SIGN,
            pages=tuple(front),
            back_lines=tuple(back),
            item_id=node_id(block_entity),
        )

    def _face(self, face: Any) -> list[str] | None:
        messages = get_child(face, "messages")
        if kind(messages) is not NodeKind.LIST:
            return None
        lines: list[str] = []
        for message in iter_list(messages):
            text = _filterable_text(message)
            if text is None:
                return None
            lines.append(text)
        return lines

    def container_items(self, node: Any, container_kind: ContainerKind) -> list[tuple[int, Any]] | None:
        if container_kind is ContainerKind.STACK:
            entries = get_path(node, "components", BUNDLE_COMPONENT)
            if kind(entries) is not NodeKind.LIST:
                return None
            return [
                (index, entry) for index, entry in enumerate(iter_list(entries)) if kind(entry) is NodeKind.COMPOUND
            ]

        entries = get_path(node, "components", CONTAINER_COMPONENT)
        if kind(entries) is not NodeKind.LIST:
            return None
        slots: list[tuple[int, Any]] = []
        for index, entry in enumerate(iter_list(entries)):
            item = get_child(entry, "item")
            if kind(item) is not NodeKind.COMPOUND:
                continue
            slots.append((slot_of(entry, index), item))
        return slots


ItemLayout = LegacyLayout | ModernLayout

_LAYOUTS: dict[SchemaGeneration, ItemLayout] = {
    SchemaGeneration.LEGACY: LegacyLayout(),
    SchemaGeneration.MODERN: ModernLayout(),
}


def layout_for(generation: SchemaGeneration) -> ItemLayout:
    return _LAYOUTS[generation]


def _clamp_precedence(fields: RawArtifactFields, sink: WarningSink | None) -> RawArtifactFields:
    precedence = fields.precedence
    if precedence is None:
        return replace(fields, precedence=0)
    if 0 <= precedence <= MAX_PRECEDENCE:
        return fields
    if sink is not None:
        sink.emit(
            Severity.WARNING,
            f"Book generation {precedence} outside 0-{MAX_PRECEDENCE} for '{fields.title or 'untitled'}'; "
            "treating as original",
        )
    return replace(fields, precedence=0)


def resolve_artifact(
    node: Any,
    generation: SchemaGeneration,
    sink: WarningSink | None = None,
) -> RawArtifactFields | None:
    """Resolve a book item or sign block entity into logical fields.

    The declared generation's layout is tried first, then the other one, since
    upgraded worlds keep both shapes side by side until every chunk is resaved.
    """

    if kind(node) is not NodeKind.COMPOUND:
        return None

    for layout in (layout_for(generation), layout_for(generation.other)):
        fields = layout.book_fields(node)
        if fields is not None:
            return _clamp_precedence(fields, sink)

    for layout in (layout_for(generation), layout_for(generation.other)):
        fields = layout.sign_fields(node)
        if fields is not None:
            return replace(fields, precedence=0)

    return None


def resolve_container(node: Any) -> ContainerKind | None:
    """Classify a node by its identifier against the known container table."""

    identifier = node_id(node)
    if identifier is None:
        return None
    if identifier in _BOX_IDS:
        return ContainerKind.BOX
    if identifier in _STACK_IDS:
        return ContainerKind.STACK
    if identifier in _DISPLAY_FIELDS:
        return ContainerKind.DISPLAY
    if identifier in _CHEST_IDS or identifier.endswith(_CHEST_SUFFIXES):
        return ContainerKind.CHEST
    return None


def display_field(node: Any) -> str:
    """Name of the single-item field of a display-like holder."""

    identifier = node_id(node)
    if identifier in _DISPLAY_FIELDS:
        return _DISPLAY_FIELDS[identifier]
    return "Book" if get_child(node, "Book") is not None else "Item"


def container_items(
    node: Any,
    container_kind: ContainerKind,
    generation: SchemaGeneration,
) -> list[tuple[int, Any]]:
    """Enumerate ``(slot, item)`` pairs held by a container node.

    Item-form contents are read through the layouts (declared generation
    first); placed blocks and entities keep a plain ``Items`` list in both.
    """

    if container_kind is ContainerKind.DISPLAY:
        item = get_child(node, display_field(node))
        if kind(item) is not NodeKind.COMPOUND:
            return []
        return [(0, item)]

    for layout in (layout_for(generation), layout_for(generation.other)):
        slots = layout.container_items(node, container_kind)
        if slots is not None:
            return slots
    return _item_slots(compound_list(node, "Items"))
