"""Depth-bounded traversal of nested container trees."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
import logging
from typing import Any

from readbooks.extraction.models import Artifact, ArtifactFound, ContainerKind
from readbooks.extraction.schema import (
    SchemaGeneration,
    container_items,
    display_field,
    id_label,
    node_id,
    resolve_artifact,
    resolve_container,
    slot_of,
)
from readbooks.extraction.warnings import Severity, WarningSink
from readbooks.nbt.tree import NodeKind, as_int, as_number, compound_list, get_child, iter_list, kind

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 64

Origin = tuple[int, int, int]


@dataclass(slots=True)
class ContainerNode:
    """One pending container on the traversal stack."""

    kind: ContainerKind
    label: str
    slot_items: list[tuple[int, Any]]
    depth: int
    location: str
    origin: Origin | None = None
    cursor: int = field(default=0)


class ContainerWalker:
    """Enumerate every artifact held by a tree, descending into nested boxes and bundles.

    Traversal uses an explicit stack so pathological nesting cannot exhaust the
    interpreter's call stack; each frame carries its own depth. The walker keeps
    no state between calls and never writes to the tree, so walking the same
    root twice yields the same sequence.
    """

    def __init__(
        self,
        generation: SchemaGeneration,
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
        sink: WarningSink | None = None,
    ) -> None:
        if max_depth < 0:
            raise ValueError("max_depth must be >= 0")
        self.generation = generation
        self.max_depth = max_depth
        self._sink = sink

    def walk(
        self,
        root: Any,
        location: str,
        depth: int = 0,
        origin: Origin | None = None,
    ) -> Iterator[ArtifactFound]:
        """Yield artifacts held by ``root``, a container block entity, entity or item."""

        container_kind = self._holder_kind(root)
        if container_kind is None:
            found = self._artifact(root, location, origin)
            if found is not None:
                yield found
            return
        frame = ContainerNode(
            kind=container_kind,
            label=id_label(node_id(root)),
            slot_items=container_items(root, container_kind, self.generation),
            depth=depth,
            location=location,
            origin=origin,
        )
        yield from self._drain(frame)

    def walk_items(
        self,
        items: Sequence[Any],
        location: str,
        origin: Origin | None = None,
    ) -> Iterator[ArtifactFound]:
        """Walk a bare item list such as a player inventory."""

        slots = [(slot_of(item, index), item) for index, item in enumerate(items) if kind(item) is NodeKind.COMPOUND]
        frame = ContainerNode(
            kind=ContainerKind.CHEST,
            label="inventory",
            slot_items=slots,
            depth=0,
            location=location,
            origin=origin,
        )
        yield from self._drain(frame)

    def walk_chunk(self, chunk: Any, location: str) -> Iterator[ArtifactFound]:
        """Walk block entities and entities of a chunk or entity-chunk root."""

        level = get_child(chunk, "Level")
        body = level if kind(level) is NodeKind.COMPOUND else chunk
        chunk_x = as_int(get_child(body, "xPos"))
        chunk_z = as_int(get_child(body, "zPos"))
        if chunk_x is None or chunk_z is None:
            position = as_int_list(get_child(body, "Position"))
            if position is not None and len(position) == 2:
                chunk_x, chunk_z = position
        chunk_label = "Chunk" if chunk_x is None else f"Chunk [{chunk_x}, {chunk_z}]"

        block_entities = compound_list(body, "block_entities") or compound_list(body, "TileEntities")
        for block_entity in block_entities:
            origin = block_origin(block_entity)
            where = f"{chunk_label} Inside {node_id(block_entity) or 'unknown'} at {format_origin(origin)} {location}"
            yield from self.walk(block_entity, where, origin=origin)

        entities = compound_list(body, "entities") or compound_list(body, "Entities")
        for entity in entities:
            origin = entity_origin(entity)
            where = f"{chunk_label} In {node_id(entity) or 'unknown'} at {format_origin(origin)} {location}"
            yield from self.walk(entity, where, origin=origin)

    def walk_player(self, player: Any, location: str) -> Iterator[ArtifactFound]:
        """Walk a player's inventory and ender chest."""

        origin = entity_origin(player)
        yield from self.walk_items(compound_list(player, "Inventory"), f"Inventory of player {location}", origin)
        yield from self.walk_items(compound_list(player, "EnderItems"), f"Ender Chest of player {location}", origin)

    def _holder_kind(self, root: Any) -> ContainerKind | None:
        if kind(root) is not NodeKind.COMPOUND:
            return None
        container_kind = resolve_container(root)
        if container_kind is not None:
            return container_kind
        if kind(get_child(root, "Items")) is NodeKind.LIST:
            return ContainerKind.CHEST
        if get_child(root, display_field(root)) is not None:
            return ContainerKind.DISPLAY
        return None

    def _drain(self, root_frame: ContainerNode) -> Iterator[ArtifactFound]:
        stack = [root_frame]
        while stack:
            frame = stack[-1]
            if frame.cursor >= len(frame.slot_items):
                stack.pop()
                continue
            slot, item = frame.slot_items[frame.cursor]
            frame.cursor += 1

            nested_kind = resolve_container(item)
            if nested_kind is not None and nested_kind.nests:
                child = self._descend(frame, slot, item, nested_kind)
                if child is not None:
                    stack.append(child)
                continue

            found = self._artifact(item, frame.location, frame.origin)
            if found is not None:
                yield found

    def _descend(
        self,
        frame: ContainerNode,
        slot: int,
        item: Any,
        nested_kind: ContainerKind,
    ) -> ContainerNode | None:
        label = id_label(node_id(item))
        location = f"{frame.location} > {label} in slot {slot}"
        depth = frame.depth + 1
        if depth > self.max_depth:
            self._warn(f"Nesting deeper than {self.max_depth} levels skipped at {location}")
            return None
        return ContainerNode(
            kind=nested_kind,
            label=label,
            slot_items=container_items(item, nested_kind, self.generation),
            depth=depth,
            location=location,
            origin=frame.origin,
        )

    def _artifact(self, node: Any, location: str, origin: Origin | None) -> ArtifactFound | None:
        fields = resolve_artifact(node, self.generation, self._sink)
        if fields is None:
            return None
        logger.debug("Found %s at %s", fields.kind.value, location)
        artifact = Artifact.from_fields(fields, provenance=location, origin=origin)
        return ArtifactFound(artifact=artifact, location=location)

    def _warn(self, message: str) -> None:
        if self._sink is not None:
            self._sink.emit(Severity.WARNING, message)
        else:
            logger.warning(message)


def as_int_list(node: Any) -> list[int] | None:
    if kind(node) is not NodeKind.LIST:
        return None
    values: list[int] = []
    for child in iter_list(node):
        value = as_int(child)
        if value is None:
            return None
        values.append(value)
    return values


def block_origin(block_entity: Any) -> Origin | None:
    x = as_int(get_child(block_entity, "x"))
    y = as_int(get_child(block_entity, "y"))
    z = as_int(get_child(block_entity, "z"))
    if x is None or y is None or z is None:
        return None
    return (x, y, z)


def entity_origin(entity: Any) -> Origin | None:
    coordinates = [as_number(child) for child in iter_list(get_child(entity, "Pos"))]
    if len(coordinates) != 3 or any(value is None for value in coordinates):
        return block_origin(entity)
    return (int(coordinates[0]), int(coordinates[1]), int(coordinates[2]))


def format_origin(origin: Origin | None) -> str:
    if origin is None:
        return "(unknown)"
    return f"({origin[0]} {origin[1]} {origin[2]})"
