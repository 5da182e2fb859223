"""Shulker box give commands grouping books by author."""

from __future__ import annotations

from collections.abc import Iterable
import json
import logging
import zlib

from readbooks.commands.serializer import DEFAULT_AUTHOR, book_body, quote_literal
from readbooks.commands.targets import ItemFormat, SerializationTarget, TextForm
from readbooks.extraction.schema import DYE_COLORS, WRITABLE_BOOK_ID
from readbooks.storage.base import StoredRecord

logger = logging.getLogger(__name__)

SHULKER_COLORS = DYE_COLORS
BOOKS_PER_BOX = 27


def color_for_author(author: str | None) -> str:
    """Stable colour per author name, independent of interpreter hash seeding."""

    name = (author or "").strip() or DEFAULT_AUTHOR
    return SHULKER_COLORS[zlib.crc32(name.encode("utf-8")) % len(SHULKER_COLORS)]


def group_by_author(records: Iterable[StoredRecord]) -> dict[str, list[StoredRecord]]:
    """Written books keyed by author, authors sorted, books kept in input order."""

    groups: dict[str, list[StoredRecord]] = {}
    for record in records:
        if record.item_id == WRITABLE_BOOK_ID:
            continue
        author = (record.author or "").strip() or DEFAULT_AUTHOR
        groups.setdefault(author, []).append(record)
    return {author: groups[author] for author in sorted(groups)}


def display_name(author: str, box_index: int) -> str:
    suffix = f" ({box_index + 1})" if box_index > 0 else ""
    return f"Author: {author}{suffix}"


def _name_literal(name: str, target: SerializationTarget) -> str:
    component = json.dumps({"text": name, "italic": False}, ensure_ascii=False, separators=(",", ":"))
    if target.profile.text_form is TextForm.ARRAY:
        component = f"[{component}]"
    return quote_literal(component, target)


def shulker_command(author: str, books: list[StoredRecord], box_index: int, target: SerializationTarget) -> str:
    """One give command for up to :data:`BOOKS_PER_BOX` books by ``author``."""

    if not books or len(books) > BOOKS_PER_BOX:
        raise ValueError(f"A shulker box holds 1-{BOOKS_PER_BOX} books, got {len(books)}")
    profile = target.profile
    color = color_for_author(author)
    name = _name_literal(display_name(author, box_index), target)

    if profile.item_format is ItemFormat.NBT:
        items = ",".join(
            f'{{Slot:{slot}b,id:"minecraft:written_book",Count:1b,tag:{book_body(book, target)}}}'
            for slot, book in enumerate(books)
        )
        return f"give @a {color}_shulker_box{{BlockEntityTag:{{Items:[{items}]}},display:{{Name:{name}}}}}"

    prefix = profile.component_prefix
    items = ",".join(
        f'{{slot:{slot},item:{{id:"minecraft:written_book",count:1,'
        f'components:{{"{prefix}written_book_content":{book_body(book, target)}}}}}}}'
        for slot, book in enumerate(books)
    )
    return f"give @a {color}_shulker_box[{prefix}container=[{items}],{prefix}item_name={name}]"


def build_shulker_commands(records: Iterable[StoredRecord], target: SerializationTarget) -> list[str]:
    """Give commands for every written book, one or more boxes per author."""

    commands: list[str] = []
    for author, books in group_by_author(records).items():
        for box_index, start in enumerate(range(0, len(books), BOOKS_PER_BOX)):
            commands.append(shulker_command(author, books[start : start + BOOKS_PER_BOX], box_index, target))
        logger.debug("Packed %s books by %s into %s boxes", len(books), author, -(-len(books) // BOOKS_PER_BOX))
    return commands
