"""Render stored records into per-target command lists."""

from __future__ import annotations

from dataclasses import dataclass, field

from readbooks.commands.layout import LayoutAllocator
from readbooks.commands.serializer import serialize_document, serialize_sign
from readbooks.commands.shulker import build_shulker_commands
from readbooks.commands.targets import SerializationTarget
from readbooks.extraction.models import ArtifactKind
from readbooks.storage.base import Bucket, RecordStorage, StoredRecord


@dataclass(slots=True)
class RenderedCommands:
    books: list[str] = field(default_factory=list)
    signs: list[str] = field(default_factory=list)
    shulker_boxes: list[str] = field(default_factory=list)


def load_records(storage: RecordStorage, bucket: Bucket, kind: ArtifactKind) -> list[StoredRecord]:
    records = [storage.load(ref) for ref in storage.list(bucket)]
    return [record for record in records if record.kind is kind]


def render_commands(
    storage: RecordStorage,
    target: SerializationTarget,
    *,
    include_duplicate_books: bool = False,
    link_sign_origins: bool = True,
) -> RenderedCommands:
    """Build every command for one target from what is in storage.

    Books come from the primary bucket (plus duplicates when asked). Signs come
    from both buckets, so each distinct text gets its own row and its copies
    stand next to it.
    """

    books = load_records(storage, Bucket.PRIMARY, ArtifactKind.DOCUMENT)
    if include_duplicate_books:
        books.extend(load_records(storage, Bucket.SECONDARY, ArtifactKind.DOCUMENT))
        books.sort(key=lambda record: record.sequence)

    signs = load_records(storage, Bucket.PRIMARY, ArtifactKind.SIGN)
    signs.extend(load_records(storage, Bucket.SECONDARY, ArtifactKind.SIGN))
    signs.sort(key=lambda record: record.sequence)

    allocator = LayoutAllocator()
    return RenderedCommands(
        books=[serialize_document(record, target) for record in books],
        signs=[
            serialize_sign(record, target, allocator.assign(record.fingerprint), link_origin=link_sign_origins)
            for record in signs
        ],
        shulker_boxes=build_shulker_commands(books, target),
    )
