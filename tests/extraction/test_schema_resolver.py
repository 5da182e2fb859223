from __future__ import annotations

from readbooks.extraction.models import ArtifactKind, ContainerKind
from readbooks.extraction.schema import (
    SchemaGeneration,
    container_items,
    resolve_artifact,
    resolve_container,
)
from readbooks.extraction.warnings import CollectingWarningSink, Severity


def _legacy_book(pages: list[str], *, title: str = "Diary", author: str = "Steve", generation: int | None = None) -> dict:
    tag: dict = {"title": title, "author": author, "pages": pages}
    if generation is not None:
        tag["generation"] = generation
    return {"id": "minecraft:written_book", "Count": 1, "tag": tag}


def _modern_book(pages: list[str], *, title: str = "Diary", author: str = "Steve", generation: int | None = None) -> dict:
    content: dict = {
        "title": {"raw": title},
        "author": author,
        "pages": [{"raw": page} for page in pages],
    }
    if generation is not None:
        content["generation"] = generation
    return {"id": "minecraft:written_book", "count": 1, "components": {"minecraft:written_book_content": content}}


def test_legacy_and_modern_layouts_resolve_to_identical_fields() -> None:
    legacy = resolve_artifact(_legacy_book(["one", "two"], generation=2), SchemaGeneration.LEGACY)
    modern = resolve_artifact(_modern_book(["one", "two"], generation=2), SchemaGeneration.MODERN)

    assert legacy is not None
    assert legacy == modern
    assert legacy.kind is ArtifactKind.DOCUMENT
    assert legacy.pages == ("one", "two")
    assert legacy.title == "Diary"
    assert legacy.author == "Steve"
    assert legacy.precedence == 2
    assert legacy.item_id == "minecraft:written_book"


def test_declared_generation_falls_back_to_other_layout() -> None:
    fields = resolve_artifact(_legacy_book(["page"]), SchemaGeneration.MODERN)

    assert fields is not None
    assert fields.pages == ("page",)


def test_missing_precedence_defaults_to_canonical() -> None:
    fields = resolve_artifact(_modern_book(["page"]), SchemaGeneration.MODERN)

    assert fields is not None
    assert fields.precedence == 0


def test_out_of_range_precedence_is_clamped_with_warning() -> None:
    sink = CollectingWarningSink()

    fields = resolve_artifact(_legacy_book(["page"], generation=7), SchemaGeneration.LEGACY, sink)

    assert fields is not None
    assert fields.precedence == 0
    assert sink.count(Severity.WARNING) == 1
    assert "7" in sink.warnings[0].message


def test_malformed_nodes_are_not_artifacts() -> None:
    assert resolve_artifact("not a compound", SchemaGeneration.LEGACY) is None
    assert resolve_artifact({"id": "minecraft:stone", "Count": 1}, SchemaGeneration.LEGACY) is None
    assert resolve_artifact({"id": "minecraft:written_book", "tag": "oops"}, SchemaGeneration.LEGACY) is None
    assert resolve_artifact({"id": "minecraft:written_book", "tag": {"pages": [1, 2]}}, SchemaGeneration.LEGACY) is None
    assert resolve_artifact(_legacy_book([]), SchemaGeneration.LEGACY) is None
    broken_modern = {"id": "minecraft:written_book", "components": {"minecraft:written_book_content": {"pages": 5}}}
    assert resolve_artifact(broken_modern, SchemaGeneration.MODERN) is None


def test_writable_books_have_pages_but_no_metadata() -> None:
    legacy = {"id": "writable_book", "Count": 1, "tag": {"pages": ["draft"]}}
    modern = {
        "id": "minecraft:writable_book",
        "count": 1,
        "components": {"minecraft:writable_book_content": {"pages": [{"raw": "draft"}]}},
    }

    for node, generation in ((legacy, SchemaGeneration.LEGACY), (modern, SchemaGeneration.MODERN)):
        fields = resolve_artifact(node, generation)
        assert fields is not None
        assert fields.item_id == "minecraft:writable_book"
        assert fields.pages == ("draft",)
        assert fields.title is None
        assert fields.precedence == 0


def test_modern_structured_pages_are_serialized_as_json() -> None:
    book = _modern_book(["plain"])
    book["components"]["minecraft:written_book_content"]["pages"].append({"raw": {"text": "styled", "bold": True}})

    fields = resolve_artifact(book, SchemaGeneration.MODERN)

    assert fields is not None
    assert fields.pages == ("plain", '{"text":"styled","bold":true}')


def test_signs_resolve_in_both_layouts() -> None:
    legacy_sign = {"id": "minecraft:sign", "Text1": '{"text":"Hello"}', "Text2": '{"text":"World"}'}
    modern_sign = {
        "id": "minecraft:oak_sign",
        "front_text": {"messages": ['"Hello"', '"World"', '""', '""']},
        "back_text": {"messages": ['"Back"', '""', '""', '""']},
    }

    legacy = resolve_artifact(legacy_sign, SchemaGeneration.LEGACY)
    modern = resolve_artifact(modern_sign, SchemaGeneration.MODERN)

    assert legacy is not None and legacy.kind is ArtifactKind.SIGN
    assert legacy.pages == ('{"text":"Hello"}', '{"text":"World"}', "", "")
    assert modern is not None and modern.kind is ArtifactKind.SIGN
    assert modern.pages == ('"Hello"', '"World"', '""', '""')
    assert modern.back_lines == ('"Back"', '""', '""', '""')
    assert modern.precedence == 0


def test_resolve_container_uses_closed_identifier_table() -> None:
    assert resolve_container({"id": "minecraft:chest"}) is ContainerKind.CHEST
    assert resolve_container({"id": "barrel"}) is ContainerKind.CHEST
    assert resolve_container({"id": "minecraft:spruce_chest_boat"}) is ContainerKind.CHEST
    assert resolve_container({"id": "minecraft:shulker_box"}) is ContainerKind.BOX
    assert resolve_container({"id": "minecraft:light_blue_shulker_box"}) is ContainerKind.BOX
    assert resolve_container({"id": "minecraft:bundle"}) is ContainerKind.STACK
    assert resolve_container({"id": "minecraft:red_bundle"}) is ContainerKind.STACK
    assert resolve_container({"id": "minecraft:lectern"}) is ContainerKind.DISPLAY
    assert resolve_container({"id": "minecraft:glow_item_frame"}) is ContainerKind.DISPLAY
    assert resolve_container({"id": "minecraft:written_book"}) is None
    assert resolve_container({"Items": []}) is None
    assert resolve_container([]) is None


def test_only_box_and_stack_kinds_nest() -> None:
    assert ContainerKind.BOX.nests
    assert ContainerKind.STACK.nests
    assert not ContainerKind.CHEST.nests
    assert not ContainerKind.DISPLAY.nests


def test_container_items_reads_each_item_layout() -> None:
    book = _legacy_book(["x"])
    legacy_box = {"id": "minecraft:shulker_box", "Count": 1, "tag": {"BlockEntityTag": {"Items": [dict(book, Slot=4)]}}}
    modern_box = {
        "id": "minecraft:shulker_box",
        "count": 1,
        "components": {"minecraft:container": [{"slot": 9, "item": book}]},
    }
    legacy_bundle = {"id": "minecraft:bundle", "Count": 1, "tag": {"Items": [book, book]}}
    modern_bundle = {"id": "minecraft:bundle", "count": 1, "components": {"minecraft:bundle_contents": [book]}}
    placed_chest = {"id": "minecraft:chest", "Items": [dict(book, Slot=2)]}
    lectern = {"id": "minecraft:lectern", "Book": book}

    assert [slot for slot, _ in container_items(legacy_box, ContainerKind.BOX, SchemaGeneration.LEGACY)] == [4]
    assert [slot for slot, _ in container_items(modern_box, ContainerKind.BOX, SchemaGeneration.LEGACY)] == [9]
    assert [slot for slot, _ in container_items(legacy_bundle, ContainerKind.STACK, SchemaGeneration.MODERN)] == [0, 1]
    assert [slot for slot, _ in container_items(modern_bundle, ContainerKind.STACK, SchemaGeneration.MODERN)] == [0]
    assert [slot for slot, _ in container_items(placed_chest, ContainerKind.CHEST, SchemaGeneration.MODERN)] == [2]
    assert container_items(lectern, ContainerKind.DISPLAY, SchemaGeneration.MODERN) == [(0, book)]
    assert container_items({"id": "minecraft:lectern"}, ContainerKind.DISPLAY, SchemaGeneration.MODERN) == []
