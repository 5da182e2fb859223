from __future__ import annotations

import json

import pytest

from readbooks.commands.layout import Placement
from readbooks.commands.serializer import (
    SIGN_LINE_COUNT,
    is_structured,
    serialize,
    serialize_page,
    serialize_sign,
    sign_face,
    to_structural_text,
)
from readbooks.commands.targets import SerializationTarget, TextForm
from readbooks.extraction.models import ArtifactKind
from readbooks.storage.base import StoredRecord

ROUND_TRIP_TEXTS = [
    'He said "hi"\n',
    "C:\\Users\\steve\\books",
    "it's a trap",
    "mixed \\\" and \\' and \\\\n",
    "",
    "ünïcödé §4red\ttab\r\n",
]


def _book(pages: tuple[str, ...], *, title: str | None = "T", author: str | None = "A", item_id: str | None = None) -> StoredRecord:
    return StoredRecord(
        kind=ArtifactKind.DOCUMENT,
        fingerprint=1,
        pages=pages,
        provenance="here",
        sequence=0,
        title=title,
        author=author,
        item_id=item_id or "minecraft:written_book",
    )


def _sign(lines: tuple[str, ...], back: tuple[str, ...] = (), origin: tuple[int, int, int] | None = None) -> StoredRecord:
    return StoredRecord(
        kind=ArtifactKind.SIGN,
        fingerprint=2,
        pages=lines,
        provenance="here",
        sequence=0,
        back_lines=back,
        origin=origin,
    )


def _unquote(literal: str, target: SerializationTarget) -> str:
    """Inverse of the outer-quoting stage."""

    quote = target.profile.quote.value
    assert literal[0] == quote and literal[-1] == quote
    body = literal[1:-1]
    escapable = set(target.profile.escape_order)
    result: list[str] = []
    index = 0
    while index < len(body):
        character = body[index]
        if character == "\\":
            assert body[index + 1] in escapable
            result.append(body[index + 1])
            index += 2
            continue
        assert character != quote
        result.append(character)
        index += 1
    return "".join(result)


def _unwrap(structural: str, form: TextForm) -> str:
    """Inverse of the structural-text stage for wrapped plain strings."""

    decoded = json.loads(structural)
    if form is TextForm.ARRAY:
        return decoded[0]
    return decoded["text"]


@pytest.mark.parametrize("target", list(SerializationTarget))
@pytest.mark.parametrize("text", ROUND_TRIP_TEXTS)
def test_page_escaping_round_trips(target: SerializationTarget, text: str) -> None:
    literal = serialize_page(text, target)

    assert _unwrap(_unquote(literal, target), target.profile.text_form) == text


def test_escape_order_backslash_before_quote() -> None:
    target = SerializationTarget.V1_20_5
    structural = to_structural_text('He said "hi"\n', TextForm.OBJECT)
    wrong_order = '"' + structural.replace('"', '\\"').replace("\\", "\\\\") + '"'

    correct = serialize_page('He said "hi"\n', target)

    assert correct == '"{\\"text\\":\\"He said \\\\\\"hi\\\\\\"\\\\n\\"}"'
    assert correct != wrong_order
    assert _unwrap(_unquote(correct, target), TextForm.OBJECT) == 'He said "hi"\n'


def test_structured_pages_are_kept_verbatim() -> None:
    page = '{"text":"styled","bold":true}'

    assert is_structured(page)
    assert is_structured('["a"]')
    assert is_structured('"quoted"')
    assert not is_structured('"quoted" and more')
    assert serialize_page(page, SerializationTarget.V1_13) == "'" + page + "'"
    assert serialize_page(page, SerializationTarget.V1_21) == '"{\\"text\\":\\"styled\\",\\"bold\\":true}"'


def test_single_quoted_targets_escape_apostrophes() -> None:
    assert serialize_page("it's", SerializationTarget.V1_13) == "'{\"text\":\"it\\'s\"}'"
    assert serialize_page("it's", SerializationTarget.V1_14) == "'[\"it\\'s\"]'"
    assert serialize_page("it's", SerializationTarget.V1_21) == '"{\\"text\\":\\"it\'s\\"}"'


def test_book_commands_per_target() -> None:
    record = _book(("Hello",))

    assert serialize(record, SerializationTarget.V1_13) == (
        "give @p written_book{title:\"T\",author:\"A\",generation:0,pages:['{\"text\":\"Hello\"}']}"
    )
    assert serialize(record, SerializationTarget.V1_14) == (
        "give @p written_book{title:\"T\",author:\"A\",generation:0,pages:['[\"Hello\"]']}"
    )
    assert serialize(record, SerializationTarget.V1_20_5) == (
        'give @p written_book[minecraft:written_book_content={title:"T",author:"A",generation:0,'
        'pages:["{\\"text\\":\\"Hello\\"}"]}]'
    )
    assert serialize(record, SerializationTarget.V1_21) == (
        'give @p written_book[written_book_content={title:"T",author:"A",generation:0,'
        'pages:["{\\"text\\":\\"Hello\\"}"]}]'
    )


def test_book_metadata_defaults_and_escaping() -> None:
    anonymous = serialize(_book(("x",), title=None, author=None), SerializationTarget.V1_13)
    quoted = serialize(_book(("x",), title='Say "x"\nnow', author="back\\slash"), SerializationTarget.V1_13)

    assert 'title:"Untitled",author:"Unknown"' in anonymous
    assert 'title:"Say \\"x\\" now",author:"back\\\\slash"' in quoted


def test_writable_books_use_writable_item() -> None:
    record = _book(("draft",), title=None, author=None, item_id="minecraft:writable_book")

    assert serialize(record, SerializationTarget.V1_13) == 'give @p writable_book{pages:["draft"]}'
    assert serialize(record, SerializationTarget.V1_21) == 'give @p writable_book[writable_book_content={pages:["draft"]}]'


@pytest.mark.parametrize("target", list(SerializationTarget))
@pytest.mark.parametrize("lines", [(), ("only",), ("a", "b", "c", "d", "e")])
def test_sign_faces_always_have_four_slots(target: SerializationTarget, lines: tuple[str, ...]) -> None:
    command = serialize(_sign(lines), target)
    face = sign_face(lines, target)

    expected_last = lines[SIGN_LINE_COUNT - 1] if len(lines) >= SIGN_LINE_COUNT else ""
    assert len(face) == SIGN_LINE_COUNT
    assert _unwrap(_unquote(face[-1], target), target.profile.text_form) == expected_last
    if target in (SerializationTarget.V1_13, SerializationTarget.V1_14):
        assert all(f"Text{number}:" in command for number in range(1, SIGN_LINE_COUNT + 1))
        assert "Text5:" not in command
    else:
        assert f"front_text:{{messages:[{','.join(face)}]" in command
        assert f"back_text:{{messages:[{','.join(sign_face((), target))}]" in command


def test_sign_command_layout_for_legacy_and_modern_targets() -> None:
    record = _sign(("Hi",), back=("Back",))

    legacy = serialize_sign(record, SerializationTarget.V1_13, Placement(offset_a=2, offset_b=3))
    modern = serialize_sign(record, SerializationTarget.V1_20, Placement(offset_a=0, offset_b=1))

    assert legacy == (
        "setblock ~2 ~ ~3 oak_sign{Text1:'{\"text\":\"Hi\"}',Text2:'{\"text\":\"\"}',"
        "Text3:'{\"text\":\"\"}',Text4:'{\"text\":\"\"}'} replace"
    )
    assert modern.startswith("setblock ~0 ~ ~1 oak_sign[rotation=0,waterlogged=false]{front_text:{messages:['[\"Hi\"]',")
    assert "back_text:{messages:['[\"Back\"]','[\"\"]','[\"\"]','[\"\"]'],has_glowing_text:0b}" in modern
    assert modern.endswith("is_waxed:0b} replace")


def test_sign_first_line_can_link_to_origin() -> None:
    record = _sign(("Hi", "there"), origin=(10, 64, -5))

    linked = serialize_sign(record, SerializationTarget.V1_13, link_origin=True)
    plain = serialize_sign(record, SerializationTarget.V1_13)

    assert '"clickEvent":{"action":"run_command","value":"/tp @s 10 64 -5"}' in linked
    assert "clickEvent" not in plain


def test_json_string_lines_are_not_wrapped_twice() -> None:
    assert serialize_page('"Hi"', SerializationTarget.V1_13) == "'\"Hi\"'"
    assert sign_face(('"Hi"',), SerializationTarget.V1_20_5)[0] == '"\\"Hi\\""'

    linked = serialize_sign(_sign(('"Hi"', '""'), origin=(1, 2, 3)), SerializationTarget.V1_13, link_origin=True)
    blank = serialize_sign(_sign(('""',), origin=(1, 2, 3)), SerializationTarget.V1_13, link_origin=True)

    assert '{"text":"Hi","clickEvent":{"action":"run_command","value":"/tp @s 1 2 3"}}' in linked
    assert "clickEvent" not in blank


def test_writable_pages_use_only_quote_and_backslash_escapes() -> None:
    record = _book(("line1\nline2", 'say "hi" C:\\dir\ttab\x07', "a\r\nb"), item_id="minecraft:writable_book")

    legacy = serialize(record, SerializationTarget.V1_13)
    latest = serialize(record, SerializationTarget.V1_21)

    assert legacy == 'give @p writable_book{pages:["line1 line2","say \\"hi\\" C:\\\\dir tab","a b"]}'
    assert latest == (
        'give @p writable_book[writable_book_content={pages:["line1 line2","say \\"hi\\" C:\\\\dir tab","a b"]}]'
    )
    assert "\\n" not in legacy
    assert "\\u" not in legacy
