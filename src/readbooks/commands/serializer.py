"""Escaping-correct command text for stored records.

Page and sign-line text goes through two stages before it can sit inside a
command:

1. structural text: a blob that already starts with ``{`` or ``[``, or that is
   a complete JSON string literal, is a text component and is kept verbatim;
   anything else is JSON-encoded into the target's minimal wrapper
   (``{"text":"..."}`` or ``["..."]``);
2. outer quoting: the target's escape characters are backslash-escaped in
   order, backslash first, and the result is wrapped in the target's quote.

Escaping the quote before the backslash would double the backslash that
protects the quote and end the literal early, so the order in each profile
matters.
"""

from __future__ import annotations

from collections.abc import Sequence
import json
import re

from readbooks.commands.layout import Placement
from readbooks.commands.targets import ItemFormat, SerializationTarget, SignFormat, TextForm
from readbooks.extraction.models import ArtifactKind
from readbooks.extraction.schema import WRITABLE_BOOK_ID
from readbooks.extraction.text import plain_text
from readbooks.storage.base import StoredRecord

SIGN_LINE_COUNT = 4
DEFAULT_TITLE = "Untitled"
DEFAULT_AUTHOR = "Unknown"
SIGN_BLOCK = "oak_sign"

_STRUCTURAL_PREFIXES = ("{", "[")
_LINE_BREAK_RE = re.compile(r"\r\n|[\r\n\t]")
_CONTROL_RE = re.compile(r"[\x00-\x1f\x7f]")


def _is_json_string(text: str) -> bool:
    try:
        return isinstance(json.loads(text), str)
    except json.JSONDecodeError:
        return False


def is_structured(text: str) -> bool:
    if text.startswith(_STRUCTURAL_PREFIXES):
        return True
    return text.startswith('"') and _is_json_string(text)


def to_structural_text(text: str, form: TextForm) -> str:
    if is_structured(text):
        return text
    encoded = json.dumps(text, ensure_ascii=False)
    if form is TextForm.ARRAY:
        return f"[{encoded}]"
    return f'{{"text":{encoded}}}'


def escape_outer(text: str, target: SerializationTarget) -> str:
    escaped = text
    for character in target.profile.escape_order:
        escaped = escaped.replace(character, "\\" + character)
    return escaped


def quote_literal(text: str, target: SerializationTarget) -> str:
    quote = target.profile.quote.value
    return f"{quote}{escape_outer(text, target)}{quote}"


def serialize_page(text: str, target: SerializationTarget) -> str:
    return quote_literal(to_structural_text(text, target.profile.text_form), target)


def snbt_string(value: str) -> str:
    """Double-quoted SNBT string with no escapes other than ``\\\\`` and ``\\"``.

    Quoted SNBT strings before 1.21.5 reject ``\\n`` and ``\\uXXXX``, so line
    breaks and tabs become single spaces and other control characters are dropped.
    """

    flattened = _CONTROL_RE.sub("", _LINE_BREAK_RE.sub(" ", value))
    return '"' + flattened.replace("\\", "\\\\").replace('"', '\\"') + '"'


def book_body(record: StoredRecord, target: SerializationTarget) -> str:
    """The ``{title,author,generation,pages}`` compound shared by give and shulker commands."""

    pages = ",".join(serialize_page(page, target) for page in record.pages)
    title = snbt_string(record.title or DEFAULT_TITLE)
    author = snbt_string(record.author or DEFAULT_AUTHOR)
    return f"{{title:{title},author:{author},generation:{record.precedence},pages:[{pages}]}}"


def writable_body(record: StoredRecord) -> str:
    pages = ",".join(snbt_string(page) for page in record.pages)
    return f"{{pages:[{pages}]}}"


def serialize_document(record: StoredRecord, target: SerializationTarget) -> str:
    profile = target.profile
    if record.item_id == WRITABLE_BOOK_ID:
        if profile.item_format is ItemFormat.NBT:
            return f"give @p writable_book{writable_body(record)}"
        return f"give @p writable_book[{profile.component_prefix}writable_book_content={writable_body(record)}]"

    if profile.item_format is ItemFormat.NBT:
        return f"give @p written_book{book_body(record, target)}"
    return f"give @p written_book[{profile.component_prefix}written_book_content={book_body(record, target)}]"


def pad_lines(lines: Sequence[str]) -> list[str]:
    """Exactly :data:`SIGN_LINE_COUNT` lines, blank-filled."""

    padded = list(lines[:SIGN_LINE_COUNT])
    padded.extend("" for _ in range(SIGN_LINE_COUNT - len(padded)))
    return padded


def _teleport_line(text: str, origin: tuple[int, int, int], form: TextForm) -> str:
    x, y, z = origin
    component = json.dumps(
        {"text": text, "clickEvent": {"action": "run_command", "value": f"/tp @s {x} {y} {z}"}},
        ensure_ascii=False,
        separators=(",", ":"),
    )
    return f"[{component}]" if form is TextForm.ARRAY else component


def sign_face(
    lines: Sequence[str],
    target: SerializationTarget,
    origin: tuple[int, int, int] | None = None,
) -> list[str]:
    """Quoted line literals for one sign face.

    With ``origin`` set, a plain first line becomes clickable and teleports the
    reader to where the sign was found.
    """

    form = target.profile.text_form
    literals: list[str] = []
    for index, line in enumerate(pad_lines(lines)):
        visible = plain_text(line) if index == 0 and not line.startswith(_STRUCTURAL_PREFIXES) else ""
        if origin is not None and visible:
            structural = _teleport_line(visible, origin, form)
        else:
            structural = to_structural_text(line, form)
        literals.append(quote_literal(structural, target))
    return literals


def serialize_sign(
    record: StoredRecord,
    target: SerializationTarget,
    placement: Placement | None = None,
    *,
    link_origin: bool = False,
) -> str:
    where = placement or Placement(offset_a=0, offset_b=0)
    origin = record.origin if link_origin else None
    front = sign_face(record.pages, target, origin)
    position = f"~{where.offset_a} ~ ~{where.offset_b}"

    if target.profile.sign_format is SignFormat.LINES:
        tags = ",".join(f"Text{index + 1}:{literal}" for index, literal in enumerate(front))
        return f"setblock {position} {SIGN_BLOCK}{{{tags}}} replace"

    back = sign_face(record.back_lines, target)
    return (
        f"setblock {position} {SIGN_BLOCK}[rotation=0,waterlogged=false]"
        f"{{front_text:{{messages:[{','.join(front)}],has_glowing_text:0b}},"
        f"back_text:{{messages:[{','.join(back)}],has_glowing_text:0b}},"
        f"is_waxed:0b}} replace"
    )


def serialize(
    record: StoredRecord,
    target: SerializationTarget,
    placement: Placement | None = None,
) -> str:
    """Render one record as a single command line; no I/O."""

    if record.kind is ArtifactKind.SIGN:
        return serialize_sign(record, target, placement)
    return serialize_document(record, target)
