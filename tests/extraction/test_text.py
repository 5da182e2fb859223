from __future__ import annotations

from readbooks.extraction.text import is_blank, plain_text, strip_formatting_codes


def test_plain_text_flattens_json_components() -> None:
    assert plain_text('{"text":"Hello ","extra":[{"text":"world"},"!"]}') == "Hello world!"
    assert plain_text('["", {"text":"a"}, "b"]') == "ab"
    assert plain_text('"quoted"') == "quoted"


def test_plain_text_keeps_non_json_text() -> None:
    assert plain_text("just words") == "just words"
    assert plain_text("{broken json") == "{broken json"


def test_empty_component_forms_are_blank() -> None:
    for raw in ("", "null", "{}", '{"":""}', '""', None):
        assert plain_text(raw) == ""

    assert is_blank(['{"text":""}', '""', "", "   "])
    assert not is_blank(['""', '{"text":"x"}'])


def test_strip_formatting_codes() -> None:
    assert strip_formatting_codes("§lBold§r and §4red") == "Bold and red"
