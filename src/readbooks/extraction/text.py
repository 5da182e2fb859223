"""Helpers for reading plain text out of styled-text blobs."""

from __future__ import annotations

import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

_FORMATTING_CODE_RE = re.compile("§.", re.DOTALL)
_EMPTY_COMPONENTS = {"", "null", "{}", '{"":""}', '""'}


def strip_formatting_codes(text: str) -> str:
    """Remove legacy section-sign colour and style codes."""

    return _FORMATTING_CODE_RE.sub("", text)


def plain_text(raw: str | None) -> str:
    """Return the visible text of a page or sign line.

    Plain strings come back unchanged; JSON text components are flattened by
    concatenating ``text`` and ``extra`` parts. Invalid JSON is treated as plain
    text.
    """

    if raw is None or raw in _EMPTY_COMPONENTS:
        return ""
    stripped = raw.strip()
    if not stripped.startswith(("{", "[", '"')):
        return raw
    try:
        component = json.loads(stripped)
    except json.JSONDecodeError:
        logger.debug("Text is not a JSON component, keeping as-is: %.40s", raw)
        return raw
    return _component_text(component)


def _component_text(component: Any) -> str:
    if component is None:
        return ""
    if isinstance(component, str):
        return component
    if isinstance(component, list):
        return "".join(_component_text(part) for part in component)
    if isinstance(component, dict):
        text = component.get("text", "")
        parts = [text if isinstance(text, str) else str(text)]
        extra = component.get("extra")
        if extra is not None:
            parts.append(_component_text(extra))
        return "".join(parts)
    return str(component)


def is_blank(lines: tuple[str, ...] | list[str]) -> bool:
    return all(not plain_text(line).strip() for line in lines)
