"""Per-version command syntax profiles."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class QuoteStyle(str, Enum):
    SINGLE = "'"
    DOUBLE = '"'


class TextForm(str, Enum):
    """Minimal structural wrapper for a plain string."""

    OBJECT = "object"  # {"text":"..."}
    ARRAY = "array"  # ["..."]


class SignFormat(str, Enum):
    LINES = "lines"  # Text1..Text4
    FACES = "faces"  # front_text/back_text


class ItemFormat(str, Enum):
    NBT = "nbt"
    COMPONENTS = "components"


@dataclass(frozen=True, slots=True)
class TargetProfile:
    version_label: str
    quote: QuoteStyle
    escape_order: tuple[str, ...]
    namespaced_components: bool
    text_form: TextForm
    sign_format: SignFormat
    item_format: ItemFormat
    pack_format: int
    function_dir: str
    description: str

    @property
    def component_prefix(self) -> str:
        return "minecraft:" if self.namespaced_components else ""


_SINGLE_QUOTE_ESCAPES = ("\\", "'")
_DOUBLE_QUOTE_ESCAPES = ("\\", '"')


class SerializationTarget(str, Enum):
    V1_13 = "1_13"
    V1_14 = "1_14"
    V1_20 = "1_20"
    V1_20_5 = "1_20_5"
    V1_21 = "1_21"

    @property
    def profile(self) -> TargetProfile:
        return _PROFILES[self]

    @classmethod
    def parse(cls, value: str) -> "SerializationTarget":
        normalized = value.strip().replace(".", "_")
        for member in cls:
            if member.value == normalized:
                return member
        allowed = ", ".join(member.value for member in cls)
        raise ValueError(f"Unknown target version '{value}' (expected one of: {allowed})")


_PROFILES = {
    SerializationTarget.V1_13: TargetProfile(
        version_label="1.13",
        quote=QuoteStyle.SINGLE,
        escape_order=_SINGLE_QUOTE_ESCAPES,
        namespaced_components=False,
        text_form=TextForm.OBJECT,
        sign_format=SignFormat.LINES,
        item_format=ItemFormat.NBT,
        pack_format=4,
        function_dir="functions",
        description="Minecraft 1.13-1.14.3 (uses pack_format 4, functions/ directory)",
    ),
    SerializationTarget.V1_14: TargetProfile(
        version_label="1.14",
        quote=QuoteStyle.SINGLE,
        escape_order=_SINGLE_QUOTE_ESCAPES,
        namespaced_components=False,
        text_form=TextForm.ARRAY,
        sign_format=SignFormat.LINES,
        item_format=ItemFormat.NBT,
        pack_format=4,
        function_dir="functions",
        description="Minecraft 1.14.4-1.19.4 (uses pack_format 4, functions/ directory)",
    ),
    SerializationTarget.V1_20: TargetProfile(
        version_label="1.20",
        quote=QuoteStyle.SINGLE,
        escape_order=_SINGLE_QUOTE_ESCAPES,
        namespaced_components=False,
        text_form=TextForm.ARRAY,
        sign_format=SignFormat.FACES,
        item_format=ItemFormat.NBT,
        pack_format=15,
        function_dir="functions",
        description="Minecraft 1.20-1.20.4 (uses pack_format 15, functions/ directory)",
    ),
    SerializationTarget.V1_20_5: TargetProfile(
        version_label="1.20.5",
        quote=QuoteStyle.DOUBLE,
        escape_order=_DOUBLE_QUOTE_ESCAPES,
        namespaced_components=True,
        text_form=TextForm.OBJECT,
        sign_format=SignFormat.FACES,
        item_format=ItemFormat.COMPONENTS,
        pack_format=41,
        function_dir="functions",
        description="Minecraft 1.20.5-1.20.6 (uses pack_format 41, functions/ directory)",
    ),
    SerializationTarget.V1_21: TargetProfile(
        version_label="1.21",
        quote=QuoteStyle.DOUBLE,
        escape_order=_DOUBLE_QUOTE_ESCAPES,
        namespaced_components=False,
        text_form=TextForm.OBJECT,
        sign_format=SignFormat.FACES,
        item_format=ItemFormat.COMPONENTS,
        pack_format=48,
        function_dir="function",
        description="Minecraft 1.21+ (uses pack_format 48, function/ directory)",
    ),
}


def parse_targets(values: str | list[str] | None) -> list[SerializationTarget]:
    """Parse a comma-separated string or list of version names, defaulting to every target."""

    if values is None:
        return list(SerializationTarget)
    raw_values = values.split(",") if isinstance(values, str) else values
    targets: list[SerializationTarget] = []
    for raw in raw_values:
        if not raw.strip():
            continue
        target = SerializationTarget.parse(raw)
        if target not in targets:
            targets.append(target)
    return targets or list(SerializationTarget)
