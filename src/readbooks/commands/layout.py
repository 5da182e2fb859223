"""Deterministic placement offsets for sign commands."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Placement:
    offset_a: int
    offset_b: int


class LayoutAllocator:
    """Give each distinct fingerprint its own row and stack duplicates along it.

    The first occurrence of a fingerprint takes the next unused primary offset
    and secondary offset 0; every later occurrence reuses that primary offset
    with the next secondary offset.
    """

    def __init__(self, spacing: int = 1) -> None:
        if spacing < 1:
            raise ValueError("spacing must be >= 1")
        self._spacing = spacing
        self._rows: dict[int, int] = {}
        self._occurrences: dict[int, int] = {}

    def assign_layout(self, fingerprint: int, occurrence_index: int) -> Placement:
        if occurrence_index < 0:
            raise ValueError("occurrence_index must be >= 0")
        row = self._rows.get(fingerprint)
        if row is None:
            row = len(self._rows)
            self._rows[fingerprint] = row
        return Placement(offset_a=row * self._spacing, offset_b=occurrence_index * self._spacing)

    def assign(self, fingerprint: int) -> Placement:
        """Assign the next occurrence of ``fingerprint``."""

        occurrence = self._occurrences.get(fingerprint, 0)
        self._occurrences[fingerprint] = occurrence + 1
        return self.assign_layout(fingerprint, occurrence)

    @property
    def distinct(self) -> int:
        return len(self._rows)
