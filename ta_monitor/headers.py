from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Sequence

HEADER_SCAN_WINDOW = 15
RECORD_ANCHORS = ("OFFICE", "DISTRICT", "DIVISION/SCHOOL")

_STRIP_RE = re.compile(r"[\s_]")


def normalize_header(name: str) -> str:
    """Uppercase and drop whitespace/underscores: "Due Date", "DUE_DATE" and "duedate" all become "DUEDATE"."""
    return _STRIP_RE.sub("", (name or "").strip().upper())


def find_header_row(
    rows: Sequence[Sequence[str]],
    anchors: Sequence[str] = RECORD_ANCHORS,
    window: int = HEADER_SCAN_WINDOW,
) -> int | None:
    """
    Return the index of the first row within `window` rows whose uppercased
    cells contain every anchor, or None.

    Anchors are compared against trimmed, uppercased cells, not normalized
    ones, so "DIVISION/SCHOOL" must appear with its slash.
    """
    wanted = [anchor.upper() for anchor in anchors]
    for idx, row in enumerate(rows[:window]):
        cells = {(cell or "").strip().upper() for cell in row}
        if all(anchor in cells for anchor in wanted):
            return idx
    return None


@dataclass(frozen=True)
class HeaderIndex:
    """Normalized column name -> first column position in the header row."""

    positions: Mapping[str, int] = field(default_factory=dict)
    headers: tuple[str, ...] = ()

    @classmethod
    def from_row(cls, header_row: Sequence[str]) -> "HeaderIndex":
        positions: dict[str, int] = {}
        for idx, cell in enumerate(header_row):
            positions.setdefault(normalize_header(cell), idx)
        return cls(positions=MappingProxyType(positions), headers=tuple(header_row))

    def find_index(self, name: str) -> int | None:
        return self.positions.get(normalize_header(name))

    def cell(self, row: Sequence[str], name: str) -> str:
        idx = self.find_index(name)
        if idx is None or idx >= len(row):
            return ""
        return row[idx] or ""

    def value(self, row: Sequence[str], *names: str) -> str:
        # First non-empty among the spelling variants; absent and blank look the same.
        for name in names:
            text = self.cell(row, name)
            if text:
                return text
        return ""

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.find_index(name) is not None

    def __len__(self) -> int:
        return len(self.positions)
