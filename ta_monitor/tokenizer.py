"""
tokenizer.py — quote-aware CSV splitting for published sheet exports

Published spreadsheet exports put line breaks inside quoted cells (multi-line
objectives, remarks, addresses), so rows cannot be found with splitlines().

Public API:
    rows  = split_rows(text)        # raw text -> row strings
    cells = split_fields(rows[0])   # row string -> trimmed cells
    table = tokenize(text)          # both steps at once

Neither step validates column counts. Ragged rows come through as they are and
surface later as missing-column lookups.
"""

from __future__ import annotations

QUOTE = '"'
DELIMITER = ","
NEWLINE = "\n"


def split_rows(text: str) -> list[str]:
    """
    Split raw export text into row strings.

    A quote toggles the in-quotes state; a newline ends a row only outside
    quotes. Quote characters are kept so split_fields() can unescape them.
    A trailing row without a final newline is still returned.
    """
    rows: list[str] = []
    current: list[str] = []
    in_quotes = False
    for char in text:
        if char == QUOTE:
            in_quotes = not in_quotes
        if char == NEWLINE and not in_quotes:
            rows.append("".join(current))
            current = []
        else:
            current.append(char)
    if current:
        rows.append("".join(current))
    return rows


def split_fields(line: str) -> list[str]:
    """Split one row string into trimmed cells, honouring quotes and doubled quotes."""
    cells: list[str] = []
    current: list[str] = []
    in_quotes = False
    idx = 0
    length = len(line)
    while idx < length:
        char = line[idx]
        if char == QUOTE:
            if in_quotes and idx + 1 < length and line[idx + 1] == QUOTE:
                current.append(QUOTE)
                idx += 1
            else:
                in_quotes = not in_quotes
        elif char == DELIMITER and not in_quotes:
            cells.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        idx += 1
    cells.append("".join(current).strip())
    return cells


def tokenize(text: str) -> list[list[str]]:
    return [split_fields(row) for row in split_rows(text)]
