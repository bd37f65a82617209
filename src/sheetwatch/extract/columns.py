"""
Spreadsheet column letters (bijective base-26: A..Z, AA..AZ, ...).

Indices are 0-based here. openpyxl's get_column_letter stops at column 18278,
these helpers have no upper bound.
"""

from __future__ import annotations

import re
from typing import Mapping

_LETTERS_RE = re.compile(r"^[A-Za-z]+$")


def index_to_letter(index: int) -> str:
    if index < 0:
        raise ValueError(f"Column index must be non-negative, got {index}")
    n = index + 1
    letters: list[str] = []
    while n > 0:
        n, rem = divmod(n - 1, 26)
        letters.append(chr(ord("A") + rem))
    return "".join(reversed(letters))


def letter_to_index(letter: str) -> int:
    if not letter or not _LETTERS_RE.match(letter):
        raise ValueError(f"Invalid column letter: {letter!r}")
    n = 0
    for ch in letter.upper():
        n = n * 26 + (ord(ch) - ord("A") + 1)
    return n - 1


def ordered_columns(mapping: Mapping[str, str]) -> dict[str, str]:
    """Copy of a column map with keys in column order."""
    return {key: mapping[key] for key in sorted(mapping, key=letter_to_index)}
