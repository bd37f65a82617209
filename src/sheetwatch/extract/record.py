from __future__ import annotations

from typing import Any, Sequence

from sheetwatch.domain.models import RecordMetadata
from sheetwatch.extract.changes import normalize_text
from sheetwatch.extract.columns import index_to_letter, letter_to_index


def is_meaningful(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    return True


def last_meaningful_index(row: Sequence[Any]) -> int:
    for idx in range(len(row) - 1, -1, -1):
        if is_meaningful(row[idx]):
            return idx
    return -1


def build_record_data(row: Sequence[Any]) -> tuple[dict[str, str], RecordMetadata]:
    """
    Sparse column map for a raw row: columns A through the last meaningful cell,
    interior gaps kept as empty text, trailing emptiness dropped.
    """
    last = last_meaningful_index(row)
    data = {index_to_letter(idx): normalize_text(row[idx]) for idx in range(last + 1)}
    metadata = RecordMetadata(
        column_count=last + 1,
        first_column="A",
        last_column=index_to_letter(last) if last >= 0 else "A",
        has_data=last >= 0,
    )
    return data, metadata


def header_field_names(rows: Sequence[Sequence[Any]]) -> list[str]:
    """Non-empty header texts from the first row."""
    if not rows:
        return []
    names = [normalize_text(cell).strip() for cell in rows[0]]
    return [name for name in names if name]


def column_names(header_row: Sequence[Any], columns: Sequence[str]) -> dict[str, str]:
    """Header text for each of the given column letters (blank headers omitted)."""
    names: dict[str, str] = {}
    for letter in columns:
        idx = letter_to_index(letter)
        if idx < len(header_row):
            text = normalize_text(header_row[idx]).strip()
            if text:
                names[letter] = text
    return names
