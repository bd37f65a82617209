from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Optional, Sequence

SelectionReason = Literal["new", "recheck"]


@dataclass
class Selection:
    row_number: int  # 1-based
    row: list[Any]
    reason: SelectionReason

    @property
    def is_recheck(self) -> bool:
        return self.reason == "recheck"


def matches_condition(value: Any, match_value: str = "1") -> bool:
    """
    Column A test. Numeric and string spellings of the same value are equivalent
    (1, 1.0 and " 1 " all match "1"); booleans never match.
    """
    target = str(match_value).strip()
    if value is None or isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        try:
            return float(value) == float(target)
        except ValueError:
            return False
    if isinstance(value, str):
        text = value.strip()
        if text == target:
            return True
        try:
            return float(text) == float(target)
        except ValueError:
            return False
    return False


def find_candidates(rows: Sequence[Sequence[Any]], match_value: str = "1") -> list[int]:
    """1-based row numbers whose column A matches, ascending."""
    found = [
        idx
        for idx, row in enumerate(rows, start=1)
        if row and matches_condition(row[0], match_value)
    ]
    return sorted(found)


def select_row(
    rows: Sequence[Sequence[Any]],
    last_processed_row: int = 0,
    match_value: str = "1",
) -> Optional[Selection]:
    """
    Pick the one row to evaluate this scan: the first candidate after the cursor,
    otherwise the candidate sitting on the cursor (re-checked for in-place edits).
    """
    candidates = find_candidates(rows, match_value)
    for row_number in candidates:
        if row_number > last_processed_row:
            return Selection(row_number=row_number, row=list(rows[row_number - 1]), reason="new")
    if last_processed_row > 0 and last_processed_row in candidates:
        return Selection(
            row_number=last_processed_row,
            row=list(rows[last_processed_row - 1]),
            reason="recheck",
        )
    return None
