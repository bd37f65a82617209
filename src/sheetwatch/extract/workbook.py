from __future__ import annotations

import logging
import re
from datetime import date, datetime, time
from pathlib import Path
from typing import Any, Optional

from openpyxl import load_workbook
from openpyxl.styles.numbers import is_date_format
from openpyxl.workbook.workbook import Workbook as OpenpyxlWorkbook

from sheetwatch.exceptions import ReadError
from sheetwatch.extract.changes import normalize_text
from sheetwatch.extract.columns import letter_to_index

logger = logging.getLogger(__name__)

CellValue = Any  # None | str | int | float | datetime | date | time | bool

_DECIMALS_RE = re.compile(r"\.(0+)")


class Workbook:
    """
    Read-side view over an openpyxl workbook.
    Values come from the cached results (data_only), never formulas.
    """

    def __init__(self, path: Path, book: OpenpyxlWorkbook):
        self.path = Path(path)
        self._book = book

    def sheet_names(self) -> list[str]:
        return list(self._book.sheetnames)

    def rows(self, sheet_name: str) -> list[list[CellValue]]:
        """Rectangular grid: every row is padded with None to the sheet's widest row."""
        ws = self._book[sheet_name]
        grid = [list(row) for row in ws.iter_rows(values_only=True)]
        width = max((len(r) for r in grid), default=0)
        for row in grid:
            if len(row) < width:
                row.extend([None] * (width - len(row)))
        return grid

    def display_text(self, sheet_name: str, column_letter: str, row_number: int) -> str:
        ws = self._book[sheet_name]
        cell = ws.cell(row=row_number, column=letter_to_index(column_letter) + 1)
        return format_cell(cell.value, cell.number_format)

    def close(self) -> None:
        self._book.close()

    def __enter__(self) -> "Workbook":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def open_workbook(path: Path) -> Workbook:
    path = Path(path)
    try:
        book = load_workbook(path, data_only=True)
    except Exception as e:
        raise ReadError(f"Could not open workbook {path}: {e}") from e
    return Workbook(path, book)


def format_cell(value: CellValue, number_format: Optional[str] = "General") -> str:
    """
    Approximates what a spreadsheet UI shows for a cell. Covers dates, percents,
    fixed decimals and thousands separators; anything else falls back to plain text.
    """
    if value is None:
        return ""
    fmt = number_format or "General"

    if isinstance(value, datetime):
        if value.time() == time(0, 0) and "h" not in fmt.lower():
            return value.strftime("%d/%m/%Y")
        return value.strftime("%d/%m/%Y %H:%M")
    if isinstance(value, date):
        return value.strftime("%d/%m/%Y")
    if isinstance(value, time):
        return value.strftime("%H:%M")

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if fmt == "General" or is_date_format(fmt):
            return normalize_text(value)
        section = fmt.split(";")[0]
        decimals = _decimals(section)
        if "%" in section:
            return f"{value * 100:.{decimals}f}%"
        if "," in section:
            return f"{value:,.{decimals}f}"
        if "0" in section:
            return f"{value:.{decimals}f}"
        return normalize_text(value)

    return normalize_text(value)


def _decimals(section: str) -> int:
    match = _DECIMALS_RE.search(section)
    return len(match.group(1)) if match else 0
