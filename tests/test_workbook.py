from datetime import date

import pytest
from openpyxl import Workbook as XlsxWorkbook

from sheetwatch.exceptions import ReadError
from sheetwatch.extract.workbook import format_cell, open_workbook

from conftest import write_workbook


def test_rows_are_padded_and_sheets_listed(tmp_path):
    path = write_workbook(
        tmp_path / "cxv_a.xlsx",
        {"Main": [["status", "name", "qty"], [1, "tank"], [0]], "Second": [["only"]]},
    )
    with open_workbook(path) as wb:
        assert wb.sheet_names() == ["Main", "Second"]
        rows = wb.rows("Main")
    assert rows == [["status", "name", "qty"], [1, "tank", None], [0, None, None]]


def test_cached_values_not_formulas(tmp_path):
    path = tmp_path / "cxv_formula.xlsx"
    book = XlsxWorkbook()
    ws = book.active
    ws.title = "Calc"
    ws.append([1, 2, "=A1+B1"])
    book.save(path)

    with open_workbook(path) as wb:
        row = wb.rows("Calc")[0]
    # No cached result was ever computed, so data_only yields None rather than the formula text
    assert row[2] is None


def test_unreadable_file_raises_read_error(tmp_path):
    path = tmp_path / "cxv_broken.xlsx"
    path.write_bytes(b"not a zip archive")
    with pytest.raises(ReadError):
        open_workbook(path)


def test_display_text_uses_number_formats(tmp_path):
    path = tmp_path / "cxv_fmt.xlsx"
    book = XlsxWorkbook()
    ws = book.active
    ws.title = "Fmt"
    ws.append([1, 0.256, 1234.5, date(2026, 3, 1), "text", 7.0])
    ws["B1"].number_format = "0.0%"
    ws["C1"].number_format = "#,##0.00"
    book.save(path)

    with open_workbook(path) as wb:
        shown = {col: wb.display_text("Fmt", col, 1) for col in "ABCDEF"}
    assert shown == {"A": "1", "B": "25.6%", "C": "1,234.50", "D": "01/03/2026", "E": "text", "F": "7"}


def test_format_cell_fallbacks():
    assert format_cell(None) == ""
    assert format_cell(3.5, "0") == "4"
    assert format_cell(3.5, None) == "3.5"
    assert format_cell(True) == "true"
