from __future__ import annotations

import logging
import re
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Optional, Sequence
from zoneinfo import ZoneInfo

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from sheetwatch.domain.models import ExtractedRecord
from sheetwatch.extract.columns import letter_to_index

logger = logging.getLogger(__name__)

_COLUMN_LETTER_RE = re.compile(r"^[A-Z]+$")


class ScanReportWriter:
    """
    Appends newly inserted records to a per-day Excel report in the output directory.
    Rows already in the file are kept; the header becomes the union of old and new
    columns and every row is padded to that width.
    """

    BASE_COLUMNS = ["scan_number", "timestamp", "folder", "filename", "sheet_name", "row_number"]
    SHEET_TITLE = "scan-results"

    def __init__(self, output_dir: Path, prefix: str = "scan-results", timezone: str = "UTC"):
        self.output_dir = Path(output_dir)
        self.prefix = prefix
        self.tz = ZoneInfo(timezone)

    def path_for(self, when: Optional[datetime] = None) -> Path:
        when = when or datetime.now(UTC)
        return self.output_dir / f"{self.prefix}-{when.astimezone(self.tz):%Y-%m-%d}.xlsx"

    def append(
        self,
        records: Sequence[ExtractedRecord],
        scan_number: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Optional[Path]:
        if not records:
            return None
        path = self.path_for(now)
        existing_header, existing_rows = self._read_existing(path)

        new_rows = [self._row(record, scan_number) for record in records]
        new_columns = list(self.BASE_COLUMNS)
        for row in new_rows:
            new_columns.extend(c for c in row if c not in new_columns)

        header = merge_header(existing_header, new_columns)
        table = existing_rows + new_rows

        wb = Workbook()
        ws = wb.active
        ws.title = self.SHEET_TITLE
        ws.append(header)
        for cell in ws[1]:
            cell.font = Font(bold=True)
        for row in table:
            ws.append([row.get(column, "") for column in header])
        _autosize(ws)

        self.output_dir.mkdir(parents=True, exist_ok=True)
        wb.save(path)
        logger.info("Appended %d rows to %s", len(new_rows), path)
        return path

    def _read_existing(self, path: Path) -> tuple[list[str], list[dict[str, Any]]]:
        if not path.exists():
            return [], []
        wb = load_workbook(path)
        try:
            ws = wb.active
            grid = list(ws.iter_rows(values_only=True))
        finally:
            wb.close()
        if not grid:
            return [], []
        header = [str(h) if h is not None else "" for h in grid[0]]
        rows = []
        for values in grid[1:]:
            rows.append({name: ("" if value is None else value) for name, value in zip(header, values) if name})
        return [h for h in header if h], rows

    def _row(self, record: ExtractedRecord, scan_number: Optional[int]) -> dict[str, Any]:
        row: dict[str, Any] = {
            "scan_number": scan_number if scan_number is not None else "",
            "timestamp": record.timestamp.astimezone(self.tz).strftime("%Y-%m-%d %H:%M:%S"),
            "folder": record.folder,
            "filename": record.filename,
            "sheet_name": record.sheet_name,
            "row_number": record.row_number,
        }
        row.update(record.data)
        return row


def merge_header(existing: Sequence[str], incoming: Sequence[str]) -> list[str]:
    """Union of both headers: named columns in first-seen order, then column letters in column order."""
    seen: list[str] = []
    for column in list(existing) + list(incoming):
        if column and column not in seen:
            seen.append(column)
    named = [c for c in seen if not _COLUMN_LETTER_RE.match(c)]
    letters = sorted((c for c in seen if _COLUMN_LETTER_RE.match(c)), key=letter_to_index)
    return named + letters


def _autosize(ws):
    for column_cells in ws.columns:
        length = max(len(str(cell.value)) if cell.value is not None else 0 for cell in column_cells)
        ws.column_dimensions[get_column_letter(column_cells[0].column)].width = min(max(length + 2, 10), 60)
