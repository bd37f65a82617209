from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

import pytest
from openpyxl import Workbook

from sheetwatch.domain.models import ExtractedRecord, ScanBatch
from sheetwatch.exceptions import PersistenceError
from sheetwatch.store.sqlite import Database, SqliteScanStore


def write_workbook(path: Path, sheets: dict) -> Path:
    """
    Write an .xlsx with one worksheet per entry: {sheet_name: [row, row, ...]}.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    wb = Workbook()
    wb.remove(wb.active)
    for name, rows in sheets.items():
        ws = wb.create_sheet(title=name)
        for row in rows:
            ws.append(list(row))
    wb.save(path)
    return path


class FakeStore:
    """
    In-memory ScanStore with switches for failure injection.
    """

    def __init__(self):
        self.batches: list[ScanBatch] = []
        self.records: list[ExtractedRecord] = []
        self.fail_count = False
        self.fail_batch = False
        self.fail_records = False
        self.fail_lookup = False
        self.fail_delete = False

    def count_batches(self) -> int:
        if self.fail_count:
            raise PersistenceError("store offline")
        return len(self.batches)

    def insert_batch(self, batch: ScanBatch) -> str:
        if self.fail_batch:
            raise PersistenceError("batch write rejected")
        self.batches.append(batch)
        return batch.id

    def insert_records(self, records: Sequence[ExtractedRecord]) -> int:
        if self.fail_records:
            raise PersistenceError("record write rejected")
        self.records.extend(records)
        return len(records)

    def latest_record(self, file_path: str, sheet_name: str) -> Optional[ExtractedRecord]:
        if self.fail_lookup:
            raise PersistenceError("lookup timed out")
        matches = [r for r in self.records if r.key == (file_path, sheet_name)]
        if not matches:
            return None
        return max(matches, key=lambda r: (r.row_number, r.timestamp))

    def list_batches(self, limit: int = 50) -> list[ScanBatch]:
        return sorted(self.batches, key=lambda b: b.scan_number, reverse=True)[:limit]

    def get_batch(self, scan_number: int) -> Optional[ScanBatch]:
        return next((b for b in self.batches if b.scan_number == scan_number), None)

    def list_records(self, scan_id=None, file_path=None, sheet_name=None, limit: int = 500):
        rows = [
            r
            for r in self.records
            if (not scan_id or r.scan_id == scan_id)
            and (not file_path or r.file_path == file_path)
            and (not sheet_name or r.sheet_name == sheet_name)
        ]
        return rows[:limit]

    def latest_records(self) -> list[ExtractedRecord]:
        keys = sorted({r.key for r in self.records})
        return [self.latest_record(*key) for key in keys]

    def batch_ids_before(self, cutoff: datetime) -> list[str]:
        return [b.id for b in self.batches if b.started_at < cutoff]

    def delete_records_for_batches(self, batch_ids: Sequence[str]) -> int:
        if self.fail_delete:
            raise PersistenceError("delete rejected")
        before = len(self.records)
        self.records = [r for r in self.records if r.scan_id not in set(batch_ids)]
        return before - len(self.records)

    def delete_batches(self, batch_ids: Sequence[str]) -> int:
        before = len(self.batches)
        self.batches = [b for b in self.batches if b.id not in set(batch_ids)]
        return before - len(self.batches)


@pytest.fixture
def sqlite_store(tmp_path):
    return SqliteScanStore(db=Database(tmp_path / "sheetwatch.db"))


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def scan_root(tmp_path):
    root = tmp_path / "input"
    root.mkdir()
    return root


@pytest.fixture
def log_dir(tmp_path):
    return tmp_path / "logs"
