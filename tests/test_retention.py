from datetime import UTC, datetime, timedelta

import pytest

from sheetwatch.domain.models import ExtractedRecord, ScanBatch
from sheetwatch.exceptions import PersistenceError
from sheetwatch.services.retention import RetentionSweeper

NOW = datetime(2026, 3, 31, 12, 0, tzinfo=UTC)


def _seed(store, number: int, age_days: int) -> ScanBatch:
    batch = ScanBatch(scan_number=number, started_at=NOW - timedelta(days=age_days))
    store.insert_batch(batch)
    store.insert_records(
        [
            ExtractedRecord(
                scan_id=batch.id,
                timestamp=batch.started_at,
                file_path="/r/cxv.xlsx",
                folder=".",
                filename="cxv.xlsx",
                sheet_name=f"S{number}",
                row_number=2,
                data={"A": "1"},
            )
        ]
    )
    return batch


def test_sweep_removes_only_batches_past_the_window(sqlite_store):
    _seed(sqlite_store, 1, 45)
    _seed(sqlite_store, 2, 31)
    keep = _seed(sqlite_store, 3, 29)

    result = RetentionSweeper(sqlite_store).run(30, now=NOW)

    assert result.deleted_batches == 2
    assert result.deleted_records == 2
    assert result.cutoff == NOW - timedelta(days=30)
    assert [b.id for b in sqlite_store.list_batches()] == [keep.id]
    assert [r.scan_id for r in sqlite_store.list_records()] == [keep.id]


def test_sweep_with_nothing_to_delete(sqlite_store):
    _seed(sqlite_store, 1, 1)
    result = RetentionSweeper(sqlite_store).run(30, now=NOW)
    assert (result.deleted_batches, result.deleted_records) == (0, 0)
    assert result.to_dict()["cutoff"].startswith("2026-03-01")


def test_failed_record_delete_keeps_batches_and_reraises(fake_store):
    _seed(fake_store, 1, 60)
    fake_store.fail_delete = True

    with pytest.raises(PersistenceError):
        RetentionSweeper(fake_store).run(30, now=NOW)

    assert len(fake_store.batches) == 1
    assert len(fake_store.records) == 1
