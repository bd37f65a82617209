from datetime import UTC, datetime, timedelta

import pytest

from sheetwatch.domain.models import ExtractedRecord, FileProcessed, ScanBatch, ScanStatistics
from sheetwatch.exceptions import PersistenceError
from sheetwatch.store.sqlite import Database, SqliteScanStore

T0 = datetime(2026, 3, 1, 8, 0, tzinfo=UTC)


def _batch(number: int, started_at: datetime = T0) -> ScanBatch:
    return ScanBatch(
        scan_number=number,
        started_at=started_at,
        local_time="10:00",
        statistics=ScanStatistics(total_files=1, successful_files=1, last_rows_found=1),
        files_processed=[FileProcessed(folder=".", filename="cxv.xlsx", full_path="/r/cxv.xlsx", status="success", rows_extracted=1)],
    )


def _record(batch: ScanBatch, row_number: int, data=None, sheet="Main", ts=None) -> ExtractedRecord:
    return ExtractedRecord(
        scan_id=batch.id,
        timestamp=ts or batch.started_at,
        file_path="/r/cxv.xlsx",
        folder=".",
        filename="cxv.xlsx",
        sheet_name=sheet,
        row_number=row_number,
        data=data or {"A": "1", "B": f"row {row_number}"},
    )


def test_batches_round_trip_and_count(sqlite_store):
    assert sqlite_store.count_batches() == 0
    first = _batch(1)
    sqlite_store.insert_batch(first)
    sqlite_store.insert_batch(_batch(2, T0 + timedelta(minutes=5)))

    assert sqlite_store.count_batches() == 2
    listed = sqlite_store.list_batches()
    assert [b.scan_number for b in listed] == [2, 1]

    loaded = sqlite_store.get_batch(1)
    assert loaded.id == first.id
    assert loaded.started_at == T0
    assert loaded.local_time == "10:00"
    assert loaded.files_processed[0].status == "success"
    assert sqlite_store.get_batch(99) is None


def test_latest_record_orders_by_row_then_timestamp(sqlite_store):
    b1 = _batch(1)
    b2 = _batch(2, T0 + timedelta(minutes=5))
    sqlite_store.insert_batch(b1)
    sqlite_store.insert_batch(b2)
    sqlite_store.insert_records([_record(b1, 3), _record(b1, 7)])
    sqlite_store.insert_records([_record(b2, 7, {"A": "1", "B": "edited"})])

    latest = sqlite_store.latest_record("/r/cxv.xlsx", "Main")
    assert latest.row_number == 7
    assert latest.data == {"A": "1", "B": "edited"}
    assert sqlite_store.latest_record("/r/cxv.xlsx", "Other") is None


def test_column_maps_keep_column_order(sqlite_store):
    b1 = _batch(1)
    sqlite_store.insert_batch(b1)
    sqlite_store.insert_records([_record(b1, 2, {"AA": "z", "B": "b", "A": "1"})])
    stored = sqlite_store.latest_record("/r/cxv.xlsx", "Main")
    assert list(stored.data) == ["A", "B", "AA"]


def test_list_and_latest_records(sqlite_store):
    b1 = _batch(1)
    sqlite_store.insert_batch(b1)
    sqlite_store.insert_records([_record(b1, 2), _record(b1, 4, sheet="Other")])

    assert len(sqlite_store.list_records(scan_id=b1.id)) == 2
    assert len(sqlite_store.list_records(sheet_name="Other")) == 1
    assert sqlite_store.list_records(scan_id="missing") == []
    assert [r.sheet_name for r in sqlite_store.latest_records()] == ["Main", "Other"]


def test_retention_queries_and_deletes(sqlite_store):
    old = _batch(1, T0 - timedelta(days=40))
    new = _batch(2, T0)
    for b in (old, new):
        sqlite_store.insert_batch(b)
    sqlite_store.insert_records([_record(old, 2), _record(new, 3)])

    ids = sqlite_store.batch_ids_before(T0 - timedelta(days=30))
    assert ids == [old.id]
    assert sqlite_store.delete_records_for_batches(ids) == 1
    assert sqlite_store.delete_batches(ids) == 1
    assert sqlite_store.count_batches() == 1
    assert [r.row_number for r in sqlite_store.list_records()] == [3]


def test_record_without_batch_is_rejected(sqlite_store):
    orphan = _record(_batch(1), 2)
    with pytest.raises(PersistenceError):
        sqlite_store.insert_records([orphan])


def test_duplicate_batch_id_raises_persistence_error(tmp_path):
    store = SqliteScanStore(db=Database(tmp_path / "dup.db"))
    batch = _batch(1)
    store.insert_batch(batch)
    with pytest.raises(PersistenceError):
        store.insert_batch(batch)


def test_uncreatable_db_directory_raises_persistence_error(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    with pytest.raises(PersistenceError):
        Database(blocker / "db.sqlite")


def test_build_store_wraps_filesystem_errors(tmp_path):
    from sheetwatch.config import Settings
    from sheetwatch.store import build_store

    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    config = Settings()
    config.paths.db_path = blocker / "db.sqlite"
    with pytest.raises(PersistenceError):
        build_store(config)
