from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator, Optional, Sequence

import pandas as pd

from sheetwatch.domain.models import (
    ExtractedRecord,
    FileProcessed,
    RecordMetadata,
    ScanBatch,
    ScanStatistics,
)
from sheetwatch.exceptions import PersistenceError
from sheetwatch.extract.columns import ordered_columns
from sheetwatch.store.base import to_utc_iso

logger = logging.getLogger(__name__)

_LINE_COLUMNS = (
    "id, scan_id, timestamp, file_path, folder, filename, sheet_name, row_number, "
    "data_json, display_json, column_names_json, metadata_json"
)


class Database:
    """
    Thin wrapper over sqlite3 for scan history.
    Keeps schema creation and connection handling in one place.
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._ensure_schema()
        except OSError as exc:
            raise PersistenceError(f"Cannot prepare database {self.db_path}: {exc}") from exc

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as exc:
            raise PersistenceError(f"Cannot open database {self.db_path}: {exc}") from exc
        try:
            conn.execute("PRAGMA foreign_keys = ON")
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise PersistenceError(str(exc)) from exc
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS scans (
                    id TEXT PRIMARY KEY,
                    scan_number INTEGER NOT NULL,
                    started_at TEXT NOT NULL,
                    local_time TEXT,
                    environment TEXT NOT NULL,
                    statistics_json TEXT NOT NULL,
                    files_json TEXT NOT NULL,
                    duration_ms INTEGER NOT NULL DEFAULT 0
                );
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS extracted_lines (
                    id TEXT PRIMARY KEY,
                    scan_id TEXT NOT NULL,
                    timestamp TEXT NOT NULL,
                    file_path TEXT NOT NULL,
                    folder TEXT NOT NULL,
                    filename TEXT NOT NULL,
                    sheet_name TEXT NOT NULL,
                    row_number INTEGER NOT NULL,
                    data_json TEXT NOT NULL,
                    display_json TEXT NOT NULL,
                    column_names_json TEXT NOT NULL,
                    metadata_json TEXT NOT NULL,
                    FOREIGN KEY (scan_id) REFERENCES scans(id)
                );
                """
            )
            cur.execute("CREATE INDEX IF NOT EXISTS idx_scans_started ON scans (started_at);")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_scans_number ON scans (scan_number);")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_lines_scan ON extracted_lines (scan_id);")
            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_lines_cursor "
                "ON extracted_lines (file_path, sheet_name, row_number DESC);"
            )


class SqliteScanStore:
    """
    SQLite-backed scan history. Default backend for local runs and tests.
    """

    def __init__(self, db: Database):
        self.db = db

    def count_batches(self) -> int:
        with self.db._connect() as conn:
            return int(conn.execute("SELECT COUNT(*) FROM scans").fetchone()[0])

    def insert_batch(self, batch: ScanBatch) -> str:
        with self.db._connect() as conn:
            conn.execute(
                """
                INSERT INTO scans
                    (id, scan_number, started_at, local_time, environment, statistics_json, files_json, duration_ms)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    batch.id,
                    batch.scan_number,
                    to_utc_iso(batch.started_at),
                    batch.local_time,
                    batch.environment,
                    batch.statistics.model_dump_json(),
                    json.dumps([f.model_dump() for f in batch.files_processed], ensure_ascii=False),
                    batch.duration_ms,
                ),
            )
        return batch.id

    def insert_records(self, records: Sequence[ExtractedRecord]) -> int:
        if not records:
            return 0
        rows = [
            (
                r.id,
                r.scan_id,
                to_utc_iso(r.timestamp),
                r.file_path,
                r.folder,
                r.filename,
                r.sheet_name,
                r.row_number,
                _dump_columns(r.data),
                _dump_columns(r.display),
                _dump_columns(r.display_column_names),
                r.metadata.model_dump_json(),
            )
            for r in records
        ]
        with self.db._connect() as conn:
            conn.executemany(
                f"INSERT INTO extracted_lines ({_LINE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                rows,
            )
        return len(rows)

    def latest_record(self, file_path: str, sheet_name: str) -> Optional[ExtractedRecord]:
        with self.db._connect() as conn:
            conn.row_factory = sqlite3.Row
            row = conn.execute(
                f"""
                SELECT {_LINE_COLUMNS} FROM extracted_lines
                WHERE file_path = ? AND sheet_name = ?
                ORDER BY row_number DESC, timestamp DESC
                LIMIT 1
                """,
                (file_path, sheet_name),
            ).fetchone()
        return _record_from_row(dict(row)) if row else None

    def list_batches(self, limit: int = 50) -> list[ScanBatch]:
        query = (
            "SELECT id, scan_number, started_at, local_time, environment, statistics_json, files_json, duration_ms "
            "FROM scans ORDER BY scan_number DESC, started_at DESC LIMIT ?"
        )
        with self.db._connect() as conn:
            df = pd.read_sql_query(query, conn, params=[int(limit)])
        if df.empty:
            return []
        return [_batch_from_row(row) for row in df.to_dict("records")]

    def get_batch(self, scan_number: int) -> Optional[ScanBatch]:
        with self.db._connect() as conn:
            conn.row_factory = sqlite3.Row
            row = conn.execute(
                """
                SELECT id, scan_number, started_at, local_time, environment, statistics_json, files_json, duration_ms
                FROM scans WHERE scan_number = ? ORDER BY started_at DESC LIMIT 1
                """,
                (int(scan_number),),
            ).fetchone()
        return _batch_from_row(dict(row)) if row else None

    def list_records(
        self,
        scan_id: Optional[str] = None,
        file_path: Optional[str] = None,
        sheet_name: Optional[str] = None,
        limit: int = 500,
    ) -> list[ExtractedRecord]:
        query = f"SELECT {_LINE_COLUMNS} FROM extracted_lines WHERE 1=1"
        params: list[Any] = []
        if scan_id:
            query += " AND scan_id = ?"
            params.append(scan_id)
        if file_path:
            query += " AND file_path = ?"
            params.append(file_path)
        if sheet_name:
            query += " AND sheet_name = ?"
            params.append(sheet_name)
        query += " ORDER BY timestamp DESC, file_path, sheet_name, row_number DESC LIMIT ?"
        params.append(int(limit))

        with self.db._connect() as conn:
            df = pd.read_sql_query(query, conn, params=params)
        if df.empty:
            return []
        return [_record_from_row(row) for row in df.to_dict("records")]

    def latest_records(self) -> list[ExtractedRecord]:
        query = f"""
            SELECT {_LINE_COLUMNS} FROM (
                SELECT *, ROW_NUMBER() OVER (
                    PARTITION BY file_path, sheet_name
                    ORDER BY row_number DESC, timestamp DESC
                ) AS rn
                FROM extracted_lines
            ) WHERE rn = 1
            ORDER BY file_path, sheet_name
        """
        with self.db._connect() as conn:
            df = pd.read_sql_query(query, conn)
        if df.empty:
            return []
        return [_record_from_row(row) for row in df.to_dict("records")]

    def batch_ids_before(self, cutoff: datetime) -> list[str]:
        with self.db._connect() as conn:
            rows = conn.execute("SELECT id FROM scans WHERE started_at < ?", (to_utc_iso(cutoff),)).fetchall()
        return [str(r[0]) for r in rows]

    def delete_records_for_batches(self, batch_ids: Sequence[str]) -> int:
        return self._delete_in("extracted_lines", "scan_id", batch_ids)

    def delete_batches(self, batch_ids: Sequence[str]) -> int:
        return self._delete_in("scans", "id", batch_ids)

    def _delete_in(self, table: str, column: str, ids: Sequence[str]) -> int:
        ids = list(ids)
        if not ids:
            return 0
        deleted = 0
        with self.db._connect() as conn:
            # Stay under SQLite's bound-parameter limit
            for start in range(0, len(ids), 500):
                chunk = ids[start : start + 500]
                placeholders = ", ".join("?" for _ in chunk)
                cur = conn.execute(f"DELETE FROM {table} WHERE {column} IN ({placeholders})", chunk)
                deleted += cur.rowcount
        return deleted


def _dump_columns(mapping: dict[str, str]) -> str:
    return json.dumps(ordered_columns(mapping), ensure_ascii=False)


def _safe_json(raw: Any, default: Any) -> Any:
    if raw is None:
        return default
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("Unreadable JSON column in store: %r", raw)
        return default


def _batch_from_row(row: dict[str, Any]) -> ScanBatch:
    return ScanBatch(
        id=str(row["id"]),
        scan_number=int(row["scan_number"]),
        started_at=str(row["started_at"]),
        local_time=None if pd.isna(row.get("local_time")) else str(row["local_time"]),
        environment=str(row["environment"]),
        statistics=ScanStatistics(**_safe_json(row["statistics_json"], {})),
        files_processed=[FileProcessed(**f) for f in _safe_json(row["files_json"], [])],
        duration_ms=int(row["duration_ms"] or 0),
    )


def _record_from_row(row: dict[str, Any]) -> ExtractedRecord:
    return ExtractedRecord(
        id=str(row["id"]),
        scan_id=str(row["scan_id"]),
        timestamp=str(row["timestamp"]),
        file_path=str(row["file_path"]),
        folder=str(row["folder"]),
        filename=str(row["filename"]),
        sheet_name=str(row["sheet_name"]),
        row_number=int(row["row_number"]),
        data=_safe_json(row["data_json"], {}),
        display=_safe_json(row["display_json"], {}),
        display_column_names=_safe_json(row["column_names_json"], {}),
        metadata=RecordMetadata(**_safe_json(row["metadata_json"], {})),
    )
