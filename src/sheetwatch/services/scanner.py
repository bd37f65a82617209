from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Callable, Optional
from uuid import uuid4
from zoneinfo import ZoneInfo

from sheetwatch.config import Settings, settings as default_settings
from sheetwatch.domain.models import ExtractedRecord, FileProcessed, ScanBatch, ScanStatistics
from sheetwatch.exceptions import CursorLookupError, PersistenceError, ReadError
from sheetwatch.extract.changes import is_unchanged, normalize_text
from sheetwatch.extract.pattern import compile_pattern
from sheetwatch.extract.record import build_record_data, column_names, header_field_names
from sheetwatch.extract.selector import select_row
from sheetwatch.extract.walker import discover_files
from sheetwatch.extract.workbook import Workbook, open_workbook
from sheetwatch.services.report import ScanReportWriter
from sheetwatch.store.base import ScanStore

logger = logging.getLogger(__name__)


@dataclass
class ScanResult:
    batch: ScanBatch
    records: list[ExtractedRecord] = field(default_factory=list)
    persisted: bool = False
    records_inserted: int = 0
    cancelled: bool = False
    error: Optional[str] = None
    report_path: Optional[Path] = None

    def summary(self) -> dict:
        return {
            "scan_number": self.batch.scan_number,
            "scan_id": self.batch.id,
            "started_at": self.batch.started_at.isoformat(),
            "duration_ms": self.batch.duration_ms,
            "statistics": self.batch.statistics.model_dump(),
            "records_found": len(self.records),
            "records_inserted": self.records_inserted,
            "persisted": self.persisted,
            "cancelled": self.cancelled,
            "error": self.error,
            "report_path": str(self.report_path) if self.report_path else None,
        }


class ScanCoordinator:
    """
    Runs one complete scan: walk, extract per (file, sheet), compare with the
    stored history, then persist the batch followed by its records.
    A file that cannot be read is recorded as an error and skipped; a store that
    cannot be reached turns the scan into a statistics-only run.
    """

    def __init__(
        self,
        store: Optional[ScanStore],
        root_directory: Path,
        file_pattern: str,
        log_directory: Path,
        *,
        match_value: str = "1",
        environment: str = "development",
        timezone: str = "UTC",
        report_writer: Optional[ScanReportWriter] = None,
        report_prefix: str = "scan-results",
        opener: Callable[[Path], Workbook] = open_workbook,
    ):
        self.store = store
        self.root_directory = Path(root_directory)
        self.matcher = compile_pattern(file_pattern)
        self.exported_matcher = compile_pattern(f"{report_prefix}-*.xlsx")
        self.log_directory = Path(log_directory)
        self.match_value = match_value
        self.environment = environment
        self.tz = ZoneInfo(timezone)
        self.report_writer = report_writer
        self.opener = opener

    @classmethod
    def from_settings(cls, store: Optional[ScanStore], config: Optional[Settings] = None) -> "ScanCoordinator":
        config = config or default_settings
        writer = None
        if config.report.enabled:
            writer = ScanReportWriter(
                output_dir=config.paths.log_directory,
                prefix=config.report.prefix,
                timezone=config.app.timezone,
            )
        return cls(
            store=store,
            root_directory=config.scan.root_directory,
            file_pattern=config.scan.file_pattern,
            log_directory=config.paths.log_directory,
            match_value=config.scan.match_value,
            environment=config.app.environment,
            timezone=config.app.timezone,
            report_writer=writer,
            report_prefix=config.report.prefix,
        )

    def run(self, cancel: Optional[threading.Event] = None) -> ScanResult:
        clock = time.perf_counter()
        started_at = datetime.now(UTC)
        scan_number, online = self._next_scan_number()
        batch_id = uuid4().hex
        logger.info("Scan #%s started (root=%s, pattern=%s)", scan_number, self.root_directory, self.matcher.pattern)

        files = sorted(
            discover_files(
                self.root_directory,
                self.matcher,
                exclude_dirs=[self.log_directory],
                exclude=self.exported_matcher,
            )
        )
        stats = ScanStatistics(total_files=len(files))
        processed: list[FileProcessed] = []
        records: list[ExtractedRecord] = []
        cancelled = False

        for path in files:
            if cancel is not None and cancel.is_set():
                logger.warning("Scan #%s cancelled after %d of %d files", scan_number, len(processed), len(files))
                cancelled = True
                break
            entry, file_records = self._process_file(path, batch_id, started_at, online, stats)
            processed.append(entry)
            records.extend(file_records)

        stats.successful_files = sum(1 for p in processed if p.status != "error")
        stats.error_files = sum(1 for p in processed if p.status == "error")
        batch = ScanBatch(
            id=batch_id,
            scan_number=scan_number,
            started_at=started_at,
            local_time=started_at.astimezone(self.tz).strftime("%H:%M"),
            environment=self.environment,
            statistics=stats,
            files_processed=processed,
            duration_ms=int((time.perf_counter() - clock) * 1000),
        )
        result = ScanResult(batch=batch, records=records, cancelled=cancelled)

        if cancelled:
            result.error = "cancelled"
        elif not online:
            logger.warning("Scan #%s ran without a store; %d records were not persisted", scan_number, len(records))
            result.error = "store unavailable"
        else:
            self._persist(result)

        logger.info(
            "Scan #%s finished: %d files (%d errors), %d field names, %d rows found, %d new/changed, %d ms",
            scan_number,
            stats.total_files,
            stats.error_files,
            stats.field_names_found,
            stats.last_rows_found,
            len(records),
            batch.duration_ms,
        )
        return result

    def _next_scan_number(self) -> tuple[int, bool]:
        if self.store is None:
            return 0, False
        try:
            return self.store.count_batches() + 1, True
        except PersistenceError as exc:
            logger.warning("Store unreachable, scanning without persistence: %s", exc)
            return 0, False

    def _process_file(
        self,
        path: Path,
        batch_id: str,
        started_at: datetime,
        online: bool,
        stats: ScanStatistics,
    ) -> tuple[FileProcessed, list[ExtractedRecord]]:
        folder = self._folder(path)
        try:
            workbook = self.opener(path)
        except ReadError as exc:
            logger.error("Error reading %s: %s", path, exc)
            return (
                FileProcessed(
                    folder=folder,
                    filename=path.name,
                    full_path=str(path),
                    status="error",
                    rows_extracted=0,
                    error=str(exc),
                ),
                [],
            )

        records: list[ExtractedRecord] = []
        markers: dict[str, str] = {}
        with workbook:
            for sheet_name in workbook.sheet_names():
                try:
                    record = self._process_sheet(
                        workbook, path, folder, sheet_name, batch_id, started_at, online, stats, markers
                    )
                except Exception:
                    logger.exception("Failed to process sheet '%s' in %s", sheet_name, path)
                    continue
                if record is not None:
                    records.append(record)

        entry = FileProcessed(
            folder=folder,
            filename=path.name,
            full_path=str(path),
            status="success" if records else "no_data",
            rows_extracted=len(records),
            column_a_markers=markers,
        )
        return entry, records

    def _process_sheet(
        self,
        workbook: Workbook,
        path: Path,
        folder: str,
        sheet_name: str,
        batch_id: str,
        started_at: datetime,
        online: bool,
        stats: ScanStatistics,
        markers: dict[str, str],
    ) -> Optional[ExtractedRecord]:
        rows = workbook.rows(sheet_name)
        field_names = header_field_names(rows)
        stats.field_names_found += len(field_names)
        logger.debug("%s [%s]: %d field names", path.name, sheet_name, len(field_names))
        marker = _last_column_a(rows)
        if marker:
            markers[sheet_name] = marker

        previous: Optional[ExtractedRecord] = None
        if online:
            try:
                previous = self._last_record(str(path), sheet_name)
            except CursorLookupError as exc:
                logger.warning("%s; treating row as new", exc)

        cursor = previous.row_number if previous else 0
        selection = select_row(rows, cursor, self.match_value)
        if selection is None:
            return None
        stats.last_rows_found += 1

        data, metadata = build_record_data(selection.row)
        if selection.is_recheck and previous is not None and is_unchanged(previous.data, data):
            logger.debug("%s [%s] row %d unchanged", path.name, sheet_name, selection.row_number)
            return None

        logger.info(
            "%s [%s] row %d %s",
            path.name,
            sheet_name,
            selection.row_number,
            "changed" if selection.is_recheck else "new",
        )
        return ExtractedRecord(
            scan_id=batch_id,
            timestamp=started_at,
            file_path=str(path),
            folder=folder,
            filename=path.name,
            sheet_name=sheet_name,
            row_number=selection.row_number,
            data=data,
            display=self._display(workbook, sheet_name, selection.row_number, list(data)),
            display_column_names=column_names(rows[0], list(data)) if rows else {},
            metadata=metadata,
        )

    def _last_record(self, file_path: str, sheet_name: str) -> Optional[ExtractedRecord]:
        try:
            return self.store.latest_record(file_path, sheet_name)
        except PersistenceError as exc:
            raise CursorLookupError(f"Previous record lookup failed for {file_path} [{sheet_name}]: {exc}") from exc

    def _display(self, workbook: Workbook, sheet_name: str, row_number: int, columns: list[str]) -> dict[str, str]:
        try:
            return {letter: workbook.display_text(sheet_name, letter, row_number) for letter in columns}
        except Exception:
            logger.warning("Display text unavailable for %s [%s] row %d", workbook.path.name, sheet_name, row_number)
            return {}

    def _persist(self, result: ScanResult) -> None:
        batch = result.batch
        try:
            self.store.insert_batch(batch)
        except PersistenceError as exc:
            logger.error("Failed to save scan #%s; its %d records were dropped: %s", batch.scan_number, len(result.records), exc)
            result.error = f"batch write failed: {exc}"
            return
        result.persisted = True

        if not result.records:
            return
        try:
            result.records_inserted = self.store.insert_records(result.records)
        except PersistenceError as exc:
            logger.error("Failed to save %d records for scan #%s: %s", len(result.records), batch.scan_number, exc)
            result.error = f"record write failed: {exc}"
            return

        if self.report_writer is not None:
            try:
                result.report_path = self.report_writer.append(result.records, scan_number=batch.scan_number)
            except Exception:
                logger.exception("Failed to append scan results report", extra={"scan_id": batch.id})

    def _folder(self, path: Path) -> str:
        try:
            relative = path.parent.resolve().relative_to(self.root_directory.resolve())
        except ValueError:
            return path.parent.name or "."
        text = relative.as_posix()
        return text if text and text != "." else "."


def _last_column_a(rows: list[list]) -> str:
    """Text of the last non-empty column A cell below the header row."""
    for row in reversed(rows[1:]):
        if row:
            text = normalize_text(row[0]).strip()
            if text:
                return text
    return ""
