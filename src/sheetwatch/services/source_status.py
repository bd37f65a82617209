from __future__ import annotations

import logging
from typing import Optional

from sheetwatch.domain.models import ExtractedRecord, FileProcessed, ScanBatch, SourceLifecycle, SourceStatus
from sheetwatch.extract.selector import matches_condition
from sheetwatch.store.base import ScanStore

logger = logging.getLogger(__name__)


class SourceStatusService:
    """
    Read-only lifecycle view over the stored history.
    Each (file, sheet) is classified by its last non-empty column A value as seen by
    the latest scan (falling back to the latest extracted record's column A):
    the active marker means active, the maintenance marker means maintenance, and
    anything else (or a file missing from the latest scan) means closed.
    Markers compare the way the row selector does, so "1.0" equals "1".
    """

    def __init__(self, store: ScanStore, active_marker: str = "1", maintenance_marker: str = "11"):
        self.store = store
        self.active_marker = str(active_marker).strip()
        self.maintenance_marker = str(maintenance_marker).strip()

    def list_statuses(self) -> list[SourceStatus]:
        latest = {record.key: record for record in self.store.latest_records()}
        batches = self.store.list_batches(limit=1)
        batch = batches[0] if batches else None
        files = {entry.full_path: entry for entry in batch.files_processed} if batch else {}

        keys = set(latest)
        for entry in files.values():
            keys.update((entry.full_path, sheet) for sheet in entry.column_a_markers)

        statuses = [self._status_for(key, latest.get(key), files, batch) for key in sorted(keys)]
        logger.debug("Derived %d source statuses", len(statuses))
        return statuses

    def classify(self, marker: Optional[str]) -> SourceLifecycle:
        value = (marker or "").strip()
        if not value:
            return "closed"
        if matches_condition(value, self.active_marker):
            return "active"
        if matches_condition(value, self.maintenance_marker):
            return "maintenance"
        return "closed"

    def _status_for(
        self,
        key: tuple[str, str],
        record: Optional[ExtractedRecord],
        files: dict[str, FileProcessed],
        batch: Optional[ScanBatch],
    ) -> SourceStatus:
        file_path, sheet_name = key
        entry = files.get(file_path)
        in_latest = batch is None or entry is not None

        marker = entry.column_a_markers.get(sheet_name) if entry else None
        if marker is None and record is not None:
            marker = record.data.get("A")

        return SourceStatus(
            file_path=file_path,
            folder=record.folder if record else entry.folder,
            filename=record.filename if record else entry.filename,
            sheet_name=sheet_name,
            status=self.classify(marker) if in_latest else "closed",
            marker=marker,
            last_row_number=record.row_number if record else None,
            last_seen_at=record.timestamp if record else batch.started_at,
            in_latest_scan=in_latest,
        )
