from __future__ import annotations

from datetime import UTC, datetime
from typing import Optional, Protocol, Sequence

from sheetwatch.domain.models import ExtractedRecord, ScanBatch


class ScanStore(Protocol):
    """
    Persistence boundary for scan batches and extracted records.
    Implementations raise PersistenceError for any backend failure.
    """

    def count_batches(self) -> int:
        ...

    def insert_batch(self, batch: ScanBatch) -> str:
        ...

    def insert_records(self, records: Sequence[ExtractedRecord]) -> int:
        ...

    def latest_record(self, file_path: str, sheet_name: str) -> Optional[ExtractedRecord]:
        ...

    def list_batches(self, limit: int = 50) -> list[ScanBatch]:
        ...

    def get_batch(self, scan_number: int) -> Optional[ScanBatch]:
        ...

    def list_records(
        self,
        scan_id: Optional[str] = None,
        file_path: Optional[str] = None,
        sheet_name: Optional[str] = None,
        limit: int = 500,
    ) -> list[ExtractedRecord]:
        ...

    def latest_records(self) -> list[ExtractedRecord]:
        ...

    def batch_ids_before(self, cutoff: datetime) -> list[str]:
        ...

    def delete_records_for_batches(self, batch_ids: Sequence[str]) -> int:
        ...

    def delete_batches(self, batch_ids: Sequence[str]) -> int:
        ...


def to_utc_iso(value: datetime) -> str:
    """Fixed-width UTC ISO text, so stored timestamps compare correctly as strings."""
    dt = value if value.tzinfo else value.replace(tzinfo=UTC)
    return dt.astimezone(UTC).isoformat(timespec="microseconds")
