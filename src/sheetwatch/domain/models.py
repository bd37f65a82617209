from __future__ import annotations

from datetime import UTC, datetime
from typing import Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

FileStatus = Literal["success", "error", "no_data"]
SourceLifecycle = Literal["active", "maintenance", "closed"]


def _new_id() -> str:
    return uuid4().hex


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=UTC)


class ScanStatistics(BaseModel):
    total_files: int = Field(default=0, ge=0)
    successful_files: int = Field(default=0, ge=0)
    error_files: int = Field(default=0, ge=0)
    field_names_found: int = Field(default=0, ge=0)
    last_rows_found: int = Field(default=0, ge=0)


class FileProcessed(BaseModel):
    folder: str
    filename: str
    full_path: str
    status: FileStatus
    rows_extracted: int = Field(default=0, ge=0)
    error: Optional[str] = None
    column_a_markers: dict[str, str] = Field(default_factory=dict)  # sheet -> last non-empty column A text


class RecordMetadata(BaseModel):
    column_count: int = Field(default=0, ge=0)
    first_column: str = "A"
    last_column: str = "A"
    has_data: bool = False


class ScanBatch(BaseModel):
    id: str = Field(default_factory=_new_id)
    scan_number: int = Field(ge=0)
    started_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    local_time: Optional[str] = None
    environment: str = "development"
    statistics: ScanStatistics = Field(default_factory=ScanStatistics)
    files_processed: list[FileProcessed] = Field(default_factory=list)
    duration_ms: int = Field(default=0, ge=0)

    @field_validator("started_at", mode="before")
    @classmethod
    def _coerce_started_at(cls, value):
        if isinstance(value, str):
            value = datetime.fromisoformat(value)
        return _as_utc(value) if isinstance(value, datetime) else value


class ExtractedRecord(BaseModel):
    """
    One captured row of interest. `data`, `display` and `display_column_names`
    are keyed by column letter and kept in column order.
    """

    id: str = Field(default_factory=_new_id)
    scan_id: Optional[str] = None
    timestamp: datetime
    file_path: str
    folder: str
    filename: str
    sheet_name: str
    row_number: int = Field(ge=1)
    data: dict[str, str] = Field(default_factory=dict)
    display: dict[str, str] = Field(default_factory=dict)
    display_column_names: dict[str, str] = Field(default_factory=dict)
    metadata: RecordMetadata = Field(default_factory=RecordMetadata)

    @field_validator("timestamp", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value):
        if isinstance(value, str):
            value = datetime.fromisoformat(value)
        return _as_utc(value) if isinstance(value, datetime) else value

    @property
    def key(self) -> tuple[str, str]:
        return (self.file_path, self.sheet_name)


class SourceStatus(BaseModel):
    """
    Read-model row for a (file, sheet) key, from its column A marker in the latest
    scan and its latest ExtractedRecord. last_row_number is None when no row was ever extracted.
    """

    file_path: str
    folder: str
    filename: str
    sheet_name: str
    status: SourceLifecycle
    marker: Optional[str] = None
    last_row_number: Optional[int] = None
    last_seen_at: datetime
    in_latest_scan: bool = True
