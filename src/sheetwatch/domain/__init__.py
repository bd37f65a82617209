from sheetwatch.domain.models import (
    ExtractedRecord,
    FileProcessed,
    FileStatus,
    RecordMetadata,
    ScanBatch,
    ScanStatistics,
    SourceLifecycle,
    SourceStatus,
)

__all__ = [
    "ExtractedRecord",
    "FileProcessed",
    "FileStatus",
    "RecordMetadata",
    "ScanBatch",
    "ScanStatistics",
    "SourceLifecycle",
    "SourceStatus",
]
