from sheetwatch.services.report import ScanReportWriter
from sheetwatch.services.retention import RetentionSweeper, SweepResult
from sheetwatch.services.scanner import ScanCoordinator, ScanResult
from sheetwatch.services.scheduler import ScanScheduler, install_signal_handlers
from sheetwatch.services.source_status import SourceStatusService

__all__ = [
    "RetentionSweeper",
    "ScanCoordinator",
    "ScanReportWriter",
    "ScanResult",
    "ScanScheduler",
    "SourceStatusService",
    "SweepResult",
    "install_signal_handlers",
]
