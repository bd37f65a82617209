from __future__ import annotations

import logging
import signal
import sys
import threading
from datetime import UTC, date, datetime
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from sheetwatch.services.retention import RetentionSweeper, SweepResult
from sheetwatch.services.scanner import ScanCoordinator, ScanResult

logger = logging.getLogger(__name__)


class ScanScheduler:
    """
    Single-worker loop: sweep once per local day, then scan, then wait for the interval.
    The wait starts after the scan finishes, so scans never overlap.
    """

    def __init__(
        self,
        coordinator: ScanCoordinator,
        sweeper: Optional[RetentionSweeper],
        interval_minutes: int,
        retention_days: int,
        stop_event: Optional[threading.Event] = None,
        timezone: str = "UTC",
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        self.coordinator = coordinator
        self.sweeper = sweeper
        self.interval_seconds = max(int(interval_minutes), 1) * 60
        self.retention_days = retention_days
        self.stop_event = stop_event or threading.Event()
        self.tz = ZoneInfo(timezone)
        self.clock = clock
        self.last_sweep_date: Optional[date] = None
        self.cycles = 0

    def sweep_due(self, now: Optional[datetime] = None) -> bool:
        if self.sweeper is None:
            return False
        today = (now or self.clock()).astimezone(self.tz).date()
        return self.last_sweep_date != today

    def run_sweep_if_due(self, now: Optional[datetime] = None) -> Optional[SweepResult]:
        now = now or self.clock()
        if not self.sweep_due(now):
            return None
        try:
            result = self.sweeper.run(self.retention_days, now=now)
        except Exception as exc:
            # Left unmarked so the next cycle retries.
            logger.error("Retention sweep failed, retrying next cycle: %s", exc)
            return None
        self.last_sweep_date = now.astimezone(self.tz).date()
        return result

    def run_once_cycle(self) -> Optional[ScanResult]:
        self.cycles += 1
        self.run_sweep_if_due()
        if self.stop_event.is_set():
            return None
        try:
            return self.coordinator.run(cancel=self.stop_event)
        except Exception:
            logger.exception("Scan cycle %d failed", self.cycles)
            return None

    def run_forever(self, max_cycles: Optional[int] = None) -> None:
        logger.info("Scheduler started: every %d s, retention %d days", self.interval_seconds, self.retention_days)
        while not self.stop_event.is_set():
            self.run_once_cycle()
            if max_cycles is not None and self.cycles >= max_cycles:
                break
            if self.stop_event.wait(self.interval_seconds):
                break
        logger.info("Scheduler stopped after %d cycles", self.cycles)


def install_signal_handlers(stop_event: threading.Event) -> None:
    """First SIGINT/SIGTERM requests a graceful stop; a second one exits immediately."""

    def _handler(signum, frame):
        if not stop_event.is_set():
            logger.warning("Received %s, stopping after the current file", signal.Signals(signum).name)
            stop_event.set()
        else:
            logger.warning("Second signal received, exiting now")
            sys.exit(1)

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)
