from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import UTC, datetime, timedelta
from typing import Optional

from sheetwatch.store.base import ScanStore

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    cutoff: datetime
    deleted_batches: int = 0
    deleted_records: int = 0

    def to_dict(self) -> dict:
        payload = asdict(self)
        payload["cutoff"] = self.cutoff.isoformat()
        return payload


class RetentionSweeper:
    """
    Deletes scan batches older than the retention window together with their records.
    Records go first: an interrupted sweep can leave orphan records (removed on the
    next sweep) but never a batch whose records are gone.
    """

    def __init__(self, store: ScanStore):
        self.store = store

    def run(self, retention_days: int, now: Optional[datetime] = None) -> SweepResult:
        now = now or datetime.now(UTC)
        cutoff = now - timedelta(days=retention_days)
        try:
            batch_ids = self.store.batch_ids_before(cutoff)
            if not batch_ids:
                logger.info("Daily cleanup: no scans older than %d days", retention_days)
                return SweepResult(cutoff=cutoff)

            deleted_records = self.store.delete_records_for_batches(batch_ids)
            deleted_batches = self.store.delete_batches(batch_ids)
        except Exception:
            logger.exception("Daily cleanup failed", extra={"retention_days": retention_days})
            raise

        logger.info(
            "Daily cleanup: removed %d scans and %d extracted lines older than %d days",
            deleted_batches,
            deleted_records,
            retention_days,
        )
        return SweepResult(cutoff=cutoff, deleted_batches=deleted_batches, deleted_records=deleted_records)
