from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional, Sequence

from sheetwatch.domain.models import ExtractedRecord, ScanBatch
from sheetwatch.exceptions import PersistenceError
from sheetwatch.extract.columns import ordered_columns
from sheetwatch.store.base import to_utc_iso

logger = logging.getLogger(__name__)

_WRITE_BATCH_LIMIT = 500


class FirestoreScanStore:
    """
    Firestore-backed scan history.
    Mirrors the SqliteScanStore interface used by the scanner and sweeper.
    latest_record needs a composite index on (file_path, sheet_name, row_number desc, timestamp desc).
    """

    def __init__(
        self,
        *,
        project_id: Optional[str] = None,
        database: str = "(default)",
        collection_prefix: str = "sheetwatch",
    ):
        try:
            from google.api_core.exceptions import GoogleAPIError
            from google.cloud import firestore
        except Exception as exc:  # pragma: no cover - depends on optional runtime deps
            raise PersistenceError(
                "Firestore backend requested but google-cloud-firestore is not installed"
            ) from exc

        client_kwargs: dict[str, Any] = {}
        if project_id:
            client_kwargs["project"] = project_id
        if database and database != "(default)":
            client_kwargs["database"] = database

        try:
            self._client = firestore.Client(**client_kwargs)
        except TypeError:
            client_kwargs.pop("database", None)
            self._client = firestore.Client(**client_kwargs)
        except Exception as exc:
            raise PersistenceError(f"Cannot create Firestore client: {exc}") from exc

        self._api_error = GoogleAPIError
        self._descending = firestore.Query.DESCENDING
        self._prefix = str(collection_prefix).strip() or "sheetwatch"

    def _collection(self, name: str):
        return self._client.collection(f"{self._prefix}_{name}")

    def _guard(self, action: str, fn):
        try:
            return fn()
        except self._api_error as exc:
            raise PersistenceError(f"Firestore {action} failed: {exc}") from exc

    def count_batches(self) -> int:
        def run() -> int:
            result = self._collection("scans").count().get()
            return int(result[0][0].value)

        return self._guard("count", run)

    def insert_batch(self, batch: ScanBatch) -> str:
        payload = batch.model_dump(mode="json")
        payload["started_at"] = to_utc_iso(batch.started_at)
        self._guard("insert batch", lambda: self._collection("scans").document(batch.id).create(payload))
        return batch.id

    def insert_records(self, records: Sequence[ExtractedRecord]) -> int:
        def run() -> int:
            written = 0
            for start in range(0, len(records), _WRITE_BATCH_LIMIT):
                write = self._client.batch()
                for record in records[start : start + _WRITE_BATCH_LIMIT]:
                    write.set(self._collection("extracted_lines").document(record.id), _record_doc(record))
                    written += 1
                write.commit()
            return written

        return self._guard("insert records", run)

    def latest_record(self, file_path: str, sheet_name: str) -> Optional[ExtractedRecord]:
        def run() -> Optional[ExtractedRecord]:
            query = (
                self._collection("extracted_lines")
                .where(field_path="file_path", op_string="==", value=file_path)
                .where(field_path="sheet_name", op_string="==", value=sheet_name)
                .order_by("row_number", direction=self._descending)
                .order_by("timestamp", direction=self._descending)
                .limit(1)
            )
            for doc in query.stream():
                return ExtractedRecord(**(doc.to_dict() or {}))
            return None

        return self._guard("latest record lookup", run)

    def list_batches(self, limit: int = 50) -> list[ScanBatch]:
        def run() -> list[ScanBatch]:
            query = self._collection("scans").order_by("scan_number", direction=self._descending).limit(int(limit))
            return [ScanBatch(**(doc.to_dict() or {})) for doc in query.stream()]

        return self._guard("list batches", run)

    def get_batch(self, scan_number: int) -> Optional[ScanBatch]:
        def run() -> Optional[ScanBatch]:
            query = self._collection("scans").where(field_path="scan_number", op_string="==", value=int(scan_number))
            batches = [ScanBatch(**(doc.to_dict() or {})) for doc in query.stream()]
            batches.sort(key=lambda b: b.started_at, reverse=True)
            return batches[0] if batches else None

        return self._guard("get batch", run)

    def list_records(
        self,
        scan_id: Optional[str] = None,
        file_path: Optional[str] = None,
        sheet_name: Optional[str] = None,
        limit: int = 500,
    ) -> list[ExtractedRecord]:
        def run() -> list[ExtractedRecord]:
            query = self._collection("extracted_lines")
            if scan_id:
                query = query.where(field_path="scan_id", op_string="==", value=scan_id)
            if file_path:
                query = query.where(field_path="file_path", op_string="==", value=file_path)
            if sheet_name:
                query = query.where(field_path="sheet_name", op_string="==", value=sheet_name)
            rows = [ExtractedRecord(**(doc.to_dict() or {})) for doc in query.stream()]
            rows.sort(key=lambda r: (r.timestamp, r.row_number), reverse=True)
            return rows[: int(limit)]

        return self._guard("list records", run)

    def latest_records(self) -> list[ExtractedRecord]:
        def run() -> list[ExtractedRecord]:
            latest: dict[tuple[str, str], ExtractedRecord] = {}
            for doc in self._collection("extracted_lines").stream():
                record = ExtractedRecord(**(doc.to_dict() or {}))
                current = latest.get(record.key)
                if current is None or (record.row_number, record.timestamp) > (current.row_number, current.timestamp):
                    latest[record.key] = record
            return [latest[key] for key in sorted(latest)]

        return self._guard("latest records", run)

    def batch_ids_before(self, cutoff: datetime) -> list[str]:
        def run() -> list[str]:
            query = self._collection("scans").where(field_path="started_at", op_string="<", value=to_utc_iso(cutoff))
            return [doc.id for doc in query.stream()]

        return self._guard("retention query", run)

    def delete_records_for_batches(self, batch_ids: Sequence[str]) -> int:
        def run() -> int:
            refs = []
            for start in range(0, len(batch_ids), 30):
                chunk = list(batch_ids[start : start + 30])
                query = self._collection("extracted_lines").where(field_path="scan_id", op_string="in", value=chunk)
                refs.extend(doc.reference for doc in query.stream())
            return self._delete_refs(refs)

        return self._guard("delete records", run)

    def delete_batches(self, batch_ids: Sequence[str]) -> int:
        refs = [self._collection("scans").document(batch_id) for batch_id in batch_ids]
        return self._guard("delete batches", lambda: self._delete_refs(refs))

    def _delete_refs(self, refs: list) -> int:
        for start in range(0, len(refs), _WRITE_BATCH_LIMIT):
            write = self._client.batch()
            for ref in refs[start : start + _WRITE_BATCH_LIMIT]:
                write.delete(ref)
            write.commit()
        return len(refs)


def _record_doc(record: ExtractedRecord) -> dict[str, Any]:
    doc = record.model_dump(mode="json")
    doc["timestamp"] = to_utc_iso(record.timestamp)
    doc["data"] = ordered_columns(record.data)
    doc["display"] = ordered_columns(record.display)
    doc["display_column_names"] = ordered_columns(record.display_column_names)
    return doc


