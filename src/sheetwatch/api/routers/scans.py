from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from sheetwatch.api.deps import get_source_status_service, get_store
from sheetwatch.domain.models import ExtractedRecord, ScanBatch, SourceStatus
from sheetwatch.services import SourceStatusService
from sheetwatch.store import ScanStore

router = APIRouter()


# --- Scan history ---
@router.get("/scans", response_model=list[ScanBatch])
def list_scans(
    limit: int = Query(50, ge=1, le=500),
    store: ScanStore = Depends(get_store),
):
    return store.list_batches(limit=limit)


@router.get("/scans/latest", response_model=ScanBatch)
def latest_scan(store: ScanStore = Depends(get_store)):
    batches = store.list_batches(limit=1)
    if not batches:
        raise HTTPException(status_code=404, detail="No scans recorded yet")
    return batches[0]


@router.get("/scans/{scan_number}", response_model=ScanBatch)
def get_scan(scan_number: int, store: ScanStore = Depends(get_store)):
    batch = store.get_batch(scan_number)
    if batch is None:
        raise HTTPException(status_code=404, detail=f"Scan #{scan_number} not found")
    return batch


# --- Extracted lines ---
@router.get("/lines", response_model=list[ExtractedRecord])
def list_lines(
    file_path: Optional[str] = Query(None, description="Exact source file path"),
    sheet_name: Optional[str] = Query(None, description="Sheet name within the file"),
    scan_id: Optional[str] = Query(None, description="Batch id the lines were written with"),
    limit: int = Query(500, ge=1, le=5000),
    store: ScanStore = Depends(get_store),
):
    return store.list_records(scan_id=scan_id, file_path=file_path, sheet_name=sheet_name, limit=limit)


# --- Source lifecycle ---
@router.get("/sources", response_model=list[SourceStatus])
def list_sources(
    status: Optional[str] = Query(None, description="active|maintenance|closed"),
    service: SourceStatusService = Depends(get_source_status_service),
):
    statuses = service.list_statuses()
    if status:
        statuses = [s for s in statuses if s.status == status.strip().lower()]
    return statuses
