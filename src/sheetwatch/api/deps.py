from __future__ import annotations

from typing import Optional

from fastapi import Depends

from sheetwatch.config import settings
from sheetwatch.services import SourceStatusService
from sheetwatch.store import ScanStore, build_store

# Global/Cached instances
_store_instance: Optional[ScanStore] = None
_store_backend: Optional[str] = None


def get_store() -> ScanStore:
    global _store_instance, _store_backend
    backend = (settings.storage.backend or "sqlite").strip().lower()
    if _store_instance is None or _store_backend != backend:
        _store_instance = build_store(settings)
        _store_backend = backend
    return _store_instance


def reset_store() -> None:
    global _store_instance, _store_backend
    _store_instance = None
    _store_backend = None


def get_source_status_service(store: ScanStore = Depends(get_store)) -> SourceStatusService:
    return SourceStatusService(
        store=store,
        active_marker=settings.status.active_marker,
        maintenance_marker=settings.status.maintenance_marker,
    )
