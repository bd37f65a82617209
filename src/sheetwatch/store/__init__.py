from __future__ import annotations

from typing import Optional

from sheetwatch.config import Settings, settings as default_settings
from sheetwatch.store.base import ScanStore
from sheetwatch.store.sqlite import Database, SqliteScanStore


def build_store(config: Optional[Settings] = None) -> ScanStore:
    config = config or default_settings
    backend = (config.storage.backend or "sqlite").strip().lower()
    if backend == "firestore":
        from sheetwatch.store.firestore import FirestoreScanStore

        return FirestoreScanStore(
            project_id=config.storage.firestore_project_id,
            database=config.storage.firestore_database,
            collection_prefix=config.storage.firestore_collection_prefix,
        )
    return SqliteScanStore(db=Database(config.paths.db_path))


__all__ = ["Database", "ScanStore", "SqliteScanStore", "build_store"]
