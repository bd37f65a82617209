import logging

from fastapi import APIRouter

from sheetwatch.config import settings

logger = logging.getLogger("sheetwatch.api.system")
router = APIRouter()


@router.get("/health")
def health():
    return {
        "status": "ok",
        "version": settings.app.version,
        "environment": settings.app.environment,
        "backend": settings.storage.backend,
    }
