import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sheetwatch.config import settings
from sheetwatch.exceptions import PersistenceError
from sheetwatch.api.middleware import add_request_id, log_requests
from sheetwatch.api import deps
from sheetwatch.store import ScanStore

# Routers
from sheetwatch.api.routers import scans, system

# Configure logging
logging.basicConfig(level=getattr(logging, settings.logging.level.upper(), logging.INFO))
logger = logging.getLogger("sheetwatch.api")

def create_app(store: Optional[ScanStore] = None) -> FastAPI:
    """
    Factory to build the read-only FastAPI application.
    Passing a store bypasses the configured backend (used by tests).
    """
    deps.reset_store()

    app = FastAPI(title="Sheetwatch API", version=settings.app.version)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    app.middleware("http")(add_request_id)
    if settings.logging.log_requests:
        app.middleware("http")(log_requests)

    app.include_router(system.router)
    app.include_router(scans.router)

    if store is not None:
        app.dependency_overrides[deps.get_store] = lambda: store

    @app.exception_handler(PersistenceError)
    async def persistence_exception_handler(request: Request, exc: PersistenceError):
        rid = getattr(request.state, "request_id", None)
        logger.error("Store error on %s: %s", request.url.path, exc)
        payload = {"error": "store_unavailable", "detail": str(exc)}
        if rid:
            payload["request_id"] = rid
        return JSONResponse(status_code=503, content=payload)

    return app

# Module-level app for uvicorn entrypoint
app = create_app()
