import time
import logging
from uuid import uuid4
from fastapi import Request

logger = logging.getLogger("sheetwatch.api")

async def add_request_id(request: Request, call_next):
    rid = request.headers.get("x-request-id") or uuid4().hex
    request.state.request_id = rid
    response = await call_next(request)
    response.headers["x-request-id"] = rid
    return response

async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = None
    try:
        response = await call_next(request)
        return response
    finally:
        duration_ms = (time.perf_counter() - start) * 1000
        status = getattr(response, "status_code", "error")
        rid = getattr(request.state, "request_id", None)
        logger.info(
            "%s %s -> %s (%.2f ms)",
            request.method,
            request.url.path,
            status,
            duration_ms,
            extra={"request_id": rid},
        )
