"""
FastAPI exception handlers.

Every error body carries the request id so clients can correlate failures
with server logs.
"""
import logging

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from integrity_engine.core.error_handling import request_id_var

logger = logging.getLogger(__name__)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render HTTP errors as JSON with the current request id."""
    request_id = request_id_var.get()
    headers = dict(exc.headers or {})
    if request_id:
        headers.setdefault("X-Request-ID", request_id)

    if exc.status_code >= 500:
        logger.error(f"HTTP {exc.status_code} on {request.method} {request.url.path}: {exc.detail}")
    else:
        logger.info(f"HTTP {exc.status_code} on {request.method} {request.url.path}")

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "request_id": request_id},
        headers=headers,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render request body/query validation failures as a structured 422."""
    request_id = request_id_var.get()
    logger.info(f"Request validation failed on {request.method} {request.url.path}: {len(exc.errors())} error(s)")
    return JSONResponse(
        status_code=422,
        content={"detail": jsonable_encoder(exc.errors()), "request_id": request_id},
        headers={"X-Request-ID": request_id} if request_id else None,
    )
