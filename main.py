"""
FastAPI application for academic integrity validation.
Runs plagiarism, citation, data, methodology and format checks on documents.
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging

from integrity_engine.api.routes import health, integrity, tools
from integrity_engine.core.logging import setup_logging
from integrity_engine.core.exceptions import http_exception_handler, validation_exception_handler
from integrity_engine.core.middleware import RequestIDMiddleware
from integrity_engine.services.integrity_engine import get_integrity_engine

# Configure logging
setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    engine = get_integrity_engine()
    logger.info(f"Academic Integrity Validation Engine started with {len(engine.list_rules())} rules")
    yield
    await engine.close()
    logger.info("Academic Integrity Validation Engine stopped")


app = FastAPI(
    title="Academic Integrity Validation Engine",
    description="API for validating plagiarism, citations and data consistency of academic documents",
    version="1.0.0",
    lifespan=lifespan,
)

# Middleware
app.add_middleware(RequestIDMiddleware)

# Add exception handlers
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)

# Include routers
app.include_router(health.router)
app.include_router(integrity.router)
app.include_router(tools.router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000, workers=1)
