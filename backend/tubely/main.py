"""
Tubely API - FastAPI Application Entry Point.

Initializes the FastAPI application with CORS and request logging
middleware, registers the v1 routers under ``/api/v1`` and manages the
MongoDB connection over the application lifespan.

Usage:
    # Run with uvicorn directly
    uvicorn tubely.main:app --host 0.0.0.0 --port 8091 --reload

    # Run as a module
    python -m tubely.main
"""

import logging
import time
import uuid

from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

import uvicorn

from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tubely import __version__
from tubely.api.v1 import api_router
from tubely.config import get_settings
from tubely.core.database import close_db, get_db_client, init_db
from tubely.utils.logger import setup_logging


logger = logging.getLogger(__name__)

# Status codes >= 400 are logged at WARNING
HTTP_ERROR_THRESHOLD = 400


# =============================================================================
# Application Lifespan Management
# =============================================================================


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """
    Configure logging and open the MongoDB connection on startup; close it on shutdown.

    A failed database connection is logged but does not stop the process, so
    ``/health`` keeps answering and ``/ready`` reports the problem.
    """
    settings = get_settings()
    setup_logging(log_level=settings.log_level, json_logs=settings.json_logs)

    logger.info(
        "Tubely API starting",
        extra={
            "app_env": settings.app_env,
            "debug": settings.debug,
            "bucket": settings.s3_bucket_name,
        },
    )

    try:
        await init_db(settings)
    except RuntimeError:
        logger.exception("Failed to initialize MongoDB; record endpoints will return 503")

    yield

    await close_db()
    logger.info("Tubely API shutdown complete")


# =============================================================================
# FastAPI Application Instance
# =============================================================================

_settings = get_settings()

app = FastAPI(
    title="Tubely API",
    description=(
        "Video and thumbnail ingestion: uploads are classified by aspect ratio, "
        "remuxed for fast start and served through short-lived presigned URLs."
    ),
    version=__version__,
    # Interactive docs are not served in production
    docs_url=None if _settings.is_production else "/docs",
    redoc_url=None if _settings.is_production else "/redoc",
    openapi_url=None if _settings.is_production else "/openapi.json",
    lifespan=lifespan,
    debug=_settings.debug,
)


# =============================================================================
# Middleware Configuration
# =============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Process-Time"],
)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next) -> Response:
    """
    Log each request with its status and duration, and tag the response with
    ``X-Request-ID`` and ``X-Process-Time`` headers.
    """
    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
    start_time = time.perf_counter()

    try:
        response = await call_next(request)
    except Exception:
        logger.exception(
            "Request failed",
            extra={"method": request.method, "path": request.url.path, "request_id": request_id},
        )
        raise

    process_time_ms = round((time.perf_counter() - start_time) * 1000, 2)
    response.headers["X-Process-Time"] = f"{process_time_ms}ms"
    response.headers["X-Request-ID"] = request_id

    log_level = logging.DEBUG if response.status_code < HTTP_ERROR_THRESHOLD else logging.WARNING
    logger.log(
        log_level,
        "Request completed: %s %s [%d]",
        request.method,
        request.url.path,
        response.status_code,
        extra={"request_id": request_id, "duration_ms": process_time_ms},
    )
    return response


# =============================================================================
# API Router Registration
# =============================================================================

app.include_router(api_router, prefix="/api/v1")


# =============================================================================
# Core Endpoints
# =============================================================================


@app.get(
    "/health",
    response_class=JSONResponse,
    tags=["health"],
    summary="Health Check",
)
async def health_check() -> dict[str, Any]:
    """Liveness probe. Does not touch MongoDB or S3."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "version": __version__,
        "service": "Tubely API",
    }


@app.get(
    "/ready",
    response_class=JSONResponse,
    tags=["health"],
    summary="Readiness Check",
)
async def readiness_check() -> JSONResponse:
    """Readiness probe: 200 when MongoDB answers a ping, 503 otherwise."""
    try:
        database_ok = await get_db_client().ping()
    except RuntimeError:
        database_ok = False

    return JSONResponse(
        status_code=status.HTTP_200_OK if database_ok else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "ready": database_ok,
            "checks": {"mongodb": "ok" if database_ok else "unavailable"},
            "timestamp": datetime.now(UTC).isoformat(),
        },
    )


if __name__ == "__main__":
    uvicorn.run(
        "tubely.main:app",
        host=_settings.host,
        port=_settings.port,
        reload=_settings.debug,
        log_level=_settings.log_level.lower(),
    )
