"""
JobCompass API - Main Application Entry Point

This module initializes the FastAPI application with:
- Centralized logging
- Database schema initialization
- Background scheduler for periodic board polling
- CORS middleware for frontend communication
- Prometheus metrics
- Exception handlers rendering the response envelope
- API router registration

Architecture:
    FastAPI App
    ├── Lifespan Management (startup/shutdown)
    ├── CORS Middleware (localhost:3000)
    ├── Prometheus Middleware (/metrics)
    └── API Router
        ├── /auth - Authentication endpoints
        ├── /profiles, /criteria - Candidate data
        ├── /boards, /listings - Job boards and stored listings
        ├── /matches - Match tracking and actions
        ├── /ai - Match analysis and cover letters
        ├── /ingestion - Provider searches and pipeline triggers
        └── /stats - Dashboard statistics
"""

import logging
from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException
from app.config import get_settings
from app.database import get_db, init_db
from app.errors import AppError, UpstreamError
from app.logging_config import configure_logging
from app.middleware import setup_metrics
from app.schemas import error_response
from app.api import api_router
from app.api.dependencies import get_analysis_cache
from app.scheduler import start_scheduler, stop_scheduler
from app.services.cache import AnalysisCache, get_cache

settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle events.

    Startup:
        1. Initialize database tables
        2. Start the board polling scheduler (when enabled)

    Shutdown:
        1. Stop the scheduler
        2. Close the Redis connection
    """
    await init_db()
    if settings.scheduler_enabled:
        start_scheduler()
    yield
    if settings.scheduler_enabled:
        stop_scheduler()
    await (await get_cache()).close()


app = FastAPI(
    title="JobCompass API",
    description="AI-assisted job discovery and matching API",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_metrics(app)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    message = exc.message
    errors = exc.errors
    if isinstance(exc, UpstreamError):
        logger.error(f"Upstream failure on {request.url.path}: {exc.detail}")
        message = exc.public_message
        if settings.debug:
            errors = {"detail": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=error_response(message, errors))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(loc) or "request"
        errors.setdefault(field, []).append(error.get("msg", "Invalid value"))
    return JSONResponse(status_code=422, content=error_response("Validation failed", errors))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


app.include_router(api_router)


@app.get("/health")
async def health_check(
    db: AsyncSession = Depends(get_db),
    cache: AnalysisCache = Depends(get_analysis_cache),
):
    try:
        await db.execute(text("SELECT 1"))
        database = "healthy"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        database = "unhealthy"

    redis_ok = await cache.health_check()
    return {
        "status": "healthy" if database == "healthy" else "degraded",
        "database": database,
        "cache": "healthy" if redis_ok else "unavailable",
    }
