"""
SMS Certificates API - Main Application Entry Point

This module initializes and configures the FastAPI application including:
- Logging
- Database and Redis connections
- Certificate upload directory and its static file mount
- CORS middleware
- API routing
- Health check endpoints
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text

from sms_certificates.api import api_router
from sms_certificates.core.config import settings
from sms_certificates.core.database import async_session_maker, close_db, init_db
from sms_certificates.core.logging import setup_logging
from sms_certificates.core.redis import close_redis, init_redis
from sms_certificates.core.storage import ensure_dir

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events including:
    - Redis connection (optional outside production)
    - Database connection
    - Certificate upload directory
    """
    # Startup
    logger.info(f"Starting SMS Certificates API in {settings.python_env} mode...")

    # Redis only backs certificate number reservations; the unique
    # constraint still guards numbers without it
    try:
        await init_redis()
        logger.info("[OK] Redis connected")
    except Exception as e:
        logger.warning(f"[FAIL] Redis connection failed: {e}")
        if settings.is_production:
            raise

    try:
        await init_db()
        logger.info("[OK] Database connected")
    except Exception as e:
        logger.error(f"[FAIL] Database connection failed: {e}")
        if settings.is_production:
            raise

    ensure_dir(settings.certificate_upload_dir)
    logger.info(f"[OK] Certificate upload directory: {settings.certificate_upload_dir}")

    yield  # Application runs here

    # Shutdown
    logger.info("Shutting down SMS Certificates API...")
    await close_redis()
    await close_db()
    logger.info("[OK] Cleanup complete")


app = FastAPI(
    title="SMS Certificates API",
    description="School certificate generation and verification API",
    version="0.1.0",
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

app.include_router(api_router, prefix="/api/v1")

# Generated certificate PDFs
app.mount(
    settings.certificate_public_prefix,
    StaticFiles(directory=settings.certificate_upload_dir, check_dir=False),
    name="certificates",
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """Root endpoint - API welcome message."""
    return {
        "message": "Welcome to SMS Certificates API",
        "status": "running",
        "environment": settings.python_env,
    }


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint for container orchestration."""
    return {"status": "healthy"}


@app.get("/ready", tags=["Health"])
async def readiness_check() -> dict[str, str]:
    """Readiness check endpoint. Reports not_ready when the database is unreachable."""
    try:
        async with async_session_maker() as session:
            await session.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning(f"Readiness check failed: {e}")
        return {"status": "not_ready"}
    return {"status": "ready"}
